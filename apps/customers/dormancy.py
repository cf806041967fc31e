"""Dormancy Scanner: propose ACTIVE customers with no recent activity as DORMANT.

Read-only. Acting on a candidate is a normal lifecycle transition.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.db.models import F
from django.db.models.functions import Coalesce
from django.utils import timezone

from .models import Customer, LifecycleStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DormancyCandidate:
    customer_id: int
    org_id: str
    last_activity_at: object
    days_since_activity: int

    def as_dict(self):
        return {
            "customerId": self.customer_id,
            "orgId": self.org_id,
            "lastActivityAt": self.last_activity_at.isoformat(),
            "daysSinceActivity": self.days_since_activity,
        }


def scan_dormancy(threshold_days=None, org_id=None, now=None):
    """Return ACTIVE customers idle for more than ``threshold_days``, most idle first.

    Activity is ``last_activity_at``, or ``created_at`` for customers that
    never had any. A customer idle for exactly ``threshold_days`` is not a
    candidate.
    """
    if threshold_days is None:
        threshold_days = settings.DORMANCY_THRESHOLD_DAYS
    if isinstance(threshold_days, bool) or not isinstance(threshold_days, int) or threshold_days <= 0:
        raise ValueError("threshold_days must be a positive whole number of days.")

    now = now or timezone.now()
    cutoff = now - timedelta(days=threshold_days)

    queryset = (
        Customer.objects
        .filter(lifecycle_status=LifecycleStatus.ACTIVE)
        .annotate(activity_at=Coalesce(F("last_activity_at"), F("created_at")))
        .filter(activity_at__lt=cutoff)
        .order_by("activity_at", "id")
    )
    if org_id is not None:
        queryset = queryset.filter(org_id=org_id)

    candidates = [
        DormancyCandidate(
            customer_id=customer.pk,
            org_id=customer.org_id,
            last_activity_at=customer.activity_at,
            days_since_activity=(now - customer.activity_at).days,
        )
        for customer in queryset.only("id", "org_id", "last_activity_at", "created_at")
    ]
    logger.info(
        "Dormancy scan (threshold %d days%s) found %d candidate(s)",
        threshold_days, f", org {org_id}" if org_id else "", len(candidates),
    )
    return candidates

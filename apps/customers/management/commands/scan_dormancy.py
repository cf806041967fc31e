"""List ACTIVE customers with no activity for longer than the dormancy threshold.

Read-only: moving a candidate to DORMANT is a separate lifecycle transition.
"""
from django.core.management.base import BaseCommand, CommandError

from apps.customers.dormancy import scan_dormancy


class Command(BaseCommand):
    help = "List ACTIVE customers idle longer than the dormancy threshold."

    def add_arguments(self, parser):
        parser.add_argument(
            "--threshold-days",
            type=int,
            default=None,
            help="Days without activity (default: DORMANCY_THRESHOLD_DAYS setting).",
        )
        parser.add_argument("--org", default=None, help="Only scan this org.")

    def handle(self, *args, **options):
        try:
            candidates = scan_dormancy(threshold_days=options["threshold_days"], org_id=options["org"])
        except ValueError as e:
            raise CommandError(str(e))

        for candidate in candidates:
            self.stdout.write(
                f"Customer #{candidate.customer_id} (org {candidate.org_id}): "
                f"{candidate.days_since_activity} days since last activity"
            )
        self.stdout.write(self.style.SUCCESS(f"{len(candidates)} dormancy candidate(s)."))

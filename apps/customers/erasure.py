"""Deletion Workflow: erase a customer's personal data on request.

A request is created PENDING and executed once, after the operator types
the customer's name exactly. Execution anonymises the customer and its
portal contacts, deletes its documents and redacts comments the customer
could see. Invoices are kept untouched for tax retention. Everything runs
in one transaction under the customer lock; executing an already-executed
request returns the stored summary and changes nothing.
"""
import logging
from dataclasses import dataclass

from django.db.models import Q
from django.utils import timezone

from apps.audit.recorder import record_event
from apps.records.models import Comment, Document, Invoice
from bizops.encryption import DecryptionError
from bizops.exceptions import ConfirmationMismatch, InvalidTransition

from .lifecycle import require_lifecycle_role
from .locking import locked_customer, save_versioned
from .models import DeletionRequest, LifecycleStatus, LifecycleTransition

logger = logging.getLogger(__name__)

ANONYMISED_DOMAIN = "anonymized.invalid"
REMOVED_CONTACT_NAME = "Removed Contact"


@dataclass(frozen=True)
class DeletionResult:
    request: DeletionRequest
    summary: dict
    already_executed: bool = False

    def as_dict(self):
        return {
            "success": True,
            "requestId": self.request.pk,
            "requestCode": self.request.request_code,
            "alreadyExecuted": self.already_executed,
            "summary": self.summary,
        }


def request_deletion(customer_id, actor, reason=""):
    """Open a deletion request, or return the customer's existing PENDING one."""
    require_lifecycle_role(actor, "deletion_request", "customer", customer_id)

    with locked_customer(customer_id) as customer:
        if customer.is_anonymised:
            raise InvalidTransition(
                "This customer's data has already been erased.", customer_id=customer.pk,
            )
        existing = DeletionRequest.objects.filter(
            customer=customer, status=DeletionRequest.STATUS_PENDING,
        ).first()
        if existing is not None:
            return existing

        deletion = DeletionRequest.objects.create(
            org_id=customer.org_id,
            customer=customer,
            customer_pk=customer.pk,
            reason=reason,
            requested_by=actor.id,
            requested_by_display=actor.label,
        )

    record_event(
        actor, "deletion_requested", "deletion_request", deletion.pk, org_id=deletion.org_id,
        metadata={"request_code": deletion.request_code, "customer_pk": deletion.customer_pk},
    )
    logger.info("Deletion request %s opened for customer %s", deletion.request_code, customer_id)
    return deletion


def _anonymise_customer(customer):
    customer.name = f"Anonymized Customer {customer.pk}"
    customer.email = f"anon-{customer.pk}@{ANONYMISED_DOMAIN}"
    customer.phone = ""
    customer.id_number = ""
    customer.custom_fields = {}
    customer.is_anonymised = True
    return [
        "_name_encrypted", "_email_encrypted", "_phone_encrypted", "_id_number_encrypted",
        "custom_fields", "is_anonymised",
    ]


def _redact_shared_comments(customer):
    # Must run before documents are deleted, while document__customer still resolves.
    return (
        Comment.objects
        .filter(Q(customer=customer) | Q(document__customer=customer))
        .filter(visibility=Comment.SHARED, is_redacted=False)
        .update(body=Comment.REDACTED_BODY, is_redacted=True)
    )


def _delete_documents(customer):
    documents = Document.objects.filter(customer=customer)
    count = documents.count()
    documents.delete()
    return count


def _anonymise_portal_contacts(customer):
    count = 0
    for contact in customer.portal_contacts.all():
        contact.display_name = REMOVED_CONTACT_NAME
        contact.email = f"removed-{contact.pk}@{ANONYMISED_DOMAIN}"
        contact.is_active = False
        contact.save(update_fields=["display_name", "_email_encrypted", "is_active"])
        count += 1
    return count


def execute_deletion(request_id, confirmation_text, actor):
    """Carry out a deletion request.

    ``confirmation_text`` must equal the customer's current name exactly.
    A name that cannot be decrypted is never confirmable. Returns a
    DeletionResult whose summary counts what was erased.

    Raises:
        PermissionDenied: the actor's role may not erase customers.
        ConfirmationMismatch: the typed name did not match, or the stored
            name cannot be decrypted.
        ConcurrencyConflict: the customer is locked or changed concurrently.
        DeletionRequest.DoesNotExist: no such request.
    """
    deletion = DeletionRequest.objects.get(pk=request_id)
    require_lifecycle_role(actor, "deletion_execute", "deletion_request", deletion.pk, deletion.org_id)

    if deletion.is_executed:
        logger.info("Deletion request %s already executed; returning stored summary", deletion.request_code)
        return DeletionResult(deletion, deletion.summary, already_executed=True)
    if deletion.customer_id is None:
        raise InvalidTransition(
            "The customer for this request no longer exists.", request_id=deletion.pk,
        )

    with locked_customer(deletion.customer_id) as customer:
        # Re-read under the lock so a concurrent execution is seen.
        deletion = DeletionRequest.objects.select_for_update().get(pk=request_id)
        if deletion.is_executed:
            return DeletionResult(deletion, deletion.summary, already_executed=True)

        try:
            expected = customer.confirmation_name()
        except DecryptionError:
            logger.error(
                "Deletion request %s: customer %s name cannot be decrypted; refusing to execute",
                deletion.request_code, customer.pk,
            )
            raise ConfirmationMismatch(
                "The customer's name cannot be read, so the deletion cannot be confirmed.",
                request_id=deletion.pk, reason="name_unreadable",
            )
        if not expected or confirmation_text != expected:
            logger.info("Deletion request %s: confirmation text did not match", deletion.request_code)
            raise ConfirmationMismatch(
                "Type the customer's name exactly as shown to confirm.", request_id=deletion.pk,
            )

        comments_redacted = _redact_shared_comments(customer)
        documents_deleted = _delete_documents(customer)
        contacts_anonymised = _anonymise_portal_contacts(customer)
        invoices_preserved = Invoice.objects.filter(customer=customer).count()

        now = timezone.now()
        fields = _anonymise_customer(customer)
        previous_status = LifecycleStatus(customer.lifecycle_status)
        if previous_status != LifecycleStatus.OFFBOARDED:
            customer.lifecycle_status = LifecycleStatus.OFFBOARDED
            customer.lifecycle_status_changed_at = now
            customer.lifecycle_status_changed_by = actor.id
            customer.offboarded_at = now
            fields += [
                "lifecycle_status", "lifecycle_status_changed_at",
                "lifecycle_status_changed_by", "offboarded_at",
            ]
        save_versioned(customer, fields)

        if previous_status != LifecycleStatus.OFFBOARDED:
            LifecycleTransition.objects.create(
                customer=customer,
                org_id=customer.org_id,
                from_status=previous_status,
                to_status=LifecycleStatus.OFFBOARDED,
                changed_by=actor.id,
                changed_by_display=actor.label,
                changed_at=now,
                notes=f"Offboarded by deletion request {deletion.request_code}",
            )

        summary = {
            "customerAnonymized": True,
            "documentsDeleted": documents_deleted,
            "commentsRedacted": comments_redacted,
            "portalContactsAnonymized": contacts_anonymised,
            "invoicesPreserved": invoices_preserved,
        }
        deletion.status = DeletionRequest.STATUS_EXECUTED
        deletion.executed_at = now
        deletion.executed_by = actor.id
        deletion.executed_by_display = actor.label
        deletion.summary = summary
        deletion.save(update_fields=[
            "status", "executed_at", "executed_by", "executed_by_display", "summary",
        ])

    record_event(
        actor, "deletion_executed", "deletion_request", deletion.pk, org_id=deletion.org_id,
        metadata={"request_code": deletion.request_code, "customer_pk": deletion.customer_pk, **summary},
    )
    logger.info("Deletion request %s executed: %s", deletion.request_code, summary)
    return DeletionResult(deletion, summary)


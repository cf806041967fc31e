"""Error taxonomy for the compliance gate and customer lifecycle.

Prerequisite violations are NOT errors — they are returned as
PrerequisiteCheck data so callers can render a remediation flow. The
exceptions here cover authorisation, illegal state changes, destructive
action friction, lock contention and infrastructure failure.

Bad field definitions raise django.core.exceptions.ValidationError.
"""


class ComplianceError(Exception):
    """Base class. ``http_status`` is what the JSON views respond with."""

    http_status = 400
    code = "compliance_error"

    def __init__(self, message="", **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self):
        payload = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class PermissionDenied(ComplianceError):
    """The acting role may not perform this action."""

    http_status = 403
    code = "permission_denied"


class InvalidTransition(ComplianceError):
    """The (from, to) lifecycle edge is not in the allowed-transitions table."""

    http_status = 400
    code = "invalid_transition"


class ConfirmationMismatch(ComplianceError):
    """Typed confirmation did not exactly match the customer's name."""

    http_status = 400
    code = "confirmation_mismatch"


class ConcurrencyConflict(ComplianceError):
    """Another request holds or changed the customer record. Safe to retry."""

    http_status = 409
    code = "concurrency_conflict"
    retryable = True


class StorageUnavailable(ComplianceError):
    """Field definitions or entity values could not be loaded."""

    http_status = 503
    code = "storage_unavailable"

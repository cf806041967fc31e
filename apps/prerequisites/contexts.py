"""Business actions that prerequisite rules are scoped to."""
from django.db import models
from django.utils.translation import gettext_lazy as _


class PrerequisiteContext(models.TextChoices):
    LIFECYCLE_ACTIVATION = "LIFECYCLE_ACTIVATION", _("Customer Activation")
    INVOICE_GENERATION = "INVOICE_GENERATION", _("Invoice Generation")
    PROPOSAL_SEND = "PROPOSAL_SEND", _("Proposal Sending")
    DOCUMENT_GENERATION = "DOCUMENT_GENERATION", _("Document Generation")
    PROJECT_CREATION = "PROJECT_CREATION", _("Project Creation")


# Contexts where attached checklist instances must also be complete.
CHECKLIST_CONTEXTS = frozenset({
    PrerequisiteContext.LIFECYCLE_ACTIVATION,
    PrerequisiteContext.PROJECT_CREATION,
})

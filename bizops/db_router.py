"""Route the audit app to its own append-only database."""

AUDIT_APP_LABEL = "audit"
AUDIT_DB = "audit"


class AuditRouter:
    """Send AuditLog reads and writes to the audit database.

    Every other app lives on the default database. Relations across the two
    databases are not allowed.
    """

    def db_for_read(self, model, **hints):
        if model._meta.app_label == AUDIT_APP_LABEL:
            return AUDIT_DB
        return "default"

    def db_for_write(self, model, **hints):
        if model._meta.app_label == AUDIT_APP_LABEL:
            return AUDIT_DB
        return "default"

    def allow_relation(self, obj1, obj2, **hints):
        in_audit = {obj1._meta.app_label == AUDIT_APP_LABEL, obj2._meta.app_label == AUDIT_APP_LABEL}
        return len(in_audit) == 1

    def allow_migrate(self, db, app_label, model_name=None, **hints):
        if app_label == AUDIT_APP_LABEL:
            return db == AUDIT_DB
        return db == "default"

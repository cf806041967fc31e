from django.apps import AppConfig


class RecordsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.records"
    label = "records"
    verbose_name = "Documents, Comments and Invoices"

from django.apps import AppConfig


class PrerequisitesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.prerequisites"
    label = "prerequisites"
    verbose_name = "Prerequisites"

    def ready(self):
        from . import checks  # noqa: F401  register system checks

# fees/apps.py

from django.apps import AppConfig


class FeesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "fees"
    verbose_name = "Fee Management"

    def ready(self):
        """Connect signal handlers when Django starts."""
        import fees.signals  # noqa: F401

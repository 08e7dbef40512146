# core/apps.py

from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
    verbose_name = "Centers & Subscriptions"

    def ready(self):
        """Connect signal handlers when Django starts."""
        import core.signals  # noqa: F401

from django.apps import AppConfig
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


class BakeryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "bakery"
    verbose_name = "Crave & Glaze"

    def ready(self):
        """
        When AUTO_MIGRATE is on, try to apply migrations at startup.
        If DB is not ready, log the error but don't crash the app.
        """
        if not getattr(settings, "AUTO_MIGRATE", False):
            return

        from django.core.management import call_command
        from django.db.utils import OperationalError, ProgrammingError

        try:
            call_command("migrate", interactive=False)
            logger.info("Auto-migrate executed successfully on startup.")
        except (OperationalError, ProgrammingError) as e:
            logger.error("Auto-migrate failed due to DB error: %s", e)

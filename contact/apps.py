import atexit
import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger("django")


class ContactConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "contact"

    store = None

    def ready(self):
        from contact.stores import DatabaseSubmissionStore

        self.store = DatabaseSubmissionStore(using=settings.CONTACT_DATABASE_ALIAS)
        atexit.register(on_shutdown, self.store)

    def log_connection_status(self):
        """Check the store once at startup; an unreachable database is not fatal."""
        connected, error = self.store.check_connection()
        if connected:
            logger.info(f"Connected to the contact database ({self.store!r})")
        else:
            logger.error(f"Contact database connection error: {error}")
        return connected


def on_shutdown(store):
    logger.info("Closing contact store.")
    store.close()

from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class BlogConfig(AppConfig):
    name = "blog"
    label = "blog"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        # cache invalidation + frontend revalidation after content writes
        from .revalidation import connect_signals
        connect_signals()
        logger.debug("blog revalidation signals connected")

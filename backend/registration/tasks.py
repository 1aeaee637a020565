import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name='registration.cleanup_expired_pending')
def cleanup_expired_pending():
    """
    Remove pending registrations past their expiry.
    Run every 15 minutes via Celery Beat. Expired rows are already ignored
    on read; this only reclaims the space.
    """
    from .stores import get_registration_store

    deleted_count = get_registration_store().purge_expired()
    if deleted_count:
        logger.info(f'Cleaned up {deleted_count} expired pending registrations')
    return deleted_count

import logging

from celery import shared_task
from django.utils import timezone

from library_service.celery import shutdown_requested
from library_service.locks import single_run
from reservations.services import expire_reservations

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def expire_reservations_task(self):
    """
    Celery task that expires reservations nobody picked up within the
    expiration window and puts their copies back on the shelf.

    Safe to run more often than the window: reservations that are not yet
    past the deadline are skipped.

    Returns:
        dict: Summary of the task execution
    """
    now = timezone.now()
    try:
        with single_run("reservation-expiry") as acquired:
            if not acquired:
                return {
                    "task_id": self.request.id,
                    "status": "skipped",
                    "reason": "Previous expiry sweep still running",
                    "timestamp": now.isoformat(),
                }
            expired_count = expire_reservations(
                now=now, should_stop=shutdown_requested.is_set
            )

        logger.info(
            f"Task {self.request.id}: Expired {expired_count} unclaimed reservations"
        )
        return {
            "task_id": self.request.id,
            "status": "completed",
            "expired_count": expired_count,
            "timestamp": now.isoformat(),
        }

    except Exception as exc:
        logger.error(
            f"Task {self.request.id}: Unexpected error in expire_reservations_task: {str(exc)}"
        )
        raise self.retry(exc=exc, countdown=60)

import logging

from celery import shared_task
from django.utils import timezone

from library_service.celery import shutdown_requested
from library_service.locks import single_run
from notifications.reminders import run_reminder_sweep
from notifications.services import local_time
from notifications.telegram import send_telegram_message

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_loan_reminders(self):
    """
    Celery task that reminds members about loans due within the reminder
    window and about loans already overdue.

    Returns:
        dict: Summary of the task execution
    """
    now = timezone.now()
    try:
        with single_run("loan-reminders") as acquired:
            if not acquired:
                return {
                    "task_id": self.request.id,
                    "status": "skipped",
                    "reason": "Previous reminder sweep still running",
                    "timestamp": now.isoformat(),
                }
            result = run_reminder_sweep(now=now, should_stop=shutdown_requested.is_set)

        due_soon, overdue = result["due_soon"], result["overdue"]
        logger.info(
            f"Task {self.request.id}: Reminder sweep completed. "
            f"Due soon: {due_soon['checked']}, overdue: {overdue['checked']}, "
            f"failed: {due_soon['failed'] + overdue['failed']}"
        )

        if overdue["checked"]:
            send_telegram_message(
                f"📊 <b>Overdue Report</b>\n"
                f"🕘 <b>Checked at</b>: {local_time(now):%Y-%m-%d %H:%M}\n"
                f"⚠️ <b>Total Overdue</b>: {overdue['checked']}\n"
                f"✅ <b>Notices Sent</b>: {overdue['sent']}\n"
                f"❌ <b>Failed Notices</b>: {overdue['failed']}"
            )

        return {
            "task_id": self.request.id,
            "status": "completed",
            "due_soon_count": due_soon["checked"],
            "overdue_count": overdue["checked"],
            "successful_notifications": due_soon["sent"] + overdue["sent"],
            "failed_notifications": due_soon["failed"] + overdue["failed"],
            "failed_loan_ids": due_soon["failed_loan_ids"] + overdue["failed_loan_ids"],
            "timestamp": now.isoformat(),
        }

    except Exception as exc:
        logger.error(
            f"Task {self.request.id}: Unexpected error in send_loan_reminders: {str(exc)}"
        )
        raise self.retry(exc=exc, countdown=60)

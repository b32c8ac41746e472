from django.core.management.base import BaseCommand

from notifications.reminders import run_reminder_sweep
from notifications.tasks import send_loan_reminders


class Command(BaseCommand):
    help = "Send due-soon reminders and overdue notices (run immediately)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--async",
            action="store_true",
            help="Queue the sweep on Celery instead of running it here",
        )

    def handle(self, *args, **options):
        if options["async"]:
            task = send_loan_reminders.delay()
            self.stdout.write(
                self.style.SUCCESS(f"✅ Reminder sweep queued. Task ID: {task.id}")
            )
            self.stdout.write('Use "celery -A library_service flower" to monitor the task.')
            return

        result = run_reminder_sweep()
        due_soon, overdue = result["due_soon"], result["overdue"]

        self.stdout.write(
            self.style.SUCCESS(
                f"✅ Reminded {due_soon['sent']} of {due_soon['checked']} loan(s) due soon, "
                f"notified {overdue['sent']} of {overdue['checked']} overdue loan(s)."
            )
        )
        failed = due_soon["failed"] + overdue["failed"]
        if failed:
            self.stdout.write(
                self.style.WARNING(f"⚠️  {failed} notification(s) could not be delivered.")
            )

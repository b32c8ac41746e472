from django.core.management.base import BaseCommand

from reservations.services import expire_reservations
from reservations.tasks import expire_reservations_task


class Command(BaseCommand):
    help = "Expire reservations that were not picked up in time (run immediately)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--async",
            action="store_true",
            help="Queue the sweep on Celery instead of running it here",
        )

    def handle(self, *args, **options):
        if options["async"]:
            task = expire_reservations_task.delay()
            self.stdout.write(
                self.style.SUCCESS(f"✅ Expiry sweep queued. Task ID: {task.id}")
            )
            return

        expired_count = expire_reservations()
        if expired_count:
            self.stdout.write(
                self.style.SUCCESS(f"✅ Expired {expired_count} reservation(s).")
            )
        else:
            self.stdout.write(self.style.SUCCESS("✅ No reservations to expire."))

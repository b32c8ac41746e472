import os
import threading

from celery import Celery
from celery.signals import worker_shutting_down

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "library_service.settings")

app = Celery("library_service")

# Beat schedule and broker settings live in Django settings under CELERY_*.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django app configs.
app.autodiscover_tasks()

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    result_expires=3600 * 24 * 7,  # 1 week
)

# Set when the worker begins a warm shutdown; sweeps stop between records.
shutdown_requested = threading.Event()


@worker_shutting_down.connect
def _on_worker_shutting_down(sig=None, how=None, exitcode=None, **kwargs):
    shutdown_requested.set()

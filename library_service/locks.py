import logging
from contextlib import contextmanager

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)


@contextmanager
def single_run(name):
    """
    Yield True if this process acquired the run lock for `name`, False if
    another run of the same sweep still holds it. The lock expires on its own
    so a crashed worker cannot block later ticks forever.
    """
    timeout = getattr(settings, "CIRCULATION", {}).get(
        "SWEEP_LOCK_TIMEOUT_SECONDS", 60 * 55
    )
    key = f"sweep-lock:{name}"
    acquired = cache.add(key, "locked", timeout)
    if not acquired:
        logger.info(f"Sweep {name} is already running, skipping this tick")
    try:
        yield acquired
    finally:
        if acquired:
            cache.delete(key)

import logging
from smtplib import SMTPException

import pytz
from django.conf import settings
from django.core.mail import send_mail
from django.db import DatabaseError, transaction
from django.utils.html import escape

from notifications.models import Notification
from notifications.telegram import send_telegram_message
from users.directory import display_name, get_member

logger = logging.getLogger(__name__)

SUBJECT = "Library notification"


def local_time(value):
    """Render an aware datetime in the library's local time zone."""
    tz = pytz.timezone(getattr(settings, "LIBRARY_TIME_ZONE", "UTC"))
    return value.astimezone(tz)


def notify_member(member_id, message, notification_type=Notification.Type.INFO):
    """
    Best-effort delivery of a message to a member.

    The message is stored in the member's in-app inbox, emailed when the
    member has an address, and mirrored to the staff Telegram chat.
    Never raises: returns False when the member could not be reached.
    """
    if not message or not message.strip():
        raise ValueError("Notification message cannot be empty.")

    member = get_member(member_id)
    if member is None:
        logger.warning(f"Notification for unknown member {member_id} dropped")
        return False

    notification = None
    try:
        with transaction.atomic():
            notification = Notification.objects.create(
                member=member, type=notification_type, message=message[:1000]
            )
    except DatabaseError as e:
        logger.error(f"Failed to store notification for member {member_id}: {e}")

    emailed = False
    if member.email:
        try:
            emailed = bool(
                send_mail(
                    SUBJECT,
                    message,
                    settings.DEFAULT_FROM_EMAIL,
                    [member.email],
                    fail_silently=False,
                )
            )
        except (SMTPException, OSError) as e:
            logger.warning(f"Email to member {member_id} failed: {e}")

    send_telegram_message(
        f"📬 <b>{escape(display_name(member))}</b>: {escape(message)}"
    )

    if notification is not None and emailed:
        Notification.objects.filter(pk=notification.pk).update(delivered=True)

    reached = emailed or notification is not None
    if not reached:
        logger.warning(f"Member {member_id} unreachable for {notification_type}")
    return reached

from smtplib import SMTPException
from unittest.mock import patch

import pytest
import requests

from notifications.models import Notification
from notifications.services import notify_member
from notifications.telegram import send_telegram_message


@pytest.mark.django_db
class TestNotifyMember:
    def test_stores_and_emails(self, member, mailoutbox):
        assert notify_member(member.id, "Your book is ready.") is True

        notification = Notification.objects.get(member=member)
        assert notification.type == Notification.Type.INFO
        assert notification.delivered is True
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == [member.email]
        assert mailoutbox[0].body == "Your book is ready."

    def test_member_without_email_gets_inbox_only(self, make_member, mailoutbox):
        quiet = make_member(email="")

        assert notify_member(quiet.id, "Hello") is True
        assert mailoutbox == []
        assert Notification.objects.get(member=quiet).delivered is False

    def test_unknown_member(self, db):
        assert notify_member(999999, "Hello") is False
        assert not Notification.objects.exists()

    def test_mail_failure_is_not_fatal(self, member):
        with patch("notifications.services.send_mail", side_effect=SMTPException("down")):
            assert notify_member(member.id, "Hello") is True

        assert Notification.objects.get(member=member).delivered is False

    def test_empty_message_is_rejected(self, member):
        with pytest.raises(ValueError):
            notify_member(member.id, "   ")

    def test_mirrors_to_staff_chat(self, member):
        with patch("notifications.services.send_telegram_message") as telegram:
            notify_member(member.id, "Due tomorrow")

        text = telegram.call_args.args[0]
        assert "Ada Reader" in text
        assert "Due tomorrow" in text


class TestTelegram:
    def test_disabled_by_default(self, settings):
        settings.TELEGRAM_NOTIFICATIONS_ENABLED = False

        with patch("notifications.telegram.requests.post") as post:
            assert send_telegram_message("hi") is False
        post.assert_not_called()

    def test_missing_credentials(self, settings):
        settings.TELEGRAM_NOTIFICATIONS_ENABLED = True
        settings.TELEGRAM_BOT_TOKEN = ""

        with patch("notifications.telegram.requests.post") as post:
            assert send_telegram_message("hi") is False
        post.assert_not_called()

    def test_posts_message(self, settings):
        settings.TELEGRAM_NOTIFICATIONS_ENABLED = True
        settings.TELEGRAM_BOT_TOKEN = "token"
        settings.TELEGRAM_CHAT_ID = "42"

        with patch("notifications.telegram.requests.post") as post:
            post.return_value.json.return_value = {"ok": True}
            assert send_telegram_message("hi") is True

        url = post.call_args.args[0]
        assert url == "https://api.telegram.org/bottoken/sendMessage"
        assert post.call_args.kwargs["json"]["chat_id"] == "42"
        assert post.call_args.kwargs["json"]["text"] == "hi"

    def test_network_error_is_swallowed(self, settings):
        settings.TELEGRAM_NOTIFICATIONS_ENABLED = True
        settings.TELEGRAM_BOT_TOKEN = "token"
        settings.TELEGRAM_CHAT_ID = "42"

        with patch(
            "notifications.telegram.requests.post",
            side_effect=requests.ConnectionError("offline"),
        ):
            assert send_telegram_message("hi") is False

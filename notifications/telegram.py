import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/{method}"


def send_telegram_message(
    text: str,
    chat_id: str | None = None,
    parse_mode: str | None = "HTML",
    disable_web_page_preview: bool = True,
) -> bool:
    """
    Post a message to the library staff chat (or to chat_id).
    Returns True on success and False when disabled, misconfigured or unreachable.
    Never raises.
    """
    if not getattr(settings, "TELEGRAM_NOTIFICATIONS_ENABLED", False):
        return False

    token = getattr(settings, "TELEGRAM_BOT_TOKEN", "")
    chat_id = chat_id or getattr(settings, "TELEGRAM_CHAT_ID", "")

    if not token or not chat_id:
        logger.warning("Telegram notifications enabled but token or chat id is missing")
        return False

    payload = {
        "chat_id": chat_id,
        "text": text,
        "parse_mode": parse_mode,
        "disable_web_page_preview": disable_web_page_preview,
    }

    try:
        resp = requests.post(
            API_URL.format(token=token, method="sendMessage"), json=payload, timeout=6
        )
        resp.raise_for_status()
        return bool(resp.json().get("ok"))
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Telegram delivery failed: {e}")
        return False

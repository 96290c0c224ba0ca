import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/{method}"


def is_enabled() -> bool:
    return bool(
        getattr(settings, "TELEGRAM_NOTIFICATIONS_ENABLED", False)
        and getattr(settings, "TELEGRAM_BOT_TOKEN", "")
        and getattr(settings, "TELEGRAM_CHAT_ID", "")
    )


def send_telegram_message(
    text: str,
    parse_mode: str | None = "HTML",
    disable_web_page_preview: bool = True,
    disable_notification: bool = False,
) -> bool:
    """
    Sends a message to the library staff chat. Returns True on success, False otherwise.
    Safe to call even if disabled/misconfigured (fails closed & quietly).
    """
    if not is_enabled():
        return False

    url = API_URL.format(token=settings.TELEGRAM_BOT_TOKEN, method="sendMessage")
    payload = {
        "chat_id": settings.TELEGRAM_CHAT_ID,
        "text": text,
        "parse_mode": parse_mode,
        "disable_web_page_preview": disable_web_page_preview,
        "disable_notification": disable_notification,
    }

    try:
        resp = requests.post(url, json=payload, timeout=6)
        resp.raise_for_status()
        data = resp.json()
        return bool(data.get("ok"))
    except requests.RequestException as e:
        logger.warning("Telegram message not delivered: %s", e)
        return False

# src/notifications/telegram_notifier.py

"""Telegram Bot API notifier for price alerts."""

import logging

from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.models.errors import NotifyError

logger = logging.getLogger("price_watcher.notifier")


class TelegramNotifier:
    """Deliver alert messages to one fixed Telegram chat.

    Without a token or chat id the notifier is disabled: ``notify``
    logs the message locally and returns as if it had been sent.
    """

    def __init__(
        self,
        token: str | None = None,
        chat_id: str | None = None,
        timeout: int | None = None,
    ) -> None:
        self.token = Settings.TELEGRAM_TOKEN if token is None else token
        self.chat_id = Settings.TELEGRAM_CHAT_ID if chat_id is None else chat_id
        self.timeout = timeout or Settings.REQUEST_TIMEOUT
        self.enabled = bool(self.token and self.chat_id)
        if not self.enabled:
            logger.warning(
                "Telegram bot not configured, alerts will be logged only"
            )

    def notify(self, message: str) -> None:
        """Send *message* to the configured chat.

        Raises:
            NotifyError: the Bot API rejected the message or was unreachable.
        """
        if not self.enabled:
            logger.info("TELEGRAM ALERT (not sent, bot disabled): %s", message)
            return

        url = f"{Settings.TELEGRAM_API_URL}/bot{self.token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": message,
            "disable_web_page_preview": False,
        }
        try:
            resp = curl_requests.post(url, json=payload, timeout=self.timeout)
        except Exception as exc:
            raise NotifyError(f"failed to reach Telegram: {exc}") from exc

        if resp.status_code != 200:
            raise NotifyError(
                f"Telegram returned HTTP {resp.status_code}: {resp.text[:200]}"
            )
        try:
            body = resp.json()
        except ValueError as exc:
            raise NotifyError("Telegram returned a non-JSON body") from exc
        if not body.get("ok", False):
            raise NotifyError(
                f"Telegram rejected message: {body.get('description', 'unknown')}"
            )
        logger.info("Telegram alert sent successfully")

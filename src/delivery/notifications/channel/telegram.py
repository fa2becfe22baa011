"""Telegram Bot API adapter.

Every call is bounded by a short timeout so an unreachable Telegram never
holds up the request that triggered the message.
"""

import httpx
import structlog

from delivery.errors import NotificationFailure
from delivery.notifications.channel.port import ChatPort, Keyboard

logger = structlog.get_logger(__name__)


class TelegramChatAdapter(ChatPort):
    def __init__(self, token: str, api_url: str = "https://api.telegram.org", timeout: float = 3.0, client=None):
        if not token:
            raise ValueError("A Telegram bot token is required")
        self._base_url = f"{api_url.rstrip('/')}/bot{token}"
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout))

    def _call(self, method: str, payload: dict, recipient_id: str) -> dict:
        try:
            response = self._client.post(f"{self._base_url}/{method}", json=payload)
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise NotificationFailure(recipient_id, f"{type(exc).__name__}: {exc}") from exc

        if response.status_code >= 400 or not data.get("ok"):
            raise NotificationFailure(recipient_id, data.get("description") or f"HTTP {response.status_code}")
        return data.get("result") or {}

    def send(self, recipient_id: str, text: str, buttons: Keyboard | None = None) -> dict:
        payload = {"chat_id": recipient_id, "text": text, "parse_mode": "HTML"}
        if buttons:
            payload["reply_markup"] = {
                "inline_keyboard": [
                    [{"text": b.text, "callback_data": b.callback_data} for b in row] for row in buttons
                ]
            }

        result = self._call("sendMessage", payload, str(recipient_id))
        return {"message_id": str(result.get("message_id", "")), "status": "sent"}

    def answer_callback(self, callback_id: str, text: str | None = None) -> dict:
        payload = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
        self._call("answerCallbackQuery", payload, callback_id)
        return {"status": "sent"}

    def close(self) -> None:
        self._client.close()

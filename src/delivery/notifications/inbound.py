"""Inbound chat events, parsed from Telegram webhook updates."""

from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError

from delivery.notifications.callbacks import CallbackAction, decode

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TextMessage:
    sender_id: str
    text: str


@dataclass(frozen=True)
class ButtonPress:
    sender_id: str
    callback: CallbackAction
    callback_id: str | None = None


InboundEvent = TextMessage | ButtonPress


def parse_update(update: dict) -> InboundEvent | None:
    """Turn a webhook update into an inbound event.

    Returns None for updates that carry nothing actionable (edits, stickers,
    service messages) and for buttons whose data cannot be decoded.
    """
    callback_query = update.get("callback_query")
    if callback_query:
        # The chat the card was sent to identifies the operator, group chats included
        chat_id = (callback_query.get("message") or {}).get("chat", {}).get("id")
        sender_id = str(chat_id or callback_query.get("from", {}).get("id", ""))
        data = callback_query.get("data", "")
        try:
            callback = decode(data)
        except ValidationError as exc:
            logger.warning("Ignoring undecodable button", sender_id=sender_id, data=data, error=exc.messages)
            return None
        return ButtonPress(sender_id=sender_id, callback=callback, callback_id=callback_query.get("id"))

    message = update.get("message")
    if message and message.get("text"):
        chat_id = message.get("chat", {}).get("id") or message.get("from", {}).get("id")
        return TextMessage(sender_id=str(chat_id), text=message["text"])

    return None

"""Chat channel port — abstract interface for the outbound chat transport."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Button:
    text: str
    callback_data: str


Keyboard = list[list[Button]]


class ChatPort(ABC):
    """Sends messages with optional inline buttons to a chat recipient."""

    @abstractmethod
    def send(self, recipient_id: str, text: str, buttons: Keyboard | None = None) -> dict:
        """Send a message.

        Returns:
            dict with keys: message_id, status ("sent")

        Raises:
            NotificationFailure: the channel did not accept the message.
        """
        ...

    @abstractmethod
    def answer_callback(self, callback_id: str, text: str | None = None) -> dict:
        """Acknowledge a button press so the client stops its spinner."""
        ...

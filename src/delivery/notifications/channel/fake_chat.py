"""In-memory chat adapter that records sent messages for tests."""

from uuid import uuid4

from delivery.errors import NotificationFailure
from delivery.notifications.channel.port import ChatPort, Keyboard


class FakeChatAdapter(ChatPort):
    """Chat adapter that records messages in memory for test assertions."""

    def __init__(self):
        self.sent_messages: list[dict] = []
        self.answered_callbacks: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Chat delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Chat delivery failed"):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(self, recipient_id: str, text: str, buttons: Keyboard | None = None) -> dict:
        if not self.should_succeed:
            raise NotificationFailure(recipient_id, self.failure_reason)

        message_id = f"chat-{uuid4().hex[:12]}"
        self.sent_messages.append(
            {
                "message_id": message_id,
                "recipient_id": str(recipient_id),
                "text": text,
                "buttons": buttons or [],
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def answer_callback(self, callback_id: str, text: str | None = None) -> dict:
        self.answered_callbacks.append({"callback_id": callback_id, "text": text})
        return {"status": "sent"}

    def messages_to(self, recipient_id) -> list[dict]:
        return [m for m in self.sent_messages if m["recipient_id"] == str(recipient_id)]

"""Notification aggregate — audit record of every outbound chat message.

State Machine (3 states):
    PENDING → SENT
    PENDING → FAILED

Failed messages are never retried: the next state change on the order
sends a fresh summary, and operators can always read the current state
from the admin API.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String, Text

from delivery.domain import delivery
from delivery.notifications.events import NotificationFailed, NotificationSent


class MessageKind(Enum):
    ADMIN_SUMMARY = "AdminSummary"
    SUPPORT_SUMMARY = "SupportSummary"
    DISPATCH_CARD = "DispatchCard"
    APPROVAL_CARD = "ApprovalCard"
    ROUTING_GAP = "RoutingGap"
    ETA_PICKER = "EtaPicker"
    EN_ROUTE = "EnRoute"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    NEXT_ORDER = "NextOrder"
    QUEUE = "Queue"
    CONVERSATION = "Conversation"
    RELAY = "Relay"
    SUPPORT_REPLY = "SupportReply"
    ORDER_DETAILS = "OrderDetails"
    NOTICE = "Notice"


class RecipientRole(Enum):
    ADMIN = "Admin"
    SUPPORT = "Support"
    COURIER = "Courier"
    OPERATOR = "Operator"


class NotificationStatus(Enum):
    PENDING = "Pending"
    SENT = "Sent"
    FAILED = "Failed"


_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.SENT: set(),  # Terminal
    NotificationStatus.FAILED: set(),  # Terminal
}


@delivery.aggregate(limit=None)
class Notification:
    recipient_id: String(required=True, max_length=100)
    recipient_role: String(choices=RecipientRole, required=True)
    kind: String(choices=MessageKind, required=True)
    body: Text(required=True)
    buttons: Text()  # JSON: rows of {"text", "callback_data"}
    order_id: Integer()
    status: String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)
    message_id: String(max_length=100)
    failure_reason: String(max_length=500)
    created_at: DateTime()
    sent_at: DateTime()

    @classmethod
    def create(cls, recipient_id, recipient_role, kind, body, buttons=None, order_id=None):
        return cls(
            recipient_id=str(recipient_id),
            recipient_role=recipient_role,
            kind=kind,
            body=body,
            buttons=buttons,
            order_id=order_id,
            status=NotificationStatus.PENDING.value,
            created_at=datetime.now(UTC),
        )

    def _assert_can_transition(self, target_status):
        current = NotificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def mark_sent(self, message_id=None):
        self._assert_can_transition(NotificationStatus.SENT)

        now = datetime.now(UTC)
        self.status = NotificationStatus.SENT.value
        self.message_id = message_id
        self.sent_at = now

        self.raise_(
            NotificationSent(
                notification_id=str(self.id),
                recipient_id=self.recipient_id,
                kind=self.kind,
                order_id=self.order_id,
                sent_at=now,
            )
        )

    def mark_failed(self, reason):
        self._assert_can_transition(NotificationStatus.FAILED)

        self.status = NotificationStatus.FAILED.value
        self.failure_reason = (reason or "Unknown dispatch error")[:500]

        self.raise_(
            NotificationFailed(
                notification_id=str(self.id),
                recipient_id=self.recipient_id,
                kind=self.kind,
                order_id=self.order_id,
                reason=self.failure_reason,
                failed_at=datetime.now(UTC),
            )
        )

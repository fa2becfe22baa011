"""Domain events for the Notification aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from delivery.domain import delivery


@delivery.event(part_of="Notification")
class NotificationSent:
    """The chat channel accepted a message."""

    __version__ = 1

    notification_id: Identifier(required=True)
    recipient_id: String(required=True)
    kind: String(required=True)
    order_id: Integer()
    sent_at: DateTime(required=True)


@delivery.event(part_of="Notification")
class NotificationFailed:
    """The chat channel could not deliver a message; it will not be retried."""

    __version__ = 1

    notification_id: Identifier(required=True)
    recipient_id: String(required=True)
    kind: String(required=True)
    order_id: Integer()
    reason: String()
    failed_at: DateTime(required=True)

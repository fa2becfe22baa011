"""Errors raised by the delivery engine.

Domain errors extend Protean's ``ValidationError`` so they carry the same
``messages`` dict and map onto 4xx responses at the API boundary.
"""

from dataclasses import dataclass

from protean.exceptions import ValidationError


class TrustError(ValidationError):
    """The customer is blocked and may not place orders."""


class IllegalTransitionError(ValidationError):
    """An action is not legal from the record's current status."""


class CourierMismatchError(IllegalTransitionError):
    """The acting courier does not own the order's assignment."""


class ForbiddenActionError(ValidationError):
    """The acting operator's role may not perform this action."""


class NotificationFailure(Exception):
    """The chat channel could not deliver a message."""

    def __init__(self, recipient_id: str, reason: str):
        super().__init__(f"Delivery to {recipient_id} failed: {reason}")
        self.recipient_id = recipient_id
        self.reason = reason


@dataclass(frozen=True)
class RoutingGap:
    """An order was routed to a zone that has no courier configured."""

    order_id: int
    zone: str


def describe_error(exc: Exception) -> str:
    """Flatten a domain error into a single human readable line."""
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        parts = []
        for value in messages.values():
            if isinstance(value, (list, tuple)):
                parts.extend(str(item) for item in value)
            else:
                parts.append(str(value))
        if parts:
            return "; ".join(parts)
    return str(exc)

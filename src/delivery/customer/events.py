"""Domain events for the CustomerRecord aggregate."""

from protean.fields import DateTime, String

from delivery.domain import delivery


@delivery.event(part_of="CustomerRecord")
class CustomerFirstSeen:
    """An order arrived from a handle the shop has never seen before."""

    __version__ = 1

    handle: String(required=True)
    first_seen_at: DateTime(required=True)


@delivery.event(part_of="CustomerRecord")
class CustomerApproved:
    """An admin vouched for the customer; deferred orders may be released."""

    __version__ = 1

    handle: String(required=True)
    approved_by: String(required=True)
    approved_at: DateTime(required=True)


@delivery.event(part_of="CustomerRecord")
class CustomerBlocked:
    """An admin blocked the customer; no further orders are accepted."""

    __version__ = 1

    handle: String(required=True)
    previous_status: String(required=True)
    reason: String()
    blocked_at: DateTime(required=True)

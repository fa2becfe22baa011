"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Integer, String, Text

from delivery.domain import delivery


@delivery.event(part_of="Order")
class OrderCreated:
    """A storefront order was accepted, possibly deferred for review."""

    __version__ = 1

    order_id: Integer(required=True)
    customer_handle: String(required=True)
    status: String(required=True)
    delivery_type: String(required=True)
    zone: String()
    courier_id: String()
    lines: Text(required=True)  # JSON: list of line dicts
    declared_total: Float(required=True)
    discount: Float(required=True)
    total_charged: Float(required=True)
    created_at: DateTime(required=True)


@delivery.event(part_of="Order")
class OrderApproved:
    """A deferred order was released after its customer was approved."""

    __version__ = 1

    order_id: Integer(required=True)
    customer_handle: String(required=True)
    approved_by: String(required=True)
    discount: Float(required=True)
    total_charged: Float(required=True)
    approved_at: DateTime(required=True)


@delivery.event(part_of="Order")
class OrderDispatched:
    """The courier left with the order and announced an ETA."""

    __version__ = 1

    order_id: Integer(required=True)
    courier_id: String(required=True)
    eta_minutes: Integer(required=True)
    dispatched_at: DateTime(required=True)


@delivery.event(part_of="Order")
class OrderDelivered:
    """The courier handed the order over."""

    __version__ = 1

    order_id: Integer(required=True)
    courier_id: String(required=True)
    total_charged: Float(required=True)
    delivered_at: DateTime(required=True)


@delivery.event(part_of="Order")
class OrderCancelled:
    """The order was refused, deleted by the admin, or its customer was blocked."""

    __version__ = 1

    order_id: Integer(required=True)
    previous_status: String(required=True)
    reason: String()
    cancelled_by: String(required=True)
    cancelled_at: DateTime(required=True)

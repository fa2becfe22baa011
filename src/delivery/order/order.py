"""Order aggregate — the single source of truth for an order's status.

State Machine (5 states):
    PENDING_APPROVAL → PENDING → EN_ROUTE → DELIVERED
    PENDING_APPROVAL → CANCELLED      (admin block or delete)
    PENDING → CANCELLED               (courier refusal or admin delete)
    EN_ROUTE → CANCELLED              (only when the customer is blocked)

Orders from customers that are not yet approved start in PENDING_APPROVAL
and carry no discount until they are released; everyone else starts in
PENDING. DELIVERED and CANCELLED are terminal.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String

from delivery.domain import delivery
from delivery.errors import CourierMismatchError, IllegalTransitionError
from delivery.order.events import (
    OrderApproved,
    OrderCancelled,
    OrderCreated,
    OrderDelivered,
    OrderDispatched,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING_APPROVAL = "pending_approval"
    PENDING = "pending"
    EN_ROUTE = "en_route"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class CancellationActor(Enum):
    COURIER = "courier"
    ADMIN = "admin"
    CUSTOMER_BLOCK = "customer_block"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING_APPROVAL: {OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.PENDING: {OrderStatus.EN_ROUTE, OrderStatus.CANCELLED},
    OrderStatus.EN_ROUTE: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Which states each kind of actor may cancel from
_CANCELLABLE_BY = {
    CancellationActor.COURIER: {OrderStatus.PENDING},
    CancellationActor.ADMIN: {OrderStatus.PENDING_APPROVAL, OrderStatus.PENDING},
    CancellationActor.CUSTOMER_BLOCK: {
        OrderStatus.PENDING_APPROVAL,
        OrderStatus.PENDING,
        OrderStatus.EN_ROUTE,
    },
}

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
OPEN_STATUSES = set(OrderStatus) - TERMINAL_STATUSES


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@delivery.entity(part_of="Order")
class OrderLine:
    """One product line of an order. Lines never change once the order exists."""

    product_id: String(required=True, max_length=100)
    name: String(required=True, max_length=255)
    variant: String(max_length=100)
    quantity: Integer(required=True, min_value=1)
    unit_price: Float(required=True, min_value=0.01)
    line_total: Float(required=True, min_value=0.0)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "variant": self.variant,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
        }


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@delivery.aggregate(limit=None)
class Order:
    order_id: Integer(identifier=True)
    customer_handle: String(required=True, max_length=100)
    delivery_type: String(required=True, max_length=200)
    address: String(max_length=500)
    lines: HasMany(OrderLine)
    declared_total: Float(required=True, min_value=0.0)
    discount: Float(default=0.0, min_value=0.0)
    discount_applied: Boolean(default=False)
    total_charged: Float(default=0.0)
    status: String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    zone: String(max_length=100)
    courier_id: String(max_length=100)
    eta_minutes: Integer(min_value=1)
    approved_by: String(max_length=100)
    cancellation_reason: String(max_length=500)
    cancelled_by: String(max_length=50)
    created_at: DateTime()
    updated_at: DateTime()
    approved_at: DateTime()
    dispatched_at: DateTime()
    delivered_at: DateTime()
    cancelled_at: DateTime()

    @invariant.post
    def total_charged_is_declared_total_minus_discount(self):
        discount = self.discount or 0.0
        if discount > (self.declared_total or 0.0):
            raise ValidationError({"discount": ["Discount cannot exceed the declared total"]})
        if abs((self.total_charged or 0.0) - ((self.declared_total or 0.0) - discount)) > 0.005:
            raise ValidationError({"total_charged": ["Total charged must equal declared total minus discount"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_id,
        customer_handle,
        delivery_type,
        lines_data,
        declared_total,
        address=None,
        discount=0.0,
        deferred=False,
        zone=None,
        courier_id=None,
    ):
        """Create an order; deferred orders wait in PENDING_APPROVAL without a discount."""
        if not lines_data:
            raise ValidationError({"lines": ["An order needs at least one line item"]})
        if deferred and discount:
            raise ValidationError({"discount": ["Deferred orders are priced when they are approved"]})
        if (discount or 0.0) < 0 or (discount or 0.0) > declared_total:
            raise ValidationError({"discount": ["Discount must be between zero and the declared total"]})

        now = datetime.now(UTC)
        status = OrderStatus.PENDING_APPROVAL if deferred else OrderStatus.PENDING
        discount = round(discount or 0.0, 2)

        order = cls(
            order_id=order_id,
            customer_handle=customer_handle,
            delivery_type=delivery_type,
            address=address,
            declared_total=declared_total,
            discount=discount,
            discount_applied=not deferred,
            total_charged=round(declared_total - discount, 2),
            status=status.value,
            zone=zone,
            courier_id=courier_id,
            created_at=now,
            updated_at=now,
        )
        for line in lines_data:
            order.add_lines(
                OrderLine(
                    product_id=str(line["product_id"]),
                    name=line["name"],
                    variant=line.get("variant"),
                    quantity=line["quantity"],
                    unit_price=line["unit_price"],
                    line_total=round(line["quantity"] * line["unit_price"], 2),
                )
            )

        order.raise_(
            OrderCreated(
                order_id=order_id,
                customer_handle=customer_handle,
                status=status.value,
                delivery_type=delivery_type,
                zone=zone,
                courier_id=courier_id,
                lines=json.dumps([line.to_dict() for line in order.lines]),
                declared_total=declared_total,
                discount=order.discount,
                total_charged=order.total_charged,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def order_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def is_deferred(self) -> bool:
        return self.order_status == OrderStatus.PENDING_APPROVAL

    @property
    def is_terminal(self) -> bool:
        return self.order_status in TERMINAL_STATUSES

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = self.order_status
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise IllegalTransitionError(
                {"status": [f"Order #{self.order_id} cannot go from {current.value} to {target_status.value}"]}
            )

    def assert_courier(self, courier_id):
        """Reject actions from anyone but the courier the order was routed to."""
        if not self.courier_id or str(courier_id) != str(self.courier_id):
            raise CourierMismatchError({"courier": [f"Order #{self.order_id} is not assigned to you"]})

    def _touch(self):
        now = datetime.now(UTC)
        self.updated_at = now
        return now

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def approve(self, approved_by, discount=0.0):
        """Release a deferred order, pricing it with the discount owed now."""
        self._assert_can_transition(OrderStatus.PENDING)
        if self.discount_applied:
            raise ValidationError({"discount": [f"Discount already applied to order #{self.order_id}"]})

        discount = round(discount or 0.0, 2)
        now = self._touch()
        with atomic_change(self):
            self.discount = discount
            self.total_charged = round(self.declared_total - discount, 2)
            self.discount_applied = True
            self.status = OrderStatus.PENDING.value
            self.approved_by = approved_by
            self.approved_at = now

        self.raise_(
            OrderApproved(
                order_id=self.order_id,
                customer_handle=self.customer_handle,
                approved_by=approved_by,
                discount=self.discount,
                total_charged=self.total_charged,
                approved_at=now,
            )
        )

    def start(self, courier_id, eta_minutes):
        """The courier leaves with the order and announces an ETA."""
        self._assert_can_transition(OrderStatus.EN_ROUTE)
        self.assert_courier(courier_id)

        now = self._touch()
        self.status = OrderStatus.EN_ROUTE.value
        self.eta_minutes = eta_minutes
        self.dispatched_at = now

        self.raise_(
            OrderDispatched(
                order_id=self.order_id,
                courier_id=str(courier_id),
                eta_minutes=eta_minutes,
                dispatched_at=now,
            )
        )

    def complete(self, courier_id):
        self._assert_can_transition(OrderStatus.DELIVERED)
        self.assert_courier(courier_id)

        now = self._touch()
        self.status = OrderStatus.DELIVERED.value
        self.delivered_at = now

        self.raise_(
            OrderDelivered(
                order_id=self.order_id,
                courier_id=str(courier_id),
                total_charged=self.total_charged,
                delivered_at=now,
            )
        )

    def refuse(self, courier_id, reason=None):
        """The courier declines the order before leaving with it."""
        self.assert_courier(courier_id)
        self._cancel(CancellationActor.COURIER, reason or "Refusée par le livreur", cancelled_by=str(courier_id))

    def cancel(self, reason, cancelled_by=CancellationActor.ADMIN.value):
        """Admin delete of an order that has not left yet."""
        self._cancel(CancellationActor.ADMIN, reason, cancelled_by=cancelled_by)

    def cancel_for_block(self, reason=None):
        self._cancel(
            CancellationActor.CUSTOMER_BLOCK,
            reason or "Client bloqué",
            cancelled_by=CancellationActor.CUSTOMER_BLOCK.value,
        )

    def _cancel(self, actor, reason, cancelled_by):
        self._assert_can_transition(OrderStatus.CANCELLED)
        current = self.order_status
        if current not in _CANCELLABLE_BY[actor]:
            raise IllegalTransitionError(
                {"status": [f"Order #{self.order_id} cannot be cancelled by {actor.value} while {current.value}"]}
            )

        now = self._touch()
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.cancelled_at = now

        self.raise_(
            OrderCancelled(
                order_id=self.order_id,
                previous_status=current.value,
                reason=reason,
                cancelled_by=cancelled_by,
                cancelled_at=now,
            )
        )

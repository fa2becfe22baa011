"""OrderStore — the only way orders are created or change status.

Each status change runs as one command through the domain, so its check
and its write commit together in a single unit of work. The store holds a
lock per order id around that unit of work: two actions racing on the
same order (a courier starting it while the admin deletes it) are applied
one after the other, and the loser sees the winner's status.
"""

import json

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from delivery.customer.customer import normalize_handle
from delivery.customer.moderation import ApproveCustomer, BlockCustomer
from delivery.order.cancellation import CancelOrder
from delivery.order.courier_actions import CompleteDelivery, RefuseOrder, StartDelivery
from delivery.order.creation import CreateOrder
from delivery.order.order import Order, OrderStatus
from delivery.order.queries import all_orders, open_orders, orders_for_customer, orders_with_status
from delivery.order.sequence import next_order_id
from delivery.utils.locks import KeyedLocks

logger = structlog.get_logger(__name__)


class OrderStore:
    def __init__(self):
        self._order_locks = KeyedLocks()
        self._customer_locks = KeyedLocks()

    # -------------------------------------------------------------------
    # Locks
    # -------------------------------------------------------------------
    def customer_lock(self, handle):
        """Serialises everything that reads and then writes one customer's state."""
        return self._customer_locks.hold(normalize_handle(handle))

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get(self, order_id) -> Order:
        try:
            order_id = int(order_id)
        except (TypeError, ValueError) as exc:
            raise ValidationError({"order_id": [f"Invalid order id: {order_id!r}"]}) from exc
        return current_domain.repository_for(Order).get(order_id)

    def find(self, order_id) -> Order | None:
        try:
            return self.get(order_id)
        except (ObjectNotFoundError, ValidationError):
            return None

    def list_orders(self, status=None, customer_handle=None) -> list[Order]:
        if status:
            try:
                status = OrderStatus(status)
            except ValueError as exc:
                raise ValidationError({"status": [f"Unknown order status: {status!r}"]}) from exc
        if customer_handle:
            orders = orders_for_customer(normalize_handle(customer_handle))
            if status:
                orders = [o for o in orders if o.status == status.value]
            return orders
        if status:
            return orders_with_status(status)
        return all_orders()

    def open_orders(self) -> list[Order]:
        return open_orders()

    # -------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------
    def create(
        self,
        customer_handle,
        delivery_type,
        lines,
        declared_total,
        address=None,
        discount=0.0,
        deferred=False,
        zone=None,
        courier_id=None,
    ) -> Order:
        order_id = next_order_id()
        with self._order_locks.hold(order_id):
            current_domain.process(
                CreateOrder(
                    order_id=order_id,
                    customer_handle=customer_handle,
                    delivery_type=delivery_type,
                    address=address,
                    lines=json.dumps(lines),
                    declared_total=declared_total,
                    discount=discount,
                    deferred=deferred,
                    zone=zone,
                    courier_id=courier_id,
                ),
                asynchronous=False,
            )
        logger.info(
            "Order created",
            order_id=order_id,
            customer_handle=customer_handle,
            deferred=deferred,
            zone=zone,
        )
        return self.get(order_id)

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def _transition(self, order_id, command) -> Order:
        with self._order_locks.hold(order_id):
            current_domain.process(command, asynchronous=False)
            return self.get(order_id)

    def start(self, order_id, courier_id, eta_minutes) -> Order:
        order_id = self.get(order_id).order_id
        return self._transition(
            order_id,
            StartDelivery(order_id=order_id, courier_id=str(courier_id), eta_minutes=eta_minutes),
        )

    def complete(self, order_id, courier_id) -> Order:
        order_id = self.get(order_id).order_id
        return self._transition(order_id, CompleteDelivery(order_id=order_id, courier_id=str(courier_id)))

    def refuse(self, order_id, courier_id, reason=None) -> Order:
        order_id = self.get(order_id).order_id
        return self._transition(
            order_id,
            RefuseOrder(order_id=order_id, courier_id=str(courier_id), reason=reason),
        )

    def cancel(self, order_id, reason, cancelled_by="admin") -> Order:
        order_id = self.get(order_id).order_id
        return self._transition(
            order_id,
            CancelOrder(order_id=order_id, reason=reason, cancelled_by=cancelled_by),
        )

    # -------------------------------------------------------------------
    # Customer-wide batches
    # -------------------------------------------------------------------
    def approve_customer(self, handle, approved_by, note=None) -> list[Order]:
        """Approve ``handle`` and release their deferred orders; returns the released orders."""
        handle = normalize_handle(handle)
        with self.customer_lock(handle):
            order_ids = [o.order_id for o in orders_for_customer(handle) if not o.is_terminal]
            with self._order_locks.hold_many(order_ids):
                released = current_domain.process(
                    ApproveCustomer(handle=handle, approved_by=approved_by, note=note),
                    asynchronous=False,
                )
        logger.info("Customer approved", handle=handle, approved_by=approved_by, released=released)
        return [self.get(order_id) for order_id in released or []]

    def block_customer(self, handle, reason=None) -> list[Order]:
        """Block ``handle`` and cancel their open orders; returns the cancelled orders."""
        handle = normalize_handle(handle)
        with self.customer_lock(handle):
            order_ids = [o.order_id for o in orders_for_customer(handle) if not o.is_terminal]
            with self._order_locks.hold_many(order_ids):
                cancelled = current_domain.process(
                    BlockCustomer(handle=handle, reason=reason),
                    asynchronous=False,
                )
        logger.info("Customer blocked", handle=handle, reason=reason, cancelled=cancelled)
        return [self.get(order_id) for order_id in cancelled or []]

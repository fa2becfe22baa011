"""Admin moderation — approving or blocking customers, deleting orders, and the dispatch fallout."""

import structlog

from delivery.customer.customer import normalize_handle
from delivery.routing.router import Route

logger = structlog.get_logger(__name__)


class ModerationService:
    def __init__(self, store, board, hub):
        self.store = store
        self.board = board
        self.hub = hub

    def approve_customer(self, handle, approver, note=None) -> int:
        """Approve ``handle`` and dispatch the orders it had waiting. Returns how many were released."""
        handle = normalize_handle(handle)
        released = self.store.approve_customer(handle, approved_by=approver, note=note)

        routes = []
        for order in released:
            route = Route(zone=order.zone, courier_id=order.courier_id)
            priority = False
            if route.has_courier:
                self.board.enqueue(order.order_id, route.courier_id, route.zone, handle, order.created_at)
                priority = self.board.next_for(route.courier_id) == order.order_id
            routes.append((route, priority))

        self.hub.notify_released(released, routes)
        return len(released)

    def block_customer(self, handle, reason=None) -> int:
        """Block ``handle`` and cancel every open order it has. Returns how many were cancelled."""
        handle = normalize_handle(handle)
        cancelled = self.store.block_customer(handle, reason=reason)

        couriers = set()
        for order in cancelled:
            assignment = self.board.remove(order.order_id)
            self.hub.notify_cancelled(order, notify_courier=assignment is not None)
            if assignment is not None:
                couriers.add(assignment.courier_id)

        for courier_id in sorted(couriers):
            next_id = self.board.next_for(courier_id)
            self.hub.present_next(courier_id, self.store.find(next_id) if next_id else None)

        logger.info("Customer blocked from moderation", handle=handle, cancelled=len(cancelled))
        return len(cancelled)

    def delete_order(self, order_id, reason):
        """Admin delete: cancel an order that has not left yet and tell its courier."""
        order = self.store.cancel(order_id, reason=reason, cancelled_by="admin")
        assignment = self.board.remove(order.order_id)
        self.hub.notify_cancelled(order, notify_courier=assignment is not None)
        if assignment is not None:
            next_id = self.board.next_for(assignment.courier_id)
            self.hub.present_next(assignment.courier_id, self.store.find(next_id) if next_id else None)
        return order

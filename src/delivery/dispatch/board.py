"""DispatchBoard — in-memory backlog of routed orders and the relay table.

The board tracks every order that has been handed to a courier and has not
reached a terminal status. A courier's backlog is ordered by order creation
time, so the oldest order is always the priority one, including deferred
orders released later by the admin.

The board also remembers which order, if any, each courier is currently
discussing with its customer. Messaging is half-duplex across orders: a
courier has at most one open conversation, and opening a new one closes
the previous one.

None of this is persisted. After a restart the board is rebuilt from the
open orders in the store, and every conversation starts closed.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class DispatchAssignment:
    order_id: int
    courier_id: str
    zone: str
    customer_handle: str
    created_at: datetime
    in_conversation: bool = field(default=False)

    @property
    def sort_key(self):
        return (self.created_at, self.order_id)


class DispatchBoard:
    def __init__(self):
        self._lock = threading.RLock()
        self._assignments: dict[int, DispatchAssignment] = {}

    # -------------------------------------------------------------------
    # Backlog
    # -------------------------------------------------------------------
    def enqueue(self, order_id, courier_id, zone, customer_handle, created_at) -> DispatchAssignment:
        """Track ``order_id`` for ``courier_id``. Enqueuing twice keeps the first assignment."""
        with self._lock:
            existing = self._assignments.get(order_id)
            if existing is not None:
                return existing

            assignment = DispatchAssignment(
                order_id=order_id,
                courier_id=str(courier_id),
                zone=zone,
                customer_handle=customer_handle,
                created_at=created_at,
            )
            self._assignments[order_id] = assignment
            logger.info("Order enqueued", order_id=order_id, courier_id=courier_id, zone=zone)
            return assignment

    def remove(self, order_id) -> DispatchAssignment | None:
        with self._lock:
            assignment = self._assignments.pop(order_id, None)
        if assignment is not None:
            logger.info("Order removed from board", order_id=order_id, courier_id=assignment.courier_id)
        return assignment

    def assignment(self, order_id) -> DispatchAssignment | None:
        with self._lock:
            return self._assignments.get(order_id)

    def queue_for(self, courier_id, zone=None) -> list[DispatchAssignment]:
        """The courier's backlog, oldest first; the first entry is the priority order."""
        with self._lock:
            mine = [
                a
                for a in self._assignments.values()
                if a.courier_id == str(courier_id) and (zone is None or a.zone == zone)
            ]
        return sorted(mine, key=lambda a: a.sort_key)

    def next_for(self, courier_id, zone=None) -> int | None:
        queue = self.queue_for(courier_id, zone)
        return queue[0].order_id if queue else None

    # -------------------------------------------------------------------
    # Conversations
    # -------------------------------------------------------------------
    def active_conversation(self, courier_id) -> int | None:
        with self._lock:
            for assignment in self._assignments.values():
                if assignment.courier_id == str(courier_id) and assignment.in_conversation:
                    return assignment.order_id
        return None

    def start_conversation(self, order_id) -> int | None:
        """Open the conversation for ``order_id``.

        Returns the id of the order whose conversation had to be closed to
        keep the courier to a single open conversation, if any.
        """
        with self._lock:
            assignment = self._assignments.get(order_id)
            if assignment is None:
                raise KeyError(order_id)

            closed = self.active_conversation(assignment.courier_id)
            if closed == order_id:
                return None
            if closed is not None:
                self._assignments[closed].in_conversation = False
            assignment.in_conversation = True

        logger.info(
            "Conversation opened",
            order_id=order_id,
            courier_id=assignment.courier_id,
            closed_order_id=closed,
        )
        return closed

    def end_conversation(self, order_id) -> bool:
        with self._lock:
            assignment = self._assignments.get(order_id)
            if assignment is None or not assignment.in_conversation:
                return False
            assignment.in_conversation = False
        logger.info("Conversation closed", order_id=order_id, courier_id=assignment.courier_id)
        return True

    def relay(self, courier_id, text) -> int | None:
        """The order a courier's free-text message belongs to, or None when no conversation is open."""
        order_id = self.active_conversation(courier_id)
        if order_id is None:
            logger.info("Free text without an open conversation not relayed", courier_id=courier_id)
            return None
        logger.info("Relaying courier message", order_id=order_id, courier_id=courier_id, length=len(text or ""))
        return order_id

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def rebuild(self, orders) -> int:
        """Replace the board with the routed, open ``orders``; conversations start closed."""
        with self._lock:
            self._assignments.clear()
            for order in orders:
                if order.is_terminal or order.is_deferred or not order.courier_id:
                    continue
                self._assignments[order.order_id] = DispatchAssignment(
                    order_id=order.order_id,
                    courier_id=str(order.courier_id),
                    zone=order.zone,
                    customer_handle=order.customer_handle,
                    created_at=order.created_at,
                )
            count = len(self._assignments)
        logger.info("Dispatch board rebuilt", assignments=count)
        return count

    def clear(self) -> None:
        with self._lock:
            self._assignments.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._assignments)

    def __contains__(self, order_id) -> bool:
        with self._lock:
            return order_id in self._assignments

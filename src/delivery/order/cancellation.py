"""Admin deletion of an order — command and handler.

Orders are never physically removed; deleting one cancels it, which is
only allowed before a courier has left with it.
"""

from protean import handle
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order


@delivery.command(part_of="Order")
class CancelOrder:
    order_id = Integer(required=True)
    reason = String(required=True, max_length=500)
    cancelled_by = String(max_length=50, default="admin")


@delivery.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(reason=command.reason, cancelled_by=command.cancelled_by or "admin")
        repo.add(order)
        return order.order_id

"""Courier actions on an order — commands and handler.

Every action names the acting courier; the order rejects it unless that
courier is the one the order was routed to.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from delivery.accounting.ledger import LedgerEntry
from delivery.config import get_settings
from delivery.domain import delivery
from delivery.order.order import Order


@delivery.command(part_of="Order")
class StartDelivery:
    order_id = Integer(required=True)
    courier_id = String(required=True, max_length=100)
    eta_minutes = Integer(required=True)


@delivery.command(part_of="Order")
class CompleteDelivery:
    order_id = Integer(required=True)
    courier_id = String(required=True, max_length=100)


@delivery.command(part_of="Order")
class RefuseOrder:
    order_id = Integer(required=True)
    courier_id = String(required=True, max_length=100)
    reason = String(max_length=500)


@delivery.command_handler(part_of=Order)
class CourierActionHandler:
    @handle(StartDelivery)
    def start_delivery(self, command):
        buckets = get_settings().ETA_BUCKETS
        if command.eta_minutes not in buckets:
            raise ValidationError(
                {"eta_minutes": [f"ETA must be one of {', '.join(str(b) for b in buckets)} minutes"]}
            )

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.start(command.courier_id, command.eta_minutes)
        repo.add(order)
        return order.order_id

    @handle(CompleteDelivery)
    def complete_delivery(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.complete(command.courier_id)
        repo.add(order)

        current_domain.repository_for(LedgerEntry).add(LedgerEntry.settlement_for(order))
        return order.order_id

    @handle(RefuseOrder)
    def refuse_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.refuse(command.courier_id, reason=command.reason)
        repo.add(order)
        return order.order_id

"""Admin moderation of customers — commands and handler.

Approving a customer releases every order they placed while pending,
oldest first, each priced with the loyalty discount owed at that moment.
Blocking a customer cancels all of their open orders in the same unit of
work. Both return the ids of the orders they touched.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import String
from protean.utils.globals import current_domain

from delivery.config import get_settings
from delivery.customer.customer import CustomerRecord, TrustStatus, normalize_handle
from delivery.customer.loyalty import LoyaltyCalculator, counter_for
from delivery.domain import delivery
from delivery.order.order import Order
from delivery.order.posting import book_orders
from delivery.order.queries import orders_for_customer


@delivery.command(part_of="CustomerRecord")
class ApproveCustomer:
    handle = String(required=True, max_length=100)
    approved_by = String(required=True, max_length=100)
    note = String(max_length=500)


@delivery.command(part_of="CustomerRecord")
class BlockCustomer:
    handle = String(required=True, max_length=100)
    reason = String(max_length=500)


def _load_or_register(handle):
    repo = current_domain.repository_for(CustomerRecord)
    try:
        return repo.get(handle)
    except ObjectNotFoundError:
        # Moderating a handle before its first order is allowed
        return CustomerRecord.first_seen(handle)


@delivery.command_handler(part_of=CustomerRecord)
class ModerationHandler:
    @handle(ApproveCustomer)
    def approve_customer(self, command):
        handle = normalize_handle(command.handle)
        record = _load_or_register(handle)
        if record.trust_status == TrustStatus.APPROVED:
            return []

        record.approve(command.approved_by)
        record.add_note(command.note)
        current_domain.repository_for(CustomerRecord).add(record)

        deferred = [order for order in orders_for_customer(handle) if order.is_deferred]
        if not deferred:
            return []

        calculator = LoyaltyCalculator.from_settings(get_settings())
        counter = counter_for(handle)
        order_repo = current_domain.repository_for(Order)
        for offset, order in enumerate(deferred):
            order.approve(
                command.approved_by,
                discount=calculator.discount(counter.order_count + offset, order.declared_total),
            )
            order_repo.add(order)

        book_orders(deferred, counter)
        return [order.order_id for order in deferred]

    @handle(BlockCustomer)
    def block_customer(self, command):
        handle = normalize_handle(command.handle)
        record = _load_or_register(handle)
        record.block(command.reason)
        current_domain.repository_for(CustomerRecord).add(record)

        order_repo = current_domain.repository_for(Order)
        cancelled = []
        for order in orders_for_customer(handle):
            if order.is_terminal:
                continue
            order.cancel_for_block(command.reason)
            order_repo.add(order)
            cancelled.append(order.order_id)
        return cancelled

"""Create orders from validated storefront checkouts."""

import json

from protean import handle
from protean.fields import Boolean, Float, Integer, String, Text
from protean.utils.globals import current_domain

from delivery.customer.loyalty import counter_for
from delivery.domain import delivery
from delivery.order.order import Order
from delivery.order.posting import book_orders


@delivery.command(part_of="Order")
class CreateOrder:
    order_id = Integer(required=True)
    customer_handle = String(required=True, max_length=100)
    delivery_type = String(required=True, max_length=200)
    address = String(max_length=500)
    lines = Text(required=True)  # JSON: list of line dicts
    declared_total = Float(required=True)
    discount = Float(default=0.0)
    deferred = Boolean(default=False)
    zone = String(max_length=100)
    courier_id = String(max_length=100)


@delivery.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        lines_data = json.loads(command.lines) if isinstance(command.lines, str) else command.lines

        order = Order.create(
            order_id=command.order_id,
            customer_handle=command.customer_handle,
            delivery_type=command.delivery_type,
            address=command.address,
            lines_data=lines_data,
            declared_total=command.declared_total,
            discount=command.discount or 0.0,
            deferred=bool(command.deferred),
            zone=command.zone,
            courier_id=command.courier_id,
        )
        current_domain.repository_for(Order).add(order)

        if not order.is_deferred:
            book_orders([order], counter_for(order.customer_handle))

        return order.order_id

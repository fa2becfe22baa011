"""Read helpers over the Order repository."""

from protean.utils.globals import current_domain

from delivery.order.order import OPEN_STATUSES, Order, OrderStatus


def _sorted(orders):
    return sorted(orders, key=lambda o: o.order_id)


def orders_for_customer(handle: str) -> list[Order]:
    repo = current_domain.repository_for(Order)
    return _sorted(repo._dao.query.filter(customer_handle=handle).all().items)


def orders_with_status(status: OrderStatus | str) -> list[Order]:
    value = status.value if isinstance(status, OrderStatus) else status
    repo = current_domain.repository_for(Order)
    return _sorted(repo._dao.query.filter(status=value).all().items)


def all_orders() -> list[Order]:
    repo = current_domain.repository_for(Order)
    return _sorted(repo._dao.query.all().items)


def open_orders() -> list[Order]:
    """Non-terminal orders, oldest first."""
    orders = []
    for status in OPEN_STATUSES:
        orders.extend(orders_with_status(status))
    return _sorted(orders)

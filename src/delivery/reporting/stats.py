"""Shop statistics for the admin dashboard.

Only booked orders count: deferred orders have not been priced yet and
cancelled ones never produce revenue.
"""

from collections import Counter
from dataclasses import asdict, dataclass

from delivery.inventory.stock import all_stock_lines
from delivery.order.order import OrderStatus
from delivery.order.queries import all_orders

_BOOKED_STATUSES = {
    OrderStatus.PENDING.value,
    OrderStatus.EN_ROUTE.value,
    OrderStatus.DELIVERED.value,
}


@dataclass
class ShopStats:
    revenue: float
    order_count: int
    average_basket: float
    top_product: str | None
    out_of_stock: int
    low_stock: int

    def to_dict(self) -> dict:
        return asdict(self)


def compute_stats(low_stock_threshold: int = 10) -> ShopStats:
    booked = [order for order in all_orders() if order.status in _BOOKED_STATUSES]
    revenue = round(sum(order.total_charged or 0.0 for order in booked), 2)

    sold = Counter()
    for order in booked:
        for line in order.lines:
            sold[line.name] += line.quantity

    lines = all_stock_lines()
    out_of_stock = sum(1 for line in lines if (line.quantity or 0) == 0)
    low_stock = sum(1 for line in lines if 0 < (line.quantity or 0) < low_stock_threshold)

    return ShopStats(
        revenue=revenue,
        order_count=len(booked),
        average_basket=round(revenue / len(booked), 2) if booked else 0.0,
        top_product=sold.most_common(1)[0][0] if sold else None,
        out_of_stock=out_of_stock,
        low_stock=low_stock,
    )

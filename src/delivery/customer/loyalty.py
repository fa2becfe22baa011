"""Loyalty accrual — every Nth approved order earns a capped discount."""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Integer, String
from protean.utils.globals import current_domain

from delivery.domain import delivery


def discount(prior_order_count: int, total: float, threshold: int = 10, rate: float = 0.10, cap: float = 20.0) -> float:
    """Discount owed on an order given how many orders the customer already has.

    The order being priced is number ``prior_order_count + 1``; when that
    number is a multiple of ``threshold`` the discount is ``total * rate``,
    never more than ``cap``. Otherwise it is zero.
    """
    if prior_order_count < 0:
        raise ValueError("prior_order_count cannot be negative")
    if threshold < 1:
        raise ValueError("threshold must be at least 1")
    if total < 0:
        raise ValueError("total cannot be negative")

    if (prior_order_count + 1) % threshold != 0:
        return 0.0
    return round(min(total * rate, cap), 2)


class LoyaltyCalculator:
    """``discount`` bound to the shop's configured threshold, rate and cap."""

    def __init__(self, threshold: int = 10, rate: float = 0.10, cap: float = 20.0):
        self.threshold = threshold
        self.rate = rate
        self.cap = cap

    @classmethod
    def from_settings(cls, settings):
        return cls(
            threshold=settings.LOYALTY_THRESHOLD,
            rate=settings.LOYALTY_RATE,
            cap=settings.LOYALTY_CAP,
        )

    def discount(self, prior_order_count: int, total: float) -> float:
        return discount(prior_order_count, total, threshold=self.threshold, rate=self.rate, cap=self.cap)


@delivery.aggregate
class LoyaltyCounter:
    """Lifetime count of a customer's non-deferred orders. Never decremented."""

    handle: String(identifier=True, max_length=100)
    order_count: Integer(default=0, min_value=0)
    last_order_at: DateTime()

    def record_order(self, ordered_at=None):
        self.order_count = (self.order_count or 0) + 1
        self.last_order_at = ordered_at or datetime.now(UTC)


def counter_for(handle: str) -> LoyaltyCounter:
    """The stored counter for ``handle``, or a fresh unsaved one at zero."""
    try:
        return current_domain.repository_for(LoyaltyCounter).get(handle)
    except ObjectNotFoundError:
        return LoyaltyCounter(handle=handle, order_count=0)

"""Side effects booked when orders stop being deferred.

Stock withdrawal, revenue and loyalty accrual are always booked together,
inside the unit of work that moves the order out of PENDING_APPROVAL (or
creates it directly in PENDING).
"""

from protean.utils.globals import current_domain

from delivery.accounting.ledger import LedgerEntry
from delivery.customer.loyalty import LoyaltyCounter
from delivery.inventory.stock import StockLedger


def book_orders(orders, counter: LoyaltyCounter) -> None:
    """Withdraw stock, book revenue and count loyalty for each order, oldest first."""
    stock = StockLedger()
    ledger_repo = current_domain.repository_for(LedgerEntry)

    for order in sorted(orders, key=lambda o: o.order_id):
        stock.apply(order)
        ledger_repo.add(LedgerEntry.revenue_for(order))
        counter.record_order(order.approved_at or order.created_at)

    stock.commit()
    current_domain.repository_for(LoyaltyCounter).add(counter)

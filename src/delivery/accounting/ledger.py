"""Cash ledger — append-only revenue, expense and settlement entries.

Revenue is booked when an order stops being deferred; a settlement is
booked when the courier hands the order over and collects the cash.
The cash balance is revenue minus expenses: settlements only document
who holds the money.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Integer, String
from protean.utils.globals import current_domain

from delivery.domain import delivery


class EntryType(Enum):
    REVENUE = "revenue"
    EXPENSE = "expense"
    SETTLEMENT = "settlement"


SALES_CATEGORY = "vente"
DELIVERY_CATEGORY = "livraison"


@delivery.aggregate(limit=None)
class LedgerEntry:
    entry_type: String(choices=EntryType, required=True)
    amount: Float(required=True, min_value=0.01)
    category: String(max_length=100)
    description: String(max_length=500)
    order_id: Integer()
    created_at: DateTime()

    @classmethod
    def record(cls, entry_type, amount, category=None, description=None, order_id=None):
        return cls(
            entry_type=entry_type.value if isinstance(entry_type, EntryType) else entry_type,
            amount=round(amount, 2),
            category=category,
            description=description,
            order_id=order_id,
            created_at=datetime.now(UTC),
        )

    @classmethod
    def revenue_for(cls, order):
        return cls.record(
            EntryType.REVENUE,
            order.total_charged,
            category=SALES_CATEGORY,
            description=f"Commande #{order.order_id}",
            order_id=order.order_id,
        )

    @classmethod
    def settlement_for(cls, order):
        return cls.record(
            EntryType.SETTLEMENT,
            order.total_charged,
            category=DELIVERY_CATEGORY,
            description=f"Livraison #{order.order_id} encaissée",
            order_id=order.order_id,
        )


def cash_balance(entries) -> float:
    balance = 0.0
    for entry in entries:
        if entry.entry_type == EntryType.REVENUE.value:
            balance += entry.amount
        elif entry.entry_type == EntryType.EXPENSE.value:
            balance -= entry.amount
    return round(balance, 2)


def all_entries() -> list[LedgerEntry]:
    """Every ledger entry, oldest first."""
    repo = current_domain.repository_for(LedgerEntry)
    return sorted(repo._dao.query.all().items, key=lambda entry: entry.created_at)

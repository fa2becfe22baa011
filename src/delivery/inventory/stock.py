"""Stock lines, their append-only movement log, and the ledger that applies them.

Quantities never go negative: a withdrawal larger than what is on hand
clamps the line to zero. Each movement records both the requested and the
applied quantity, so summing the signed *applied* quantities of a line's
movements always reconstructs its current quantity.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Integer, String
from protean.utils.globals import current_domain

from delivery.domain import delivery

logger = structlog.get_logger(__name__)


class MovementDirection(Enum):
    IN = "in"
    OUT = "out"


def stock_key(product_id, variant=None) -> str:
    return f"{product_id}:{variant or ''}"


@delivery.aggregate(limit=None)
class StockLine:
    key: String(identifier=True, max_length=255)
    product_id: String(required=True, max_length=100)
    variant: String(max_length=100)
    name: String(max_length=255)
    quantity: Integer(default=0, min_value=0)
    updated_at: DateTime()

    @classmethod
    def open(cls, product_id, variant=None, name=None):
        return cls(
            key=stock_key(product_id, variant),
            product_id=str(product_id),
            variant=variant,
            name=name,
            quantity=0,
        )


@delivery.aggregate(limit=None)
class StockMovement:
    product_id: String(required=True, max_length=100)
    variant: String(max_length=100)
    direction: String(choices=MovementDirection, required=True)
    requested_quantity: Integer(required=True, min_value=1)
    quantity: Integer(required=True, min_value=0)  # Applied, after clamping
    stock_after: Integer(required=True, min_value=0)
    reason: String(max_length=500)
    order_id: Integer()
    created_at: DateTime()

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.direction == MovementDirection.IN.value else -self.quantity


class StockLedger:
    """Applies stock movements for one unit of work.

    Lines are loaded once and kept in memory, so an order listing the same
    product twice, or several orders released together, are applied
    sequentially against the running quantity. Nothing is written until
    ``commit`` is called.
    """

    def __init__(self):
        self._lines: dict[str, StockLine] = {}
        self._movements: list[StockMovement] = []

    def _line(self, product_id, variant, name=None) -> StockLine:
        key = stock_key(product_id, variant)
        if key not in self._lines:
            try:
                self._lines[key] = current_domain.repository_for(StockLine).get(key)
            except ObjectNotFoundError:
                self._lines[key] = StockLine.open(product_id, variant, name)
        line = self._lines[key]
        if name and not line.name:
            line.name = name
        return line

    def _record(self, line, direction, requested, applied, reason, order_id) -> StockMovement:
        now = datetime.now(UTC)
        line.updated_at = now
        movement = StockMovement(
            product_id=line.product_id,
            variant=line.variant,
            direction=direction.value,
            requested_quantity=requested,
            quantity=applied,
            stock_after=line.quantity,
            reason=reason,
            order_id=order_id,
            created_at=now,
        )
        self._movements.append(movement)
        return movement

    def withdraw(self, product_id, variant, quantity, reason, order_id=None, name=None) -> StockMovement:
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Movement quantity must be at least 1"]})

        line = self._line(product_id, variant, name)
        before = line.quantity or 0
        line.quantity = max(0, before - quantity)
        if before < quantity:
            logger.warning(
                "Stock withdrawal clamped at zero",
                product_id=line.product_id,
                variant=line.variant,
                on_hand=before,
                requested=quantity,
            )
        return self._record(line, MovementDirection.OUT, quantity, before - line.quantity, reason, order_id)

    def restock(self, product_id, variant, quantity, reason, name=None) -> StockMovement:
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Movement quantity must be at least 1"]})

        line = self._line(product_id, variant, name)
        line.quantity = (line.quantity or 0) + quantity
        return self._record(line, MovementDirection.IN, quantity, quantity, reason, None)

    def apply(self, order) -> list[StockMovement]:
        """Withdraw every line item of ``order``."""
        reason = f"Commande #{order.order_id}"
        return [
            self.withdraw(
                item.product_id,
                item.variant,
                item.quantity,
                reason,
                order_id=order.order_id,
                name=item.name,
            )
            for item in order.lines
        ]

    def commit(self) -> None:
        line_repo = current_domain.repository_for(StockLine)
        for line in self._lines.values():
            line_repo.add(line)

        movement_repo = current_domain.repository_for(StockMovement)
        for movement in self._movements:
            movement_repo.add(movement)

        self._movements = []


def movements_for(product_id, variant=None) -> list[StockMovement]:
    """Movements of one stock line, oldest first."""
    repo = current_domain.repository_for(StockMovement)
    movements = repo._dao.query.filter(product_id=str(product_id)).all().items
    return sorted(
        (m for m in movements if (m.variant or "") == (variant or "")),
        key=lambda m: m.created_at,
    )


def all_movements() -> list[StockMovement]:
    repo = current_domain.repository_for(StockMovement)
    return sorted(repo._dao.query.all().items, key=lambda m: m.created_at)


def all_stock_lines() -> list[StockLine]:
    repo = current_domain.repository_for(StockLine)
    return sorted(repo._dao.query.all().items, key=lambda line: line.key)

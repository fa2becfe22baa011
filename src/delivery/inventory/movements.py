"""Record manual stock movements (receipts, corrections, losses)."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Integer, String

from delivery.domain import delivery
from delivery.inventory.stock import MovementDirection, StockLedger, StockMovement


@delivery.command(part_of="StockMovement")
class RecordStockMovement:
    product_id = String(required=True, max_length=100)
    variant = String(max_length=100)
    name = String(max_length=255)
    direction = String(required=True, choices=MovementDirection)
    quantity = Integer(required=True)
    reason = String(max_length=500)


@delivery.command_handler(part_of=StockMovement)
class StockMovementHandler:
    @handle(RecordStockMovement)
    def record_movement(self, command):
        if command.quantity is None or command.quantity < 1:
            raise ValidationError({"quantity": ["Movement quantity must be at least 1"]})

        ledger = StockLedger()
        if command.direction == MovementDirection.IN.value:
            movement = ledger.restock(
                command.product_id,
                command.variant,
                command.quantity,
                command.reason or "Réapprovisionnement",
                name=command.name,
            )
        else:
            movement = ledger.withdraw(
                command.product_id,
                command.variant,
                command.quantity,
                command.reason or "Sortie manuelle",
                name=command.name,
            )
        ledger.commit()
        return movement.stock_after

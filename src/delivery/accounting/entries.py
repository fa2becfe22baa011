"""Manual revenue and expense entries recorded by the admin."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, String
from protean.utils.globals import current_domain

from delivery.accounting.ledger import EntryType, LedgerEntry
from delivery.domain import delivery


@delivery.command(part_of="LedgerEntry")
class RecordLedgerEntry:
    entry_type = String(required=True, choices=EntryType)
    amount = Float(required=True)
    category = String(max_length=100)
    description = String(max_length=500)


@delivery.command_handler(part_of=LedgerEntry)
class LedgerEntryHandler:
    @handle(RecordLedgerEntry)
    def record_entry(self, command):
        if command.entry_type == EntryType.SETTLEMENT.value:
            raise ValidationError({"entry_type": ["Settlements are only booked by completed deliveries"]})
        if command.amount is None or command.amount <= 0:
            raise ValidationError({"amount": ["Amount must be positive"]})

        entry = LedgerEntry.record(
            command.entry_type,
            command.amount,
            category=command.category,
            description=command.description,
        )
        current_domain.repository_for(LedgerEntry).add(entry)
        return str(entry.id)

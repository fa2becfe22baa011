"""CustomerRecord aggregate — trust status of a pseudonymous customer handle.

Handles are opaque strings supplied by the storefront; they are not verified
identities. A record is created lazily the first time a handle orders and
its trust status only ever moves forward:

    PENDING → APPROVED → BLOCKED
    PENDING → BLOCKED
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from delivery.customer.events import CustomerApproved, CustomerBlocked, CustomerFirstSeen
from delivery.domain import delivery
from delivery.errors import IllegalTransitionError


class TrustStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    BLOCKED = "blocked"


_VALID_TRANSITIONS = {
    TrustStatus.PENDING: {TrustStatus.APPROVED, TrustStatus.BLOCKED},
    TrustStatus.APPROVED: {TrustStatus.BLOCKED},
    TrustStatus.BLOCKED: set(),  # Terminal
}


def normalize_handle(handle: str) -> str:
    """Canonical form of a handle: trimmed, without a leading ``@``, lowercase."""
    return (handle or "").strip().lstrip("@").strip().lower()


@delivery.aggregate(limit=None)
class CustomerRecord:
    handle: String(identifier=True, max_length=100)
    status: String(choices=TrustStatus, default=TrustStatus.PENDING.value)
    first_seen_at: DateTime()
    approved_at: DateTime()
    approved_by: String(max_length=100)
    blocked_at: DateTime()
    block_reason: String(max_length=500)
    notes: Text()

    @classmethod
    def first_seen(cls, handle):
        now = datetime.now(UTC)
        record = cls(
            handle=handle,
            status=TrustStatus.PENDING.value,
            first_seen_at=now,
        )
        record.raise_(CustomerFirstSeen(handle=handle, first_seen_at=now))
        return record

    @property
    def trust_status(self) -> TrustStatus:
        return TrustStatus(self.status)

    def _assert_can_transition(self, target_status):
        current = self.trust_status
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise IllegalTransitionError(
                {"status": [f"Customer {self.handle} cannot go from {current.value} to {target_status.value}"]}
            )

    def approve(self, approved_by):
        self._assert_can_transition(TrustStatus.APPROVED)

        now = datetime.now(UTC)
        self.status = TrustStatus.APPROVED.value
        self.approved_at = now
        self.approved_by = approved_by

        self.raise_(CustomerApproved(handle=self.handle, approved_by=approved_by, approved_at=now))

    def block(self, reason=None):
        self._assert_can_transition(TrustStatus.BLOCKED)

        previous = self.status
        now = datetime.now(UTC)
        self.status = TrustStatus.BLOCKED.value
        self.blocked_at = now
        self.block_reason = reason

        self.raise_(CustomerBlocked(handle=self.handle, previous_status=previous, reason=reason, blocked_at=now))

    def add_note(self, note):
        note = (note or "").strip()
        if note:
            self.notes = f"{self.notes}\n{note}" if self.notes else note


def list_customers(status=None) -> list[CustomerRecord]:
    """Customer records by handle, optionally only those with ``status``."""
    repo = current_domain.repository_for(CustomerRecord)
    query = repo._dao.query
    if status:
        try:
            status = TrustStatus(status)
        except ValueError as exc:
            raise ValidationError({"status": [f"Unknown trust status: {status!r}"]}) from exc
        query = query.filter(status=status.value)
    return sorted(query.all().items, key=lambda record: record.handle)

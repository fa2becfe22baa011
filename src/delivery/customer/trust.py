"""Trust gate — decides whether a handle's order proceeds or waits for review."""

from enum import Enum

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from delivery.customer.customer import CustomerRecord, TrustStatus, normalize_handle

logger = structlog.get_logger(__name__)


class TrustDecision(Enum):
    APPROVED = "Approved"
    PENDING_FIRST_ORDER = "PendingFirstOrder"
    BLOCKED = "Blocked"


_DECISIONS = {
    TrustStatus.APPROVED: TrustDecision.APPROVED,
    TrustStatus.PENDING: TrustDecision.PENDING_FIRST_ORDER,
    TrustStatus.BLOCKED: TrustDecision.BLOCKED,
}


class TrustGate:
    """Looks up, or lazily registers, the CustomerRecord behind a handle.

    Registration relies on the handle being the record's identity: when two
    first orders from the same handle race, the loser's insert is rejected
    as a duplicate and it re-reads the winner's record instead.
    """

    def evaluate(self, handle: str) -> TrustDecision:
        record = self.get_or_create(handle)
        return _DECISIONS[record.trust_status]

    def get_or_create(self, handle: str) -> CustomerRecord:
        handle = normalize_handle(handle)
        if not handle:
            raise ValidationError({"customer_handle": ["Customer handle is required"]})

        repo = current_domain.repository_for(CustomerRecord)
        try:
            return repo.get(handle)
        except ObjectNotFoundError:
            pass

        record = CustomerRecord.first_seen(handle)
        try:
            repo.add(record)
        except ValidationError:
            logger.info("Customer registered concurrently, re-reading", handle=handle)
            return repo.get(handle)

        logger.info("New customer handle registered as pending", handle=handle)
        return record

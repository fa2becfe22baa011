"""Monotonic order numbers.

Numbers are handed out in their own commit, before the order itself is
written, so a number is never reused even when creating the order fails.
"""

import threading

from protean.exceptions import ObjectNotFoundError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from delivery.domain import delivery

ORDER_SEQUENCE = "orders"


@delivery.aggregate
class OrderSequence:
    name: String(identifier=True, max_length=50)
    last_value: Integer(default=0, min_value=0)

    def advance(self) -> int:
        self.last_value = (self.last_value or 0) + 1
        return self.last_value


_sequence_lock = threading.Lock()


def next_order_id(name: str = ORDER_SEQUENCE) -> int:
    with _sequence_lock:
        repo = current_domain.repository_for(OrderSequence)
        try:
            sequence = repo.get(name)
        except ObjectNotFoundError:
            sequence = OrderSequence(name=name, last_value=0)
        value = sequence.advance()
        repo.add(sequence)
        return value

"""Delivery bounded context — order lifecycle and courier dispatch.

Owns the customer trust gate, loyalty accrual, the stock and cash ledgers,
the order state machine and its audit timeline. The in-memory dispatch
board and the chat notification hub are composed on top of it in
``delivery.services``.
"""

from protean.domain import Domain

from delivery.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

delivery = Domain(name="delivery")

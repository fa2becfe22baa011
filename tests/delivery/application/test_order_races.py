"""Concurrent actions on one order are applied one after the other."""

import contextvars
import threading

import pytest

from delivery.errors import IllegalTransitionError
from delivery.order.order import OrderStatus

MILLAU_COURIER = "courier-millau"
ROUNDS = 10


def _race(*actions):
    """Run ``actions`` at the same moment; returns each one's result or exception."""
    barrier = threading.Barrier(len(actions))
    outcomes = [None] * len(actions)

    def runner(index, action):
        barrier.wait(timeout=5)
        try:
            outcomes[index] = action()
        except Exception as exc:  # collected for assertions
            outcomes[index] = exc

    threads = [
        threading.Thread(target=contextvars.copy_context().run, args=(runner, index, action))
        for index, action in enumerate(actions)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    return outcomes


@pytest.fixture()
def pending_order(services, cart, approved):
    approved("bob")
    return lambda: services.intake.place_order(cart("bob")).order_id


class TestOrderRaces:
    def test_start_against_refuse(self, services, pending_order):
        for _ in range(ROUNDS):
            order_id = pending_order()
            started, refused = _race(
                lambda: services.store.start(order_id, MILLAU_COURIER, 30),
                lambda: services.store.refuse(order_id, MILLAU_COURIER),
            )

            failures = [o for o in (started, refused) if isinstance(o, Exception)]
            assert len(failures) == 1
            assert isinstance(failures[0], IllegalTransitionError)

            final = services.store.get(order_id).status
            if isinstance(refused, Exception):
                assert final == OrderStatus.EN_ROUTE.value
            else:
                assert final == OrderStatus.CANCELLED.value

    def test_start_against_admin_delete(self, services, pending_order):
        for _ in range(ROUNDS):
            order_id = pending_order()
            started, deleted = _race(
                lambda: services.store.start(order_id, MILLAU_COURIER, 30),
                lambda: services.store.cancel(order_id, reason="Doublon"),
            )

            failures = [o for o in (started, deleted) if isinstance(o, Exception)]
            assert len(failures) == 1
            assert isinstance(failures[0], IllegalTransitionError)

            final = services.store.get(order_id)
            if isinstance(deleted, Exception):
                assert final.status == OrderStatus.EN_ROUTE.value
                assert final.eta_minutes == 30
            else:
                assert final.status == OrderStatus.CANCELLED.value
                assert final.cancellation_reason == "Doublon"

"""Reads that span more orders than one default page of results."""

import pytest

from delivery.order.order import OrderStatus
from delivery.reporting.stats import compute_stats
from delivery.services.container import build_services, rebuild_board

MILLAU_COURIER = "courier-millau"
BACKLOG = 105


@pytest.fixture()
def backlog(services, cart, approved):
    approved("bob")
    return [services.intake.place_order(cart("bob")).order_id for _ in range(BACKLOG)]


class TestLargeBacklogs:
    def test_block_cancels_every_open_order(self, services, backlog):
        cancelled = services.moderation.block_customer("bob", reason="Fraude")

        assert cancelled == BACKLOG
        assert services.store.open_orders() == []
        assert services.board.queue_for(MILLAU_COURIER) == []

    def test_listing_returns_every_order(self, services, backlog):
        assert len(services.store.list_orders()) == BACKLOG
        assert len(services.store.list_orders(status=OrderStatus.PENDING.value)) == BACKLOG
        assert len(services.store.list_orders(customer_handle="bob")) == BACKLOG

    def test_stats_count_every_booked_order(self, backlog):
        assert compute_stats().order_count == BACKLOG

    def test_rebuild_restores_every_open_order(self, services, settings, chat, backlog):
        restarted = build_services(settings, channel=chat)

        assert rebuild_board(restarted) == BACKLOG
        assert [a.order_id for a in restarted.board.queue_for(MILLAU_COURIER)] == backlog

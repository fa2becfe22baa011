"""Application tests for approving and blocking customers."""

import pytest
from protean import current_domain

from delivery.accounting.ledger import all_entries
from delivery.customer.customer import CustomerRecord, TrustStatus, list_customers
from delivery.customer.loyalty import LoyaltyCounter, counter_for
from delivery.errors import IllegalTransitionError, TrustError
from delivery.inventory.stock import all_movements
from delivery.notifications.notification import MessageKind
from delivery.order.order import OrderStatus

MILLAU_COURIER = "courier-millau"


class TestApproveCustomer:
    def test_releases_deferred_orders_oldest_first(self, services, cart):
        first = services.intake.place_order(cart())
        second = services.intake.place_order(cart())

        released = services.moderation.approve_customer("alice", approver="admin")

        assert released == 2
        for result in (first, second):
            order = services.store.get(result.order_id)
            assert order.status == OrderStatus.PENDING.value
            assert order.approved_by == "admin"
        assert [a.order_id for a in services.board.queue_for(MILLAU_COURIER)] == [first.order_id, second.order_id]

    def test_release_books_stock_revenue_and_loyalty(self, services, cart):
        services.intake.place_order(cart())
        services.intake.place_order(cart())

        services.moderation.approve_customer("alice", approver="admin")

        assert len(all_movements()) == 2
        assert [e.entry_type for e in all_entries()] == ["revenue", "revenue"]
        assert counter_for("alice").order_count == 2

    def test_discounts_follow_the_running_count(self, services, cart):
        current_domain.repository_for(LoyaltyCounter).add(LoyaltyCounter(handle="dave", order_count=8))
        results = [services.intake.place_order(cart("dave")) for _ in range(3)]

        services.moderation.approve_customer("dave", approver="admin")

        discounts = [services.store.get(r.order_id).discount for r in results]
        assert discounts == [0.0, 2.5, 0.0]
        assert counter_for("dave").order_count == 11

    def test_released_orders_are_dispatched(self, services, cart, chat):
        result = services.intake.place_order(cart())
        assert chat.messages_to(MILLAU_COURIER) == []

        services.moderation.approve_customer("alice", approver="admin")

        (card,) = chat.messages_to(MILLAU_COURIER)
        assert f"#{result.order_id}" in card["text"]

    def test_approving_twice_is_a_no_op(self, services, cart):
        services.intake.place_order(cart())
        services.moderation.approve_customer("alice", approver="admin")

        assert services.moderation.approve_customer("alice", approver="admin") == 0
        assert len(all_entries()) == 1

    def test_note_is_kept(self, services):
        services.moderation.approve_customer("erin", approver="admin", note="Cliente du marché")
        record = current_domain.repository_for(CustomerRecord).get("erin")
        assert record.notes == "Cliente du marché"

    def test_blocked_customer_cannot_be_approved(self, services):
        services.moderation.block_customer("mallory")
        with pytest.raises(IllegalTransitionError):
            services.moderation.approve_customer("mallory", approver="admin")


class TestBlockCustomer:
    def test_cancels_every_open_order(self, services, cart, approved):
        approved("bob")
        pending = services.intake.place_order(cart("bob"))
        en_route = services.intake.place_order(cart("bob"))
        services.store.start(en_route.order_id, MILLAU_COURIER, 30)

        cancelled = services.moderation.block_customer("bob", reason="Impayé")

        assert cancelled == 2
        for result in (pending, en_route):
            order = services.store.get(result.order_id)
            assert order.status == OrderStatus.CANCELLED.value
            assert order.cancelled_by == "customer_block"
            assert result.order_id not in services.board

    def test_delivered_orders_are_left_alone(self, services, cart, approved):
        approved("bob")
        result = services.intake.place_order(cart("bob"))
        services.store.start(result.order_id, MILLAU_COURIER, 15)
        services.store.complete(result.order_id, MILLAU_COURIER)

        assert services.moderation.block_customer("bob") == 0
        assert services.store.get(result.order_id).status == OrderStatus.DELIVERED.value

    def test_courier_is_told_and_shown_the_backlog(self, services, cart, approved, notifications_to):
        approved("bob")
        services.intake.place_order(cart("bob"))

        services.moderation.block_customer("bob")

        kinds = [n.kind for n in notifications_to(MILLAU_COURIER)]
        assert kinds[-2:] == [MessageKind.CANCELLED.value, MessageKind.NEXT_ORDER.value]

    def test_unseen_handle_is_blocked_before_ordering(self, services, cart):
        assert services.moderation.block_customer("stranger") == 0
        assert [r.handle for r in list_customers("blocked")] == ["stranger"]
        with pytest.raises(TrustError):
            services.intake.place_order(cart("stranger"))

    def test_blocking_twice_is_rejected(self, services):
        services.moderation.block_customer("mallory")
        with pytest.raises(IllegalTransitionError):
            services.moderation.block_customer("mallory")
        record = current_domain.repository_for(CustomerRecord).get("mallory")
        assert record.trust_status == TrustStatus.BLOCKED


class TestDeleteOrder:
    def test_pending_order_is_cancelled_and_courier_moves_on(self, services, cart, approved, notifications_to):
        approved("bob")
        first = services.intake.place_order(cart("bob"))
        second = services.intake.place_order(cart("bob"))

        order = services.moderation.delete_order(first.order_id, reason="Doublon")

        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Doublon"
        assert services.board.next_for(MILLAU_COURIER) == second.order_id
        (next_card,) = notifications_to(MILLAU_COURIER, MessageKind.NEXT_ORDER)
        assert next_card.order_id == second.order_id

    def test_en_route_order_cannot_be_deleted(self, services, cart, approved):
        approved("bob")
        result = services.intake.place_order(cart("bob"))
        services.store.start(result.order_id, MILLAU_COURIER, 30)

        with pytest.raises(IllegalTransitionError):
            services.moderation.delete_order(result.order_id, reason="Erreur")
        assert services.store.get(result.order_id).status == OrderStatus.EN_ROUTE.value
        assert result.order_id in services.board

"""Rebuilding the dispatch board from the store after a restart."""

from delivery.services.container import build_services, rebuild_board

MILLAU_COURIER = "courier-millau"


class TestBoardRebuild:
    def test_restart_restores_routed_open_orders(self, services, settings, chat, cart, approved):
        approved("bob")
        first = services.intake.place_order(cart("bob")).order_id
        en_route = services.intake.place_order(cart("bob")).order_id
        services.store.start(en_route, MILLAU_COURIER, 30)
        delivered = services.intake.place_order(cart("bob")).order_id
        services.store.start(delivered, MILLAU_COURIER, 15)
        services.store.complete(delivered, MILLAU_COURIER)
        services.intake.place_order(cart("alice"))
        services.intake.place_order(cart("bob", delivery_type="Livraison Larzac"))

        restarted = build_services(settings, channel=chat)
        assert rebuild_board(restarted) == 2
        assert [a.order_id for a in restarted.board.queue_for(MILLAU_COURIER)] == [first, en_route]

    def test_conversations_start_closed(self, services, settings, chat, cart, approved):
        approved("bob")
        order_id = services.intake.place_order(cart("bob")).order_id
        services.board.start_conversation(order_id)

        restarted = build_services(settings, channel=chat)
        rebuild_board(restarted)

        assert restarted.board.active_conversation(MILLAU_COURIER) is None
        assert order_id in restarted.board

"""Application tests for inbound chat events: courier buttons, admin buttons and text commands."""

import pytest

from delivery.notifications.notification import MessageKind
from delivery.order.order import OrderStatus

ADMIN = "admin-chat"
SUPPORT = "support-chat"
MILLAU_COURIER = "courier-millau"
EXTERIEUR_COURIER = "courier-ext"


@pytest.fixture
def placed(services, cart, approved):
    """Place an order for an approved customer; returns its id."""

    def _place(handle="bob", **overrides):
        approved(handle)
        return services.intake.place_order(cart(handle, **overrides)).order_id

    return _place


def _last_text(chat, recipient):
    return chat.messages_to(recipient)[-1]["text"]


class TestStartDelivery:
    def test_start_asks_for_an_eta(self, placed, press, notifications_to):
        order_id = placed()
        press(MILLAU_COURIER, f"st:{order_id}")

        (picker,) = notifications_to(MILLAU_COURIER, MessageKind.ETA_PICKER)
        assert picker.order_id == order_id

    def test_choosing_an_eta_puts_the_order_en_route(self, services, placed, press, chat):
        order_id = placed()
        press(MILLAU_COURIER, f"eta:{order_id}:30")

        order = services.store.get(order_id)
        assert order.status == OrderStatus.EN_ROUTE.value
        assert order.eta_minutes == 30
        assert "@bob" in _last_text(chat, SUPPORT)
        assert "~30 min" in _last_text(chat, ADMIN)
        assert "bob" not in _last_text(chat, MILLAU_COURIER)

    def test_eta_outside_the_buckets_is_rejected(self, services, placed, press, chat):
        order_id = placed()
        press(MILLAU_COURIER, f"eta:{order_id}:20")

        assert services.store.get(order_id).status == OrderStatus.PENDING.value
        assert "ETA" in _last_text(chat, MILLAU_COURIER)

    def test_another_courier_cannot_start_the_order(self, services, placed, press, chat):
        order_id = placed()
        support_before = len(chat.messages_to(SUPPORT))

        press(EXTERIEUR_COURIER, f"eta:{order_id}:30")

        assert services.store.get(order_id).status == OrderStatus.PENDING.value
        assert "not assigned to you" in _last_text(chat, EXTERIEUR_COURIER)
        assert len(chat.messages_to(SUPPORT)) == support_before

    def test_started_order_cannot_be_started_again(self, placed, press, chat):
        order_id = placed()
        press(MILLAU_COURIER, f"eta:{order_id}:15")
        press(MILLAU_COURIER, f"st:{order_id}")
        assert "ne peut pas démarrer" in _last_text(chat, MILLAU_COURIER)

    def test_button_is_always_acknowledged(self, placed, press, chat):
        order_id = placed()
        press(EXTERIEUR_COURIER, f"ok:{order_id}", callback_id="cb-77")
        assert chat.answered_callbacks[-1]["callback_id"] == "cb-77"

    def test_unknown_order(self, press, chat):
        press(MILLAU_COURIER, "st:999")
        assert "introuvable" in _last_text(chat, MILLAU_COURIER)


class TestFinishingOrders:
    def test_complete_presents_the_next_order(self, services, placed, press, notifications_to):
        first = placed()
        second = placed()

        press(MILLAU_COURIER, f"eta:{first}:15")
        press(MILLAU_COURIER, f"ok:{first}")

        assert services.store.get(first).status == OrderStatus.DELIVERED.value
        assert first not in services.board
        assert notifications_to(MILLAU_COURIER, MessageKind.NEXT_ORDER)[-1].order_id == second
        assert notifications_to(ADMIN, MessageKind.DELIVERED)

    def test_complete_before_leaving_is_rejected(self, services, placed, press, chat):
        order_id = placed()
        press(MILLAU_COURIER, f"ok:{order_id}")

        assert services.store.get(order_id).status == OrderStatus.PENDING.value
        assert "cannot go from pending to delivered" in _last_text(chat, MILLAU_COURIER)

    def test_refuse_cancels_and_tells_operators(self, services, placed, press, notifications_to):
        order_id = placed()
        press(MILLAU_COURIER, f"no:{order_id}")

        order = services.store.get(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancelled_by == MILLAU_COURIER
        assert notifications_to(ADMIN, MessageKind.CANCELLED)
        assert notifications_to(SUPPORT, MessageKind.CANCELLED)
        assert notifications_to(MILLAU_COURIER, MessageKind.CANCELLED) == []
        assert notifications_to(MILLAU_COURIER, MessageKind.NEXT_ORDER)[-1].order_id is None


class TestConversations:
    def test_courier_messages_are_relayed_to_support(self, placed, press, say, chat):
        order_id = placed()
        press(MILLAU_COURIER, f"ct:{order_id}")
        say(MILLAU_COURIER, "Je suis devant la porte")

        relay = _last_text(chat, SUPPORT)
        assert f"#{order_id}" in relay
        assert "@bob" in relay
        assert "Je suis devant la porte" in relay

    def test_support_replies_reach_the_courier(self, placed, press, say, chat):
        order_id = placed()
        press(MILLAU_COURIER, f"ct:{order_id}")
        say(SUPPORT, f"/reply {order_id} Le client descend")

        assert "Le client descend" in _last_text(chat, MILLAU_COURIER)

    def test_opening_a_second_conversation_closes_the_first(self, services, placed, press):
        first = placed()
        second = placed()
        press(MILLAU_COURIER, f"ct:{first}")
        press(MILLAU_COURIER, f"ct:{second}")

        assert services.board.active_conversation(MILLAU_COURIER) == second
        assert not services.board.assignment(first).in_conversation

    def test_end_command_closes_the_conversation(self, services, placed, press, say, chat):
        order_id = placed()
        press(MILLAU_COURIER, f"ct:{order_id}")
        say(MILLAU_COURIER, "/fin")

        assert services.board.active_conversation(MILLAU_COURIER) is None
        say(MILLAU_COURIER, "encore là ?")
        assert "Commande non reconnue" in _last_text(chat, MILLAU_COURIER)

    def test_reply_without_open_conversation(self, placed, say, chat):
        order_id = placed()
        say(SUPPORT, f"/reply {order_id} Bonjour")
        assert "Aucune conversation ouverte" in _last_text(chat, SUPPORT)

    def test_reply_is_reserved_to_support(self, placed, press, say, chat):
        order_id = placed()
        press(MILLAU_COURIER, f"ct:{order_id}")
        say(MILLAU_COURIER, f"/reply {order_id} test")
        assert "réservée au support" in _last_text(chat, MILLAU_COURIER)

    def test_commands_take_precedence_over_relay(self, placed, press, say, chat):
        order_id = placed()
        press(MILLAU_COURIER, f"ct:{order_id}")
        support_before = len(chat.messages_to(SUPPORT))

        say(MILLAU_COURIER, "/help")

        assert "Boutons des cartes" in _last_text(chat, MILLAU_COURIER)
        assert len(chat.messages_to(SUPPORT)) == support_before


class TestQueue:
    def test_queue_lists_backlog_oldest_first(self, placed, say, chat):
        first = placed()
        second = placed()
        say(MILLAU_COURIER, "/file")

        text = _last_text(chat, MILLAU_COURIER)
        assert text.index(f"#{first}") < text.index(f"#{second}")

    def test_queue_button_is_limited_to_own_zones(self, press, chat):
        press(MILLAU_COURIER, "q:exterieur")
        assert "ne livrez pas la zone" in _last_text(chat, MILLAU_COURIER)

    def test_queue_command_is_reserved_to_couriers(self, say, chat):
        say(SUPPORT, "/file")
        assert "réservée aux livreurs" in _last_text(chat, SUPPORT)


class TestAdminButtons:
    def test_admin_approves_from_the_card(self, services, cart, press, chat):
        order_id = services.intake.place_order(cart()).order_id
        press(ADMIN, f"ap:{order_id}")

        assert services.store.get(order_id).status == OrderStatus.PENDING.value
        assert "1 commande(s) libérée(s)" in _last_text(chat, ADMIN)

    def test_admin_blocks_from_the_card(self, services, cart, press):
        order_id = services.intake.place_order(cart()).order_id
        press(ADMIN, f"bl:{order_id}")
        assert services.store.get(order_id).status == OrderStatus.CANCELLED.value

    def test_non_admin_cannot_approve(self, services, cart, press, chat, notifications_to):
        order_id = services.intake.place_order(cart()).order_id
        admin_before = len(notifications_to(ADMIN))

        press(MILLAU_COURIER, f"ap:{order_id}")

        assert services.store.get(order_id).status == OrderStatus.PENDING_APPROVAL.value
        assert "réservée à l'administrateur" in _last_text(chat, MILLAU_COURIER)
        assert len(notifications_to(ADMIN)) == admin_before

    def test_details_include_the_timeline(self, services, cart, press, chat):
        order_id = services.intake.place_order(cart()).order_id
        press(ADMIN, f"dt:{order_id}")

        details = _last_text(chat, ADMIN)
        assert "Historique" in details
        assert "en attente de validation" in details


class TestMenus:
    def test_courier_menu_lists_zones(self, say, chat):
        say(MILLAU_COURIER, "/start")
        assert "Vos zones: millau" in _last_text(chat, MILLAU_COURIER)

    def test_strangers_are_turned_away(self, say, chat):
        say("someone", "/help")
        assert "réservé à l'équipe" in _last_text(chat, "someone")

    def test_unparseable_updates_are_ignored(self, services, chat):
        services.dispatch.handle(None)
        assert chat.sent_messages == []

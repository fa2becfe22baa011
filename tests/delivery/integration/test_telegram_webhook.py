"""Integration tests for the Telegram webhook."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from delivery.api.handlers import register_error_handlers
from delivery.api.routes import telegram_router
from delivery.order.order import OrderStatus

ADMIN = "admin-chat"
MILLAU_COURIER = "courier-millau"


@pytest.fixture()
def client(services):
    app = FastAPI()
    app.include_router(telegram_router)
    register_error_handlers(app)
    app.state.services = services
    return TestClient(app)


def _button(chat_id, data, callback_id="cb-1"):
    return {
        "update_id": 10,
        "callback_query": {
            "id": callback_id,
            "from": {"id": 1},
            "message": {"message_id": 5, "chat": {"id": chat_id}},
            "data": data,
        },
    }


def _text(chat_id, text):
    return {"update_id": 11, "message": {"message_id": 6, "chat": {"id": chat_id}, "text": text}}


class TestWebhookSecret:
    def test_wrong_secret_returns_401(self, client, services):
        services.settings.TELEGRAM_WEBHOOK_SECRET = "s3cret"
        response = client.post(
            "/telegram/webhook",
            json=_text(ADMIN, "/help"),
            headers={"X-Telegram-Bot-Api-Secret-Token": "nope"},
        )
        assert response.status_code == 401

    def test_matching_secret_is_accepted(self, client, services, chat):
        services.settings.TELEGRAM_WEBHOOK_SECRET = "s3cret"
        response = client.post(
            "/telegram/webhook",
            json=_text(ADMIN, "/help"),
            headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
        )
        assert response.status_code == 200
        assert chat.messages_to(ADMIN)


class TestWebhookUpdates:
    def test_courier_buttons_drive_the_order(self, client, services, cart, approved, chat):
        approved("bob")
        order_id = services.intake.place_order(cart("bob")).order_id

        assert client.post("/telegram/webhook", json=_button(MILLAU_COURIER, f"eta:{order_id}:45")).json() == {
            "status": "ok"
        }
        assert services.store.get(order_id).status == OrderStatus.EN_ROUTE.value

        client.post("/telegram/webhook", json=_button(MILLAU_COURIER, f"ok:{order_id}", callback_id="cb-2"))
        assert services.store.get(order_id).status == OrderStatus.DELIVERED.value
        assert [c["callback_id"] for c in chat.answered_callbacks] == ["cb-1", "cb-2"]

    def test_rejected_actions_still_return_200(self, client, services, cart):
        order_id = services.intake.place_order(cart()).order_id
        response = client.post("/telegram/webhook", json=_button(MILLAU_COURIER, f"ap:{order_id}"))

        assert response.status_code == 200
        assert services.store.get(order_id).status == OrderStatus.PENDING_APPROVAL.value

    def test_unparseable_updates_are_ignored(self, client, chat):
        response = client.post("/telegram/webhook", json=_button(MILLAU_COURIER, "garbage"))
        assert response.status_code == 200
        assert chat.sent_messages == []

    def test_edited_messages_are_ignored(self, client, chat):
        response = client.post("/telegram/webhook", json={"update_id": 12, "edited_message": {"text": "x"}})
        assert response.status_code == 200
        assert chat.sent_messages == []

"""Tests for chat message templates."""

from datetime import UTC, datetime

import pytest

from delivery.notifications.callbacks import Action, decode
from delivery.notifications.notification import MessageKind
from delivery.notifications.templates import TEMPLATE_REGISTRY, get_template


@pytest.fixture
def context():
    return {
        "order_id": 42,
        "customer_handle": "alice<script>",
        "delivery_type": "Livraison Millau",
        "address": "12 rue du Pont & fils",
        "lines": [
            {"product_id": "p-1", "name": "Cookie choco", "variant": None, "quantity": 2, "unit_price": 12.5, "line_total": 25.0}
        ],
        "declared_total": 25.0,
        "discount": 0.0,
        "total_charged": 25.0,
        "zone": "millau",
        "courier_id": "courier-millau",
        "status": "pending",
        "eta_minutes": None,
        "cancellation_reason": None,
    }


def _actions(rendered):
    return [decode(button.callback_data).action for row in rendered["buttons"] or [] for button in row]


def test_every_kind_has_a_template():
    assert set(TEMPLATE_REGISTRY) == set(MessageKind)


class TestCourierFacingTemplates:
    @pytest.mark.parametrize("kind", [MessageKind.DISPATCH_CARD, MessageKind.NEXT_ORDER, MessageKind.ETA_PICKER])
    def test_never_reveal_the_customer_handle(self, kind, context):
        rendered = get_template(kind).render({**context, "eta_buckets": [15, 30]})
        assert "alice" not in rendered["body"]

    def test_en_route_card_for_courier_omits_handle(self, context):
        rendered = get_template(MessageKind.EN_ROUTE).render({**context, "eta_minutes": 30, "for_courier": True})
        assert "alice" not in rendered["body"]
        assert _actions(rendered) == [Action.COMPLETE, Action.CONTACT_CUSTOMER]

    def test_dispatch_card_buttons(self, context):
        rendered = get_template(MessageKind.DISPATCH_CARD).render(context)
        assert _actions(rendered) == [Action.START_DELIVERY, Action.CONTACT_CUSTOMER, Action.REFUSE, Action.VIEW_QUEUE]

    def test_dispatch_card_without_zone_has_no_queue_button(self, context):
        rendered = get_template(MessageKind.DISPATCH_CARD).render({**context, "zone": None})
        assert Action.VIEW_QUEUE not in _actions(rendered)

    def test_priority_heading(self, context):
        rendered = get_template(MessageKind.DISPATCH_CARD).render({**context, "priority": True})
        assert rendered["body"].startswith("⭐ Prioritaire")

    def test_eta_picker_offers_each_bucket(self, context):
        rendered = get_template(MessageKind.ETA_PICKER).render({**context, "eta_buckets": [15, 30, 45]})
        etas = [decode(b.callback_data).eta_minutes for b in rendered["buttons"][0]]
        assert etas == [15, 30, 45]


class TestOperatorTemplates:
    def test_admin_summary_escapes_customer_values(self, context):
        body = get_template(MessageKind.ADMIN_SUMMARY).render(context)["body"]
        assert "alice&lt;script&gt;" in body
        assert "12 rue du Pont &amp; fils" in body
        assert "<script>" not in body

    def test_discount_is_shown_when_applied(self, context):
        body = get_template(MessageKind.ADMIN_SUMMARY).render(
            {**context, "discount": 2.5, "total_charged": 22.5}
        )["body"]
        assert "22.50 €" in body
        assert "remise fidélité 2.50 €" in body

    def test_pickup_orders_show_no_address(self, context):
        body = get_template(MessageKind.ADMIN_SUMMARY).render({**context, "address": None})["body"]
        assert "Retrait sur place" in body

    def test_approval_card_buttons(self, context):
        rendered = get_template(MessageKind.APPROVAL_CARD).render(context)
        assert _actions(rendered) == [Action.APPROVE, Action.BLOCK, Action.DETAILS]

    def test_order_details_lists_timeline(self, context):
        timeline = [{"occurred_at": datetime(2026, 3, 1, 9, 5, tzinfo=UTC), "description": "Commande créée"}]
        body = get_template(MessageKind.ORDER_DETAILS).render({**context, "timeline": timeline})["body"]
        assert "01/03 09:05 Commande créée" in body


class TestQueueTemplate:
    def test_empty_queue(self):
        rendered = get_template(MessageKind.QUEUE).render({"zone": "millau", "entries": []})
        assert "vide" in rendered["body"]
        assert rendered["buttons"] is None

    def test_oldest_first_with_start_button(self):
        entries = [
            {"order_id": 1, "address": "A", "status": "pending"},
            {"order_id": 2, "address": "B", "status": "pending", "in_conversation": True},
        ]
        rendered = get_template(MessageKind.QUEUE).render({"zone": "millau", "entries": entries})
        assert rendered["body"].index("#1") < rendered["body"].index("#2")
        assert "💬" in rendered["body"]
        assert decode(rendered["buttons"][0][0].callback_data).order_id == 1

    def test_next_order_when_nothing_left(self):
        rendered = get_template(MessageKind.NEXT_ORDER).render({"order_id": None})
        assert "Plus aucune commande" in rendered["body"]

import pytest
from protean.integrations.pytest import DomainFixture

from delivery.config import Settings, ZoneConfig
from delivery.notifications.channel.fake_chat import FakeChatAdapter
from delivery.services.container import build_services

ADMIN = "admin-chat"
SUPPORT = "support-chat"
MILLAU_COURIER = "courier-millau"
EXTERIEUR_COURIER = "courier-ext"


@pytest.fixture(scope="session")
def delivery_bed():
    from delivery.domain import delivery
    from delivery.utils.db import drop_db, setup_db

    bed = DomainFixture(delivery)
    bed.setup()
    setup_db(delivery)
    yield bed
    drop_db(delivery)
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(delivery_bed):
    with delivery_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def settings():
    return Settings(
        ADMIN_CHAT_ID=ADMIN,
        SUPPORT_CHAT_ID=SUPPORT,
        ADMIN_PASSWORD="open-sesame",
        ZONES=[
            ZoneConfig(name="millau", keywords=["millau"], courier_id=MILLAU_COURIER),
            ZoneConfig(name="exterieur", keywords=["extérieur", "exterieur"], courier_id=EXTERIEUR_COURIER),
            ZoneConfig(name="larzac", keywords=["larzac"]),
        ],
        DEFAULT_ZONE="millau",
    )


@pytest.fixture()
def chat():
    return FakeChatAdapter()


@pytest.fixture()
def services(settings, chat):
    return build_services(settings, channel=chat)


@pytest.fixture()
def cart():
    """Builds an intake payload; keyword arguments override the defaults."""

    def _cart(handle="alice", **overrides):
        payload = {
            "customer_handle": handle,
            "delivery_type": "Livraison Millau",
            "address": "12 rue du Pont",
            "items": [
                {"product_id": "p-1", "name": "Cookie", "variant": "choco", "quantity": 2, "unit_price": 12.5},
            ],
            "declared_total": 25.0,
        }
        payload.update(overrides)
        return payload

    return _cart


@pytest.fixture()
def approved(services):
    """Approve handles up front so their orders skip the review hold."""

    def _approve(*handles):
        for handle in handles:
            services.moderation.approve_customer(handle, approver="admin")

    return _approve


@pytest.fixture()
def notifications_to():
    """Notification records sent to a recipient, oldest first, optionally of one kind."""
    from protean import current_domain

    from delivery.notifications.notification import Notification

    def _notifications(recipient_id, kind=None):
        repo = current_domain.repository_for(Notification)
        records = repo._dao.query.filter(recipient_id=str(recipient_id)).all().items
        if kind is not None:
            records = [n for n in records if n.kind == kind.value]
        return sorted(records, key=lambda n: n.created_at)

    return _notifications


@pytest.fixture()
def press(services):
    """Simulate a button press from ``sender`` carrying ``data``."""
    from delivery.notifications.callbacks import decode
    from delivery.notifications.inbound import ButtonPress

    def _press(sender, data, callback_id="cb-1"):
        services.dispatch.handle(ButtonPress(sender_id=sender, callback=decode(data), callback_id=callback_id))

    return _press


@pytest.fixture()
def say(services):
    """Simulate a text message from ``sender``."""
    from delivery.notifications.inbound import TextMessage

    def _say(sender, text):
        services.dispatch.handle(TextMessage(sender_id=sender, text=text))

    return _say

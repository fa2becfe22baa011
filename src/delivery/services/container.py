"""Wiring of the long-lived service objects.

One process owns one set of these: the dispatch board and the locks inside
the order store are process-local state.
"""

import secrets
from dataclasses import dataclass

import structlog

from delivery.config import Settings, get_settings
from delivery.dispatch.board import DispatchBoard
from delivery.notifications.hub import NotificationHub
from delivery.order.store import OrderStore
from delivery.routing.router import ZoneRouter
from delivery.services.dispatch_events import DispatchEventHandler
from delivery.services.intake import OrderIntakeService
from delivery.services.moderation import ModerationService

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    settings: Settings
    store: OrderStore
    router: ZoneRouter
    board: DispatchBoard
    hub: NotificationHub
    intake: OrderIntakeService
    moderation: ModerationService
    dispatch: DispatchEventHandler
    admin_token_secret: str


def build_services(settings: Settings | None = None, channel=None) -> Services:
    settings = settings or get_settings()
    store = OrderStore()
    router = ZoneRouter.from_settings(settings)
    board = DispatchBoard()
    hub = NotificationHub(settings, channel=channel)
    moderation = ModerationService(store, board, hub)

    return Services(
        settings=settings,
        store=store,
        router=router,
        board=board,
        hub=hub,
        intake=OrderIntakeService(store, router, board, hub, settings),
        moderation=moderation,
        dispatch=DispatchEventHandler(store, board, router, hub, moderation),
        admin_token_secret=settings.ADMIN_TOKEN_SECRET or secrets.token_urlsafe(32),
    )


def rebuild_board(services: Services) -> int:
    """Reload the dispatch board from the open orders in the store."""
    count = services.board.rebuild(services.store.open_orders())
    logger.info("Dispatch board restored", assignments=count)
    return count

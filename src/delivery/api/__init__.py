"""Delivery HTTP API package."""

from delivery.api.handlers import register_error_handlers
from delivery.api.routes import admin_router, auth_router, order_router, telegram_router

__all__ = ["order_router", "auth_router", "admin_router", "telegram_router", "register_error_handlers"]

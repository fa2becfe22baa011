"""Chat channel registry — one adapter per process.

Uses the fake adapter unless ``DELIVERY_CHANNEL_ADAPTER=telegram``.
"""

from delivery.config import get_settings

_channel_instance = None


def get_channel(settings=None):
    """Return the configured chat adapter (singleton)."""
    global _channel_instance
    if _channel_instance is None:
        settings = settings or get_settings()
        adapter = settings.CHANNEL_ADAPTER.lower()
        if adapter == "telegram":
            from delivery.notifications.channel.telegram import TelegramChatAdapter

            _channel_instance = TelegramChatAdapter(
                token=settings.TELEGRAM_BOT_TOKEN,
                api_url=settings.TELEGRAM_API_URL,
                timeout=settings.NOTIFY_TIMEOUT_SECONDS,
            )
        elif adapter == "fake":
            from delivery.notifications.channel.fake_chat import FakeChatAdapter

            _channel_instance = FakeChatAdapter()
        else:
            raise ValueError(f"Unknown channel adapter: {settings.CHANNEL_ADAPTER}")
    return _channel_instance


def reset_channel():
    """Drop the singleton (useful for testing)."""
    global _channel_instance
    _channel_instance = None

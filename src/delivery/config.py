"""Runtime configuration for the delivery service.

Values are read from the environment (prefix ``DELIVERY_``) or a local
``.env`` file. List and nested values such as ``DELIVERY_ZONES`` are given
as JSON.
"""

from functools import lru_cache

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ZoneConfig(BaseModel):
    name: str = Field(..., min_length=1, pattern=r"^[^:]+$")
    keywords: list[str] = Field(default_factory=list)
    courier_id: str | None = None


def _default_zones() -> list[ZoneConfig]:
    return [
        ZoneConfig(name="millau", keywords=["millau"]),
        ZoneConfig(name="exterieur", keywords=["extérieur", "exterieur"]),
    ]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DELIVERY_", env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    SERVICE_NAME: str = "delivery"

    # ── Chat channel ─────────────────────────────────────────
    CHANNEL_ADAPTER: str = "fake"  # "fake" or "telegram"
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_API_URL: str = "https://api.telegram.org"
    TELEGRAM_WEBHOOK_SECRET: str = ""
    NOTIFY_TIMEOUT_SECONDS: float = 3.0
    ADMIN_CHAT_ID: str = "admin"
    SUPPORT_CHAT_ID: str = "support"

    # ── Admin session ────────────────────────────────────────
    ADMIN_PASSWORD: str = ""
    ADMIN_TOKEN_TTL_SECONDS: int = 8 * 60 * 60
    ADMIN_TOKEN_SECRET: str = ""  # random per process when unset
    ADMIN_TOKEN_ALGORITHM: str = "HS256"

    # ── Routing ──────────────────────────────────────────────
    ZONES: list[ZoneConfig] = Field(default_factory=_default_zones)
    DEFAULT_ZONE: str = "millau"
    PICKUP_KEYWORDS: list[str] = ["retrait", "pickup", "click & collect"]
    ETA_BUCKETS: list[int] = [15, 30, 45, 60]

    # ── Loyalty ──────────────────────────────────────────────
    LOYALTY_THRESHOLD: int = Field(default=10, ge=1)
    LOYALTY_RATE: float = Field(default=0.10, ge=0.0, le=1.0)
    LOYALTY_CAP: float = Field(default=20.0, ge=0.0)

    # ── Inventory ────────────────────────────────────────────
    LOW_STOCK_THRESHOLD: int = 10

    @field_validator("ETA_BUCKETS")
    @classmethod
    def eta_buckets_are_positive(cls, value: list[int]) -> list[int]:
        if not value or any(minutes <= 0 for minutes in value):
            raise ValueError("ETA buckets must be a non-empty list of positive minutes")
        return sorted(set(value))


@lru_cache()
def get_settings() -> Settings:
    return Settings()

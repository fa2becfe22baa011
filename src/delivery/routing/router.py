"""Zone routing — which delivery zone, and which courier, an order belongs to.

The storefront only gives us a free-text delivery type ("Livraison sur
Millau"). It is matched case- and accent-insensitively against each zone's
keywords, in configuration order; the first zone with a matching keyword
wins, otherwise the order falls back to the default zone.
"""

import unicodedata
from dataclasses import dataclass

import structlog

from delivery.config import ZoneConfig

logger = structlog.get_logger(__name__)


def fold(text: str) -> str:
    """Lowercase ``text`` and strip its accents."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


@dataclass(frozen=True)
class Route:
    zone: str
    courier_id: str | None = None

    @property
    def has_courier(self) -> bool:
        return bool(self.courier_id)


class ZoneRouter:
    def __init__(self, zones: list[ZoneConfig], default_zone: str):
        names = [zone.name for zone in zones]
        if len(names) != len(set(names)):
            raise ValueError("Zone names must be unique")

        self._zones = list(zones)
        self._keywords = [(zone.name, [fold(k) for k in zone.keywords if k.strip()]) for zone in zones]
        self._couriers = {zone.name: zone.courier_id or None for zone in zones}
        self.default_zone = default_zone

        if default_zone not in self._couriers:
            logger.warning("Default zone has no configuration entry", zone=default_zone)

    @classmethod
    def from_settings(cls, settings):
        return cls(settings.ZONES, settings.DEFAULT_ZONE)

    @property
    def zones(self) -> list[str]:
        return [zone.name for zone in self._zones]

    def resolve(self, delivery_type: str) -> Route:
        haystack = fold(delivery_type)
        for zone, keywords in self._keywords:
            if any(keyword in haystack for keyword in keywords):
                return Route(zone=zone, courier_id=self._couriers[zone])
        return Route(zone=self.default_zone, courier_id=self._couriers.get(self.default_zone))

    def zones_for(self, courier_id) -> list[str]:
        return [zone for zone, courier in self._couriers.items() if courier and courier == str(courier_id)]

    def is_courier(self, sender_id) -> bool:
        return bool(self.zones_for(sender_id))

"""Application tests for the admin statistics."""

from protean import current_domain

from delivery.inventory.movements import RecordStockMovement
from delivery.reporting.stats import compute_stats


def _restock(product_id, quantity):
    current_domain.process(
        RecordStockMovement(product_id=product_id, name=product_id, direction="in", quantity=quantity),
        asynchronous=False,
    )


class TestShopStats:
    def test_empty_shop(self):
        stats = compute_stats()
        assert stats.revenue == 0.0
        assert stats.order_count == 0
        assert stats.average_basket == 0.0
        assert stats.top_product is None

    def test_only_booked_orders_count(self, services, cart, approved):
        approved("bob")
        services.intake.place_order(cart("bob"))
        brownie = {"product_id": "p-2", "name": "Brownie", "quantity": 3, "unit_price": 5.0}
        services.intake.place_order(cart("bob", items=[brownie], declared_total=15.0))
        cancelled = services.intake.place_order(cart("bob")).order_id
        services.moderation.delete_order(cancelled, reason="Doublon")
        services.intake.place_order(cart("newcomer", declared_total=80.0))

        stats = compute_stats()
        assert stats.order_count == 2
        assert stats.revenue == 40.0
        assert stats.average_basket == 20.0
        assert stats.top_product == "Brownie"

    def test_stock_alerts(self):
        _restock("p-1", 50)
        _restock("p-2", 3)
        current_domain.process(
            RecordStockMovement(product_id="p-3", direction="out", quantity=1),
            asynchronous=False,
        )

        stats = compute_stats(low_stock_threshold=10)
        assert stats.out_of_stock == 1
        assert stats.low_stock == 1

"""Order intake — the create path for storefront checkouts.

Steps, in order: validate the cart, ask the trust gate, price the loyalty
discount, resolve the zone, then create the order. Those steps run under
the customer's lock, so two simultaneous checkouts from one handle cannot
both claim the same loyalty slot. Enqueuing on the dispatch board and
notifying operators happen after the order has been committed.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError

from delivery.customer.customer import normalize_handle
from delivery.customer.loyalty import LoyaltyCalculator, counter_for
from delivery.customer.trust import TrustDecision, TrustGate
from delivery.errors import TrustError
from delivery.routing.router import fold

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IntakeResult:
    order_id: int
    applied_discount: float
    requires_approval: bool


def _validate_lines(items) -> tuple[list[dict], dict]:
    errors: dict[str, list[str]] = {}
    lines = []
    if not items:
        errors["items"] = ["An order needs at least one line item"]
        return lines, errors

    for position, item in enumerate(items):
        item = dict(item)
        problems = []
        if not str(item.get("product_id") or "").strip():
            problems.append("product_id is required")
        if not str(item.get("name") or "").strip():
            problems.append("name is required")

        quantity = item.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            problems.append("quantity must be a whole number of at least 1")
        price = item.get("unit_price")
        if not isinstance(price, (int, float)) or isinstance(price, bool) or price <= 0:
            problems.append("unit_price must be positive")

        if problems:
            errors[f"items[{position}]"] = problems
            continue
        lines.append(
            {
                "product_id": str(item["product_id"]).strip(),
                "name": str(item["name"]).strip(),
                "variant": (item.get("variant") or None),
                "quantity": quantity,
                "unit_price": float(price),
            }
        )
    return lines, errors


class OrderIntakeService:
    def __init__(self, store, router, board, hub, settings):
        self.store = store
        self.router = router
        self.board = board
        self.hub = hub
        self.settings = settings
        self.trust_gate = TrustGate()
        self.calculator = LoyaltyCalculator.from_settings(settings)
        self._pickup_keywords = [fold(k) for k in settings.PICKUP_KEYWORDS if k.strip()]

    def is_pickup(self, delivery_type: str) -> bool:
        folded = fold(delivery_type)
        return any(keyword in folded for keyword in self._pickup_keywords)

    def validate(self, payload: dict) -> dict:
        """Normalized copy of ``payload``; raises ValidationError listing every problem."""
        errors: dict[str, list[str]] = {}

        handle = normalize_handle(payload.get("customer_handle"))
        if not handle:
            errors["customer_handle"] = ["Customer handle is required"]

        delivery_type = (payload.get("delivery_type") or "").strip()
        if not delivery_type:
            errors["delivery_type"] = ["Delivery type is required"]

        address = (payload.get("address") or "").strip() or None
        if delivery_type and not address and not self.is_pickup(delivery_type):
            errors["address"] = ["Address is required for deliveries"]

        lines, line_errors = _validate_lines(payload.get("items"))
        errors.update(line_errors)

        declared_total = payload.get("declared_total")
        if not isinstance(declared_total, (int, float)) or isinstance(declared_total, bool) or declared_total <= 0:
            errors["declared_total"] = ["Declared total must be positive"]

        if errors:
            raise ValidationError(errors)

        return {
            "customer_handle": handle,
            "delivery_type": delivery_type,
            "address": address,
            "lines": lines,
            "declared_total": round(float(declared_total), 2),
        }

    def place_order(self, payload: dict) -> IntakeResult:
        cart = self.validate(payload)
        handle = cart["customer_handle"]

        with self.store.customer_lock(handle):
            decision = self.trust_gate.evaluate(handle)
            if decision == TrustDecision.BLOCKED:
                logger.warning("Order rejected for blocked customer", handle=handle)
                raise TrustError({"customer_handle": ["This customer may not place orders"]})

            deferred = decision == TrustDecision.PENDING_FIRST_ORDER
            discount = 0.0
            if not deferred:
                discount = self.calculator.discount(counter_for(handle).order_count, cart["declared_total"])

            route = self.router.resolve(cart["delivery_type"])
            order = self.store.create(
                customer_handle=handle,
                delivery_type=cart["delivery_type"],
                lines=cart["lines"],
                declared_total=cart["declared_total"],
                address=cart["address"],
                discount=discount,
                deferred=deferred,
                zone=route.zone,
                courier_id=route.courier_id,
            )

        priority = False
        if not order.is_deferred and route.has_courier:
            self.board.enqueue(order.order_id, route.courier_id, route.zone, handle, order.created_at)
            priority = self.board.next_for(route.courier_id) == order.order_id

        self.hub.notify_new_order(order, route, priority=priority)

        logger.info(
            "Order placed",
            order_id=order.order_id,
            handle=handle,
            zone=route.zone,
            discount=order.discount,
            requires_approval=order.is_deferred,
        )
        return IntakeResult(
            order_id=order.order_id,
            applied_discount=order.discount,
            requires_approval=order.is_deferred,
        )

"""Order timeline — append-only audit trail of every order status change."""

import uuid

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.events import (
    OrderApproved,
    OrderCancelled,
    OrderCreated,
    OrderDelivered,
    OrderDispatched,
)
from delivery.order.order import Order


@delivery.projection(limit=None)
class OrderTimeline:
    entry_id = Identifier(identifier=True, required=True)
    order_id = Integer(required=True)
    event_type = String(required=True)
    description = String(required=True)
    occurred_at = DateTime(required=True)
    event_metadata = Text()  # JSON: extra event data


def _add_entry(order_id, event_type, description, occurred_at, event_metadata=None):
    current_domain.repository_for(OrderTimeline).add(
        OrderTimeline(
            entry_id=str(uuid.uuid4()),
            order_id=order_id,
            event_type=event_type,
            description=description,
            occurred_at=occurred_at,
            event_metadata=event_metadata,
        )
    )


def timeline_for(order_id) -> list[dict]:
    """Timeline entries of one order, oldest first."""
    repo = current_domain.repository_for(OrderTimeline)
    entries = repo._dao.query.filter(order_id=int(order_id)).all().items
    return [
        {
            "event_type": entry.event_type,
            "description": entry.description,
            "occurred_at": entry.occurred_at,
        }
        for entry in sorted(entries, key=lambda e: e.occurred_at)
    ]


@delivery.projector(projector_for=OrderTimeline, aggregates=[Order])
class OrderTimelineProjector:
    @on(OrderCreated)
    def on_order_created(self, event):
        if event.status == "pending_approval":
            description = f"Commande reçue de @{event.customer_handle}, en attente de validation"
        else:
            description = f"Commande reçue de @{event.customer_handle}"
        _add_entry(event.order_id, "OrderCreated", description, event.created_at)

    @on(OrderApproved)
    def on_order_approved(self, event):
        description = f"Client validé par {event.approved_by}"
        if event.discount:
            description += f", remise fidélité {event.discount:.2f} €"
        _add_entry(event.order_id, "OrderApproved", description, event.approved_at)

    @on(OrderDispatched)
    def on_order_dispatched(self, event):
        _add_entry(
            event.order_id,
            "OrderDispatched",
            f"En route avec {event.courier_id}, arrivée dans ~{event.eta_minutes} min",
            event.dispatched_at,
        )

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        _add_entry(
            event.order_id,
            "OrderDelivered",
            f"Livrée, {event.total_charged:.2f} € encaissés",
            event.delivered_at,
        )

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        _add_entry(
            event.order_id,
            "OrderCancelled",
            f"Annulée par {event.cancelled_by}: {event.reason or 'sans motif'}",
            event.cancelled_at,
        )

"""NotificationHub — role-specific chat messages and inbound parsing.

Sending is best effort. Every message is rendered, handed to the chat
channel and recorded as a Notification, SENT or FAILED. A failure is
logged and never raised: by the time a message is sent, the state change
it reports has already been committed.
"""

import json

import structlog
from protean.utils.globals import current_domain

from delivery.errors import NotificationFailure
from delivery.notifications.channel import get_channel
from delivery.notifications.inbound import InboundEvent, parse_update
from delivery.notifications.notification import MessageKind, Notification, RecipientRole
from delivery.notifications.templates import get_template

logger = structlog.get_logger(__name__)


def order_context(order, **extra) -> dict:
    """Template context for ``order``. Includes the customer handle; courier templates leave it out."""
    context = {
        "order_id": order.order_id,
        "customer_handle": order.customer_handle,
        "delivery_type": order.delivery_type,
        "address": order.address,
        "lines": [line.to_dict() for line in order.lines],
        "declared_total": order.declared_total,
        "discount": order.discount,
        "total_charged": order.total_charged,
        "zone": order.zone,
        "courier_id": order.courier_id,
        "status": order.status,
        "eta_minutes": order.eta_minutes,
        "cancellation_reason": order.cancellation_reason,
    }
    context.update(extra)
    return context


def _serialize_buttons(buttons) -> str | None:
    if not buttons:
        return None
    return json.dumps([[{"text": b.text, "callback_data": b.callback_data} for b in row] for row in buttons])


class NotificationHub:
    def __init__(self, settings, channel=None):
        self.settings = settings
        self.channel = channel or get_channel(settings)
        self.admin_id = str(settings.ADMIN_CHAT_ID)
        self.support_id = str(settings.SUPPORT_CHAT_ID)

    # -------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------
    def parse(self, update: dict) -> InboundEvent | None:
        return parse_update(update)

    def acknowledge(self, callback_id, text=None) -> None:
        if not callback_id:
            return
        try:
            self.channel.answer_callback(callback_id, text)
        except NotificationFailure as exc:
            logger.warning("Callback acknowledgement failed", callback_id=callback_id, reason=exc.reason)

    # -------------------------------------------------------------------
    # Outbound core
    # -------------------------------------------------------------------
    def send(self, recipient_id, role: RecipientRole, kind: MessageKind, context: dict, order_id=None) -> Notification:
        rendered = get_template(kind).render(context)
        notification = Notification.create(
            recipient_id=recipient_id,
            recipient_role=role.value,
            kind=kind.value,
            body=rendered["body"],
            buttons=_serialize_buttons(rendered["buttons"]),
            order_id=order_id,
        )

        try:
            result = self.channel.send(str(recipient_id), rendered["body"], rendered["buttons"])
        except NotificationFailure as exc:
            notification.mark_failed(exc.reason)
            logger.warning(
                "Notification delivery failed",
                recipient_id=str(recipient_id),
                kind=kind.value,
                order_id=order_id,
                reason=exc.reason,
            )
        except Exception as exc:
            notification.mark_failed(str(exc))
            logger.exception(
                "Notification dispatch crashed",
                recipient_id=str(recipient_id),
                kind=kind.value,
                order_id=order_id,
            )
        else:
            message_id = (result or {}).get("message_id")
            notification.mark_sent(str(message_id) if message_id is not None else None)

        current_domain.repository_for(Notification).add(notification)
        return notification

    def notice(self, recipient_id, text, role=RecipientRole.OPERATOR, order_id=None) -> Notification:
        return self.send(recipient_id, role, MessageKind.NOTICE, {"text": text}, order_id=order_id)

    # -------------------------------------------------------------------
    # New orders
    # -------------------------------------------------------------------
    def notify_new_order(self, order, route, priority=False) -> None:
        """Admin and support summaries, then either the approval card or the courier card."""
        context = order_context(order)
        self.send(self.admin_id, RecipientRole.ADMIN, MessageKind.ADMIN_SUMMARY, context, order.order_id)
        self.send(self.support_id, RecipientRole.SUPPORT, MessageKind.SUPPORT_SUMMARY, context, order.order_id)

        if order.is_deferred:
            self.send(self.admin_id, RecipientRole.ADMIN, MessageKind.APPROVAL_CARD, context, order.order_id)
        elif route.has_courier:
            self.dispatch(order, priority=priority)
        else:
            self.warn_routing_gap(order, route.zone)

    def dispatch(self, order, priority=False) -> Notification:
        """Anonymized dispatch card for the order's courier."""
        return self.send(
            order.courier_id,
            RecipientRole.COURIER,
            MessageKind.DISPATCH_CARD,
            order_context(order, priority=priority),
            order.order_id,
        )

    def warn_routing_gap(self, order, zone) -> Notification:
        logger.warning("No courier configured for zone", order_id=order.order_id, zone=zone)
        return self.send(
            self.admin_id,
            RecipientRole.ADMIN,
            MessageKind.ROUTING_GAP,
            {"order_id": order.order_id, "zone": zone},
            order.order_id,
        )

    def notify_released(self, orders, routes) -> None:
        """Deferred orders released by an approval: refreshed summaries plus dispatch."""
        for order, (route, priority) in zip(orders, routes):
            context = order_context(order)
            self.send(self.admin_id, RecipientRole.ADMIN, MessageKind.ADMIN_SUMMARY, context, order.order_id)
            self.send(self.support_id, RecipientRole.SUPPORT, MessageKind.SUPPORT_SUMMARY, context, order.order_id)
            if route.has_courier:
                self.dispatch(order, priority=priority)
            else:
                self.warn_routing_gap(order, route.zone)

    # -------------------------------------------------------------------
    # Delivery progress
    # -------------------------------------------------------------------
    def send_eta_picker(self, courier_id, order) -> Notification:
        return self.send(
            courier_id,
            RecipientRole.COURIER,
            MessageKind.ETA_PICKER,
            {"order_id": order.order_id, "eta_buckets": self.settings.ETA_BUCKETS},
            order.order_id,
        )

    def notify_en_route(self, order) -> None:
        context = {"order_id": order.order_id, "eta_minutes": order.eta_minutes}
        self.send(
            self.support_id,
            RecipientRole.SUPPORT,
            MessageKind.EN_ROUTE,
            {**context, "customer_handle": order.customer_handle},
            order.order_id,
        )
        self.send(self.admin_id, RecipientRole.ADMIN, MessageKind.EN_ROUTE, context, order.order_id)
        self.send(order.courier_id, RecipientRole.COURIER, MessageKind.EN_ROUTE, {**context, "for_courier": True}, order.order_id)

    def notify_delivered(self, order) -> None:
        context = order_context(order)
        self.send(self.admin_id, RecipientRole.ADMIN, MessageKind.DELIVERED, context, order.order_id)
        self.send(self.support_id, RecipientRole.SUPPORT, MessageKind.DELIVERED, context, order.order_id)

    def notify_cancelled(self, order, notify_courier=True) -> None:
        context = order_context(order)
        self.send(self.admin_id, RecipientRole.ADMIN, MessageKind.CANCELLED, context, order.order_id)
        self.send(self.support_id, RecipientRole.SUPPORT, MessageKind.CANCELLED, context, order.order_id)
        if notify_courier and order.courier_id:
            self.send(
                order.courier_id,
                RecipientRole.COURIER,
                MessageKind.CANCELLED,
                {"order_id": order.order_id, "cancellation_reason": None},
                order.order_id,
            )

    def present_next(self, courier_id, order=None) -> Notification:
        """Tell the courier which order to handle next, or that the backlog is empty."""
        context = order_context(order) if order is not None else {"order_id": None}
        return self.send(
            courier_id,
            RecipientRole.COURIER,
            MessageKind.NEXT_ORDER,
            context,
            order.order_id if order is not None else None,
        )

    def send_queue(self, courier_id, zone, entries) -> Notification:
        return self.send(courier_id, RecipientRole.COURIER, MessageKind.QUEUE, {"zone": zone, "entries": entries})

    # -------------------------------------------------------------------
    # Conversations
    # -------------------------------------------------------------------
    def conversation_opened(self, order, closed_order_id=None) -> None:
        self.send(
            order.courier_id,
            RecipientRole.COURIER,
            MessageKind.CONVERSATION,
            {"order_id": order.order_id, "opened": True, "closed_order_id": closed_order_id},
            order.order_id,
        )
        self.send(
            self.support_id,
            RecipientRole.SUPPORT,
            MessageKind.CONVERSATION,
            {"order_id": order.order_id, "opened": True, "audience": "support", "customer_handle": order.customer_handle},
            order.order_id,
        )

    def conversation_ended(self, order) -> None:
        context = {"order_id": order.order_id, "opened": False}
        self.send(order.courier_id, RecipientRole.COURIER, MessageKind.CONVERSATION, context, order.order_id)
        self.send(
            self.support_id,
            RecipientRole.SUPPORT,
            MessageKind.CONVERSATION,
            {**context, "audience": "support"},
            order.order_id,
        )

    def relay_to_support(self, order, text) -> Notification:
        return self.send(
            self.support_id,
            RecipientRole.SUPPORT,
            MessageKind.RELAY,
            {"order_id": order.order_id, "customer_handle": order.customer_handle, "text": text},
            order.order_id,
        )

    def relay_to_courier(self, order, text) -> Notification:
        return self.send(
            order.courier_id,
            RecipientRole.COURIER,
            MessageKind.SUPPORT_REPLY,
            {"order_id": order.order_id, "text": text},
            order.order_id,
        )

    # -------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------
    def send_details(self, recipient_id, order, timeline) -> Notification:
        return self.send(
            recipient_id,
            RecipientRole.ADMIN,
            MessageKind.ORDER_DETAILS,
            order_context(order, timeline=timeline),
            order.order_id,
        )

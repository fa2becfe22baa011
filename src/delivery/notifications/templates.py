"""Message templates — one per MessageKind.

Each template renders a context dict into ``{"body": ..., "buttons": ...}``.
Bodies are Telegram HTML, so every value that comes from a customer or an
operator is escaped. Courier-facing templates never mention the customer
handle.
"""

import html

from delivery.notifications.callbacks import Action, button_data
from delivery.notifications.channel.port import Button
from delivery.notifications.notification import MessageKind

_STATUS_LABELS = {
    "pending_approval": "⏳ En attente de validation",
    "pending": "🕐 En attente du livreur",
    "en_route": "🛵 En route",
    "delivered": "✅ Livrée",
    "cancelled": "❌ Annulée",
}


def escape(value) -> str:
    return html.escape(str(value), quote=False)


def _money(amount) -> str:
    return f"{amount or 0:.2f} €"


def _lines(context) -> str:
    rows = []
    for line in context.get("lines", []):
        variant = f" ({escape(line['variant'])})" if line.get("variant") else ""
        rows.append(f"• {line['quantity']} × {escape(line['name'])}{variant} — {_money(line['line_total'])}")
    return "\n".join(rows)


def _totals(context) -> str:
    text = f"Total: <b>{_money(context.get('total_charged'))}</b>"
    if context.get("discount"):
        text += f" (remise fidélité {_money(context['discount'])} sur {_money(context.get('declared_total'))})"
    return text


def _address(context) -> str:
    return escape(context.get("address") or "Retrait sur place")


def dispatch_buttons(order_id, zone) -> list[list[Button]]:
    second_row = [Button("🚫 Refuser", button_data(Action.REFUSE, order_id))]
    if zone:
        second_row.append(Button("📦 Ma file", button_data(Action.VIEW_QUEUE, param=zone)))
    return [
        [
            Button("🛵 Démarrer", button_data(Action.START_DELIVERY, order_id)),
            Button("💬 Contacter", button_data(Action.CONTACT_CUSTOMER, order_id)),
        ],
        second_row,
    ]


class AdminSummaryTemplate:
    kind = MessageKind.ADMIN_SUMMARY

    @staticmethod
    def render(context: dict) -> dict:
        courier = escape(context.get("courier_id") or "aucun livreur")
        return {
            "body": (
                f"🆕 <b>Commande #{context['order_id']}</b>\n"
                f"Client: @{escape(context['customer_handle'])}\n"
                f"Livraison: {escape(context['delivery_type'])}\n"
                f"Adresse: {_address(context)}\n"
                f"Zone: {escape(context.get('zone') or '-')} → {courier}\n\n"
                f"{_lines(context)}\n\n"
                f"{_totals(context)}\n"
                f"Statut: {_STATUS_LABELS.get(context['status'], context['status'])}"
            ),
            "buttons": None,
        }


class SupportSummaryTemplate:
    kind = MessageKind.SUPPORT_SUMMARY

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "body": (
                f"📋 Commande #{context['order_id']} de @{escape(context['customer_handle'])}\n"
                f"{_totals(context)}\n"
                f"Statut: {_STATUS_LABELS.get(context['status'], context['status'])}"
            ),
            "buttons": None,
        }


class DispatchCardTemplate:
    kind = MessageKind.DISPATCH_CARD

    @staticmethod
    def render(context: dict) -> dict:
        heading = "⭐ Prioritaire — " if context.get("priority") else ""
        return {
            "body": (
                f"{heading}🛵 <b>Livraison #{context['order_id']}</b>\n"
                f"Adresse: {_address(context)}\n\n"
                f"{_lines(context)}\n\n"
                f"À encaisser: <b>{_money(context.get('total_charged'))}</b>"
            ),
            "buttons": dispatch_buttons(context["order_id"], context.get("zone")),
        }


class ApprovalCardTemplate:
    kind = MessageKind.APPROVAL_CARD

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context["order_id"]
        return {
            "body": (
                f"🔐 <b>Nouveau client</b> @{escape(context['customer_handle'])}\n"
                f"Commande #{order_id} en attente de validation.\n"
                f"Livraison: {escape(context['delivery_type'])}\n"
                f"Adresse: {_address(context)}\n\n"
                f"{_lines(context)}\n\n"
                f"Montant: <b>{_money(context.get('declared_total'))}</b>"
            ),
            "buttons": [
                [
                    Button("✅ Approuver", button_data(Action.APPROVE, order_id)),
                    Button("⛔ Bloquer", button_data(Action.BLOCK, order_id)),
                ],
                [Button("🔎 Détails", button_data(Action.DETAILS, order_id))],
            ],
        }


class RoutingGapTemplate:
    kind = MessageKind.ROUTING_GAP

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "body": (
                f"⚠️ Aucun livreur configuré pour la zone <b>{escape(context['zone'])}</b>.\n"
                f"La commande #{context['order_id']} reste en attente sans livreur."
            ),
            "buttons": None,
        }


class EtaPickerTemplate:
    kind = MessageKind.ETA_PICKER

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context["order_id"]
        return {
            "body": f"⏱️ Dans combien de temps livrez-vous la commande #{order_id} ?",
            "buttons": [
                [
                    Button(f"{minutes} min", button_data(Action.SET_ETA, order_id, minutes))
                    for minutes in context["eta_buckets"]
                ]
            ],
        }


class EnRouteTemplate:
    kind = MessageKind.EN_ROUTE

    @staticmethod
    def render(context: dict) -> dict:
        body = f"🛵 Commande #{context['order_id']} en route, arrivée dans ~{context['eta_minutes']} min."
        if context.get("customer_handle"):
            body += f"\nPrévenir le client @{escape(context['customer_handle'])}."
        buttons = None
        if context.get("for_courier"):
            buttons = [
                [
                    Button("✅ Livrée", button_data(Action.COMPLETE, context["order_id"])),
                    Button("💬 Contacter", button_data(Action.CONTACT_CUSTOMER, context["order_id"])),
                ]
            ]
        return {"body": body, "buttons": buttons}


class DeliveredTemplate:
    kind = MessageKind.DELIVERED

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "body": (
                f"✅ Commande #{context['order_id']} livrée. "
                f"{_money(context.get('total_charged'))} encaissés par le livreur."
            ),
            "buttons": None,
        }


class CancelledTemplate:
    kind = MessageKind.CANCELLED

    @staticmethod
    def render(context: dict) -> dict:
        body = f"❌ Commande #{context['order_id']} annulée"
        if context.get("cancellation_reason"):
            body += f": {escape(context['cancellation_reason'])}"
        return {"body": body + ".", "buttons": None}


class NextOrderTemplate:
    kind = MessageKind.NEXT_ORDER

    @staticmethod
    def render(context: dict) -> dict:
        if context.get("order_id") is None:
            return {"body": "👍 Plus aucune commande en attente. Bonne pause !", "buttons": None}
        card = DispatchCardTemplate.render({**context, "priority": True})
        return {"body": f"➡️ Commande suivante\n\n{card['body']}", "buttons": card["buttons"]}


class QueueTemplate:
    kind = MessageKind.QUEUE

    @staticmethod
    def render(context: dict) -> dict:
        entries = context.get("entries", [])
        zone = escape(context.get("zone") or "toutes zones")
        if not entries:
            return {"body": f"📦 Votre file ({zone}) est vide.", "buttons": None}

        rows = []
        for position, entry in enumerate(entries):
            marker = "⭐" if position == 0 else f"{position + 1}."
            status = _STATUS_LABELS.get(entry["status"], entry["status"])
            chat = " 💬" if entry.get("in_conversation") else ""
            rows.append(f"{marker} #{entry['order_id']} — {_address(entry)} — {status}{chat}")

        first = entries[0]
        return {
            "body": f"📦 Votre file ({zone}), la plus ancienne d'abord:\n" + "\n".join(rows),
            "buttons": [[Button(f"🛵 Démarrer #{first['order_id']}", button_data(Action.START_DELIVERY, first["order_id"]))]]
            if first["status"] == "pending"
            else None,
        }


class ConversationTemplate:
    kind = MessageKind.CONVERSATION

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context["order_id"]
        if context.get("audience") == "support":
            if context.get("opened"):
                body = (
                    f"💬 Le livreur souhaite joindre le client @{escape(context['customer_handle'])} "
                    f"(commande #{order_id}).\nRépondre: /reply {order_id} votre message"
                )
            else:
                body = f"💬 Conversation terminée pour la commande #{order_id}."
            return {"body": body, "buttons": None}

        if context.get("opened"):
            body = f"💬 Conversation ouverte pour la commande #{order_id}. Vos messages sont transmis au support."
            if context.get("closed_order_id"):
                body += f"\n(La conversation #{context['closed_order_id']} a été fermée.)"
            buttons = [[Button("🔚 Terminer", button_data(Action.END_CONVERSATION, order_id))]]
            return {"body": body, "buttons": buttons}
        return {"body": f"💬 Conversation terminée pour la commande #{order_id}.", "buttons": None}


class RelayTemplate:
    kind = MessageKind.RELAY

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "body": (
                f"💬 Livreur — commande #{context['order_id']} "
                f"(client @{escape(context['customer_handle'])}):\n{escape(context['text'])}"
            ),
            "buttons": None,
        }


class SupportReplyTemplate:
    kind = MessageKind.SUPPORT_REPLY

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "body": f"💬 Client — commande #{context['order_id']}:\n{escape(context['text'])}",
            "buttons": None,
        }


class OrderDetailsTemplate:
    kind = MessageKind.ORDER_DETAILS

    @staticmethod
    def render(context: dict) -> dict:
        summary = AdminSummaryTemplate.render(context)["body"]
        timeline = "\n".join(
            f"• {entry['occurred_at']:%d/%m %H:%M} {escape(entry['description'])}" for entry in context.get("timeline", [])
        )
        if timeline:
            summary += f"\n\nHistorique:\n{timeline}"
        return {"body": summary, "buttons": None}


class NoticeTemplate:
    kind = MessageKind.NOTICE

    @staticmethod
    def render(context: dict) -> dict:
        return {"body": escape(context["text"]) if context.get("escape", True) else context["text"], "buttons": None}


TEMPLATE_REGISTRY: dict[MessageKind, type] = {
    template.kind: template
    for template in (
        AdminSummaryTemplate,
        SupportSummaryTemplate,
        DispatchCardTemplate,
        ApprovalCardTemplate,
        RoutingGapTemplate,
        EtaPickerTemplate,
        EnRouteTemplate,
        DeliveredTemplate,
        CancelledTemplate,
        NextOrderTemplate,
        QueueTemplate,
        ConversationTemplate,
        RelayTemplate,
        SupportReplyTemplate,
        OrderDetailsTemplate,
        NoticeTemplate,
    )
}


def get_template(kind: MessageKind):
    """Look up a template class by message kind."""
    template_cls = TEMPLATE_REGISTRY.get(kind)
    if template_cls is None:
        raise ValueError(f"No template registered for message kind: {kind}")
    return template_cls

"""Inbound chat events from couriers, the admin and support.

Button presses and text commands are looked up in tables keyed by
``Action`` and ``TextCommand``. Every handler acts on behalf of the sender:
courier actions go through the store, which rejects couriers that do not
own the order, and admin actions are refused to anyone but the admin chat.

A rejected action is answered to the sender alone; nobody else hears
about it and the webhook still succeeds.
"""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError

from delivery.errors import ForbiddenActionError, IllegalTransitionError, describe_error
from delivery.notifications.callbacks import ADMIN_ACTIONS, Action
from delivery.notifications.commands import TextCommand, match_command
from delivery.notifications.inbound import ButtonPress, TextMessage
from delivery.notifications.notification import RecipientRole
from delivery.order.order import OrderStatus
from delivery.projections.order_timeline import timeline_for

logger = structlog.get_logger(__name__)

_HELP = {
    RecipientRole.COURIER: (
        "🛵 Boutons des cartes: Démarrer, Contacter, Refuser, Ma file.\n"
        "/file affiche vos commandes, la plus ancienne d'abord.\n"
        "Pendant une conversation, vos messages sont transmis au support. /fin pour la terminer."
    ),
    RecipientRole.SUPPORT: (
        "💬 Les messages des livreurs arrivent ici avec le numéro de commande.\n"
        "Répondre: /reply <numéro> <message>"
    ),
    RecipientRole.ADMIN: (
        "🔐 Les nouveaux clients arrivent avec une carte de validation: Approuver, Bloquer, Détails.\n"
        "La gestion complète se fait depuis l'interface d'administration."
    ),
    RecipientRole.OPERATOR: "Ce bot est réservé à l'équipe de livraison.",
}


class DispatchEventHandler:
    def __init__(self, store, board, router, hub, moderation):
        self.store = store
        self.board = board
        self.router = router
        self.hub = hub
        self.moderation = moderation

        self._buttons = {
            Action.START_DELIVERY: self._start_delivery,
            Action.SET_ETA: self._set_eta,
            Action.CONTACT_CUSTOMER: self._contact_customer,
            Action.END_CONVERSATION: self._end_conversation,
            Action.COMPLETE: self._complete,
            Action.REFUSE: self._refuse,
            Action.VIEW_QUEUE: self._view_queue,
            Action.APPROVE: self._approve,
            Action.BLOCK: self._block,
            Action.DETAILS: self._details,
        }
        self._commands = {
            TextCommand.MENU: self._menu,
            TextCommand.HELP: self._help,
            TextCommand.QUEUE: self._queue,
            TextCommand.END_CONVERSATION: self._end_active_conversation,
            TextCommand.REPLY: self._reply,
        }

    # -------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------
    def role_of(self, sender_id) -> RecipientRole:
        sender_id = str(sender_id)
        if sender_id == self.hub.admin_id:
            return RecipientRole.ADMIN
        if sender_id == self.hub.support_id:
            return RecipientRole.SUPPORT
        if self.router.is_courier(sender_id):
            return RecipientRole.COURIER
        return RecipientRole.OPERATOR

    def handle(self, event) -> None:
        if event is None:
            return

        try:
            if isinstance(event, ButtonPress):
                self._on_button(event)
            elif isinstance(event, TextMessage):
                self._on_text(event)
        except ObjectNotFoundError:
            logger.info("Action on unknown order", sender_id=event.sender_id)
            self.hub.notice(event.sender_id, "⚠️ Commande introuvable.")
        except ValidationError as exc:
            logger.info("Action rejected", sender_id=event.sender_id, error=describe_error(exc))
            self.hub.notice(event.sender_id, f"⚠️ {describe_error(exc)}")
        finally:
            if isinstance(event, ButtonPress):
                self.hub.acknowledge(event.callback_id)

    def _on_button(self, event: ButtonPress) -> None:
        callback = event.callback
        if callback.action in ADMIN_ACTIONS and self.role_of(event.sender_id) != RecipientRole.ADMIN:
            raise ForbiddenActionError({"action": ["Action réservée à l'administrateur"]})

        logger.info(
            "Button pressed",
            sender_id=event.sender_id,
            action=callback.action.name,
            order_id=callback.order_id,
        )
        self._buttons[callback.action](event.sender_id, callback)

    def _on_text(self, event: TextMessage) -> None:
        role = self.role_of(event.sender_id)
        parsed = match_command(event.text)
        if parsed is not None:
            self._commands[parsed.command](event.sender_id, role, parsed.argument)
            return

        if role == RecipientRole.COURIER:
            order_id = self.board.relay(event.sender_id, event.text)
            if order_id is not None:
                self.hub.relay_to_support(self.store.get(order_id), event.text)
                return

        self.hub.notice(event.sender_id, "Commande non reconnue. /help pour l'aide.")

    # -------------------------------------------------------------------
    # Courier buttons
    # -------------------------------------------------------------------
    def _owned_order(self, courier_id, order_id):
        order = self.store.get(order_id)
        order.assert_courier(courier_id)
        return order

    def _start_delivery(self, courier_id, callback):
        order = self._owned_order(courier_id, callback.order_id)
        if order.order_status != OrderStatus.PENDING:
            raise IllegalTransitionError(
                {"status": [f"La commande #{order.order_id} ne peut pas démarrer ({order.status})"]}
            )
        self.hub.send_eta_picker(courier_id, order)

    def _set_eta(self, courier_id, callback):
        order = self.store.start(callback.order_id, courier_id, callback.eta_minutes)
        self.hub.notify_en_route(order)

    def _contact_customer(self, courier_id, callback):
        order = self._owned_order(courier_id, callback.order_id)
        if order.is_terminal or order.order_id not in self.board:
            raise IllegalTransitionError(
                {"status": [f"La commande #{order.order_id} n'est plus en cours"]}
            )
        closed_order_id = self.board.start_conversation(order.order_id)
        self.hub.conversation_opened(order, closed_order_id=closed_order_id)

    def _end_conversation(self, courier_id, callback):
        order = self._owned_order(courier_id, callback.order_id)
        if self.board.end_conversation(order.order_id):
            self.hub.conversation_ended(order)
        else:
            self.hub.notice(courier_id, f"Aucune conversation ouverte pour la commande #{order.order_id}.")

    def _complete(self, courier_id, callback):
        order = self.store.complete(callback.order_id, courier_id)
        self.board.remove(order.order_id)
        self.hub.notify_delivered(order)
        self._present_next(courier_id)

    def _refuse(self, courier_id, callback):
        order = self.store.refuse(callback.order_id, courier_id)
        self.board.remove(order.order_id)
        self.hub.notify_cancelled(order, notify_courier=False)
        self._present_next(courier_id)

    def _view_queue(self, courier_id, callback):
        if callback.zone not in self.router.zones_for(courier_id):
            raise ForbiddenActionError({"zone": [f"Vous ne livrez pas la zone {callback.zone}"]})
        self.hub.send_queue(courier_id, callback.zone, self._queue_entries(courier_id, callback.zone))

    def _present_next(self, courier_id):
        next_id = self.board.next_for(courier_id)
        self.hub.present_next(courier_id, self.store.find(next_id) if next_id else None)

    def _queue_entries(self, courier_id, zone=None) -> list[dict]:
        entries = []
        for assignment in self.board.queue_for(courier_id, zone):
            order = self.store.find(assignment.order_id)
            if order is None:
                continue
            entries.append(
                {
                    "order_id": order.order_id,
                    "address": order.address,
                    "status": order.status,
                    "in_conversation": assignment.in_conversation,
                }
            )
        return entries

    # -------------------------------------------------------------------
    # Admin buttons
    # -------------------------------------------------------------------
    def _approve(self, admin_id, callback):
        order = self.store.get(callback.order_id)
        released = self.moderation.approve_customer(order.customer_handle, approver="admin")
        self.hub.notice(
            admin_id,
            f"✅ @{order.customer_handle} validé, {released} commande(s) libérée(s).",
            role=RecipientRole.ADMIN,
        )

    def _block(self, admin_id, callback):
        order = self.store.get(callback.order_id)
        cancelled = self.moderation.block_customer(order.customer_handle, reason="Bloqué depuis la carte de validation")
        self.hub.notice(
            admin_id,
            f"⛔ @{order.customer_handle} bloqué, {cancelled} commande(s) annulée(s).",
            role=RecipientRole.ADMIN,
        )

    def _details(self, admin_id, callback):
        order = self.store.get(callback.order_id)
        self.hub.send_details(admin_id, order, timeline_for(order.order_id))

    # -------------------------------------------------------------------
    # Text commands
    # -------------------------------------------------------------------
    def _menu(self, sender_id, role, argument):
        zones = self.router.zones_for(sender_id) if role == RecipientRole.COURIER else []
        text = f"🏠 Menu principal\n{_HELP[role]}"
        if zones:
            text += f"\nVos zones: {', '.join(zones)}"
        self.hub.notice(sender_id, text, role=role)

    def _help(self, sender_id, role, argument):
        self.hub.notice(sender_id, _HELP[role], role=role)

    def _queue(self, sender_id, role, argument):
        if role != RecipientRole.COURIER:
            raise ForbiddenActionError({"command": ["Commande réservée aux livreurs"]})
        self.hub.send_queue(sender_id, None, self._queue_entries(sender_id))

    def _end_active_conversation(self, sender_id, role, argument):
        if role != RecipientRole.COURIER:
            raise ForbiddenActionError({"command": ["Commande réservée aux livreurs"]})
        order_id = self.board.active_conversation(sender_id)
        if order_id is None:
            self.hub.notice(sender_id, "Aucune conversation ouverte.", role=role)
            return
        self.board.end_conversation(order_id)
        self.hub.conversation_ended(self.store.get(order_id))

    def _reply(self, sender_id, role, argument):
        if role != RecipientRole.SUPPORT:
            raise ForbiddenActionError({"command": ["Commande réservée au support"]})

        order_ref, _, text = (argument or "").partition(" ")
        text = text.strip()
        if not order_ref.lstrip("#").isdigit() or not text:
            raise ValidationError({"command": ["Usage: /reply <numéro> <message>"]})

        order_id = int(order_ref.lstrip("#"))
        assignment = self.board.assignment(order_id)
        if assignment is None or not assignment.in_conversation:
            raise IllegalTransitionError({"conversation": [f"Aucune conversation ouverte pour la commande #{order_id}"]})

        self.hub.relay_to_courier(self.store.get(order_id), text)

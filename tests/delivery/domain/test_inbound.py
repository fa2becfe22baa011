"""Tests for parsing Telegram webhook updates."""

from delivery.notifications.callbacks import Action
from delivery.notifications.inbound import ButtonPress, TextMessage, parse_update


def _button_update(data, chat_id=555, from_id=555):
    return {
        "update_id": 1,
        "callback_query": {
            "id": "cb-1",
            "from": {"id": from_id},
            "message": {"message_id": 9, "chat": {"id": chat_id}},
            "data": data,
        },
    }


class TestParseUpdate:
    def test_text_message(self):
        event = parse_update({"message": {"chat": {"id": 555}, "from": {"id": 555}, "text": "salut"}})
        assert event == TextMessage(sender_id="555", text="salut")

    def test_button_press(self):
        event = parse_update(_button_update("ok:12"))
        assert isinstance(event, ButtonPress)
        assert event.sender_id == "555"
        assert event.callback.action == Action.COMPLETE
        assert event.callback.order_id == 12
        assert event.callback_id == "cb-1"

    def test_button_in_group_chat_identifies_the_chat(self):
        event = parse_update(_button_update("dt:3", chat_id=-100, from_id=77))
        assert event.sender_id == "-100"

    def test_undecodable_button_is_ignored(self):
        assert parse_update(_button_update("garbage")) is None

    def test_non_text_message_is_ignored(self):
        assert parse_update({"message": {"chat": {"id": 1}, "sticker": {}}}) is None
        assert parse_update({"edited_message": {"text": "x"}}) is None


"""Tests for the text command table."""

import pytest

from delivery.notifications.commands import TextCommand, match_command


class TestMatchCommand:
    @pytest.mark.parametrize(
        "text, command",
        [
            ("/start", TextCommand.MENU),
            ("/menu", TextCommand.MENU),
            ("🏠 Menu principal", TextCommand.MENU),
            ("/help", TextCommand.HELP),
            ("/aide", TextCommand.HELP),
            ("❓ Aide", TextCommand.HELP),
            ("/queue", TextCommand.QUEUE),
            ("/file", TextCommand.QUEUE),
            ("📦 Ma file", TextCommand.QUEUE),
            ("/fin", TextCommand.END_CONVERSATION),
            ("/end", TextCommand.END_CONVERSATION),
            ("  /FIN  ", TextCommand.END_CONVERSATION),
        ],
    )
    def test_known_inputs(self, text, command):
        assert match_command(text).command == command

    def test_reply_keeps_argument_verbatim(self):
        parsed = match_command("/reply 42 Le client Arrive")
        assert parsed.command == TextCommand.REPLY
        assert parsed.argument == "42 Le client Arrive"

    def test_bot_suffix_is_ignored(self):
        parsed = match_command("/reply@ShopBot 42 ok")
        assert parsed.command == TextCommand.REPLY
        assert parsed.argument == "42 ok"

    @pytest.mark.parametrize("text", ["bonjour", "je suis devant", "/unknown", ""])
    def test_ordinary_text_is_not_a_command(self, text):
        assert match_command(text) is None

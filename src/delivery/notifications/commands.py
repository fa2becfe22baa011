"""Text command table.

Slash commands and the equivalent reply-keyboard labels map to the same
``TextCommand``; the dispatcher looks handlers up by that value instead of
comparing strings.
"""

from dataclasses import dataclass
from enum import Enum


class TextCommand(Enum):
    MENU = "menu"
    HELP = "help"
    QUEUE = "queue"
    END_CONVERSATION = "end_conversation"
    REPLY = "reply"


COMMAND_TABLE: dict[str, TextCommand] = {
    "/start": TextCommand.MENU,
    "/menu": TextCommand.MENU,
    "🏠 menu principal": TextCommand.MENU,
    "/help": TextCommand.HELP,
    "/aide": TextCommand.HELP,
    "❓ aide": TextCommand.HELP,
    "/queue": TextCommand.QUEUE,
    "/file": TextCommand.QUEUE,
    "📦 ma file": TextCommand.QUEUE,
    "/fin": TextCommand.END_CONVERSATION,
    "/end": TextCommand.END_CONVERSATION,
    "🔚 fin de conversation": TextCommand.END_CONVERSATION,
    "/reply": TextCommand.REPLY,
    "/repondre": TextCommand.REPLY,
}


@dataclass(frozen=True)
class ParsedCommand:
    command: TextCommand
    argument: str = ""


def normalize(text: str) -> str:
    return " ".join((text or "").split()).casefold()


def match_command(text: str) -> ParsedCommand | None:
    """Resolve ``text`` to a command, or None when it is ordinary chat."""
    normalized = normalize(text)
    if normalized in COMMAND_TABLE:
        return ParsedCommand(COMMAND_TABLE[normalized])

    if not normalized.startswith("/"):
        return None

    # "/reply@ShopBot 42 on arrive" → "/reply", "42 on arrive"
    head, _, _ = normalized.partition(" ")
    command = COMMAND_TABLE.get(head.split("@", 1)[0])
    if command is None:
        return None
    _, _, argument = (text or "").strip().partition(" ")
    return ParsedCommand(command, argument.strip())

"""Button callback codec.

Inline buttons carry a short string back to us when pressed. It is always
built and read through ``encode``/``decode`` so that every action has one
explicit wire shape:

    <code>:<order_id>            e.g. "st:42"
    <code>:<order_id>:<param>    e.g. "eta:42:30"
    <code>:<param>               e.g. "q:millau"
"""

from dataclasses import dataclass
from enum import Enum

from protean.exceptions import ValidationError

MAX_CALLBACK_BYTES = 64  # Telegram's limit on callback_data


class Action(Enum):
    START_DELIVERY = "st"
    SET_ETA = "eta"
    CONTACT_CUSTOMER = "ct"
    END_CONVERSATION = "end"
    COMPLETE = "ok"
    REFUSE = "no"
    VIEW_QUEUE = "q"
    APPROVE = "ap"
    BLOCK = "bl"
    DETAILS = "dt"


# Which parts follow the action code on the wire
_SHAPES = {
    Action.SET_ETA: ("order_id", "param"),
    Action.VIEW_QUEUE: ("param",),
}
_DEFAULT_SHAPE = ("order_id",)

ADMIN_ACTIONS = {Action.APPROVE, Action.BLOCK, Action.DETAILS}


@dataclass(frozen=True)
class CallbackAction:
    action: Action
    order_id: int | None = None
    param: str | None = None

    @property
    def eta_minutes(self) -> int:
        return int(self.param)

    @property
    def zone(self) -> str | None:
        return self.param


def _shape(action: Action):
    return _SHAPES.get(action, _DEFAULT_SHAPE)


def encode(callback: CallbackAction) -> str:
    parts = [callback.action.value]
    for part in _shape(callback.action):
        value = getattr(callback, part)
        if value is None or value == "":
            raise ValueError(f"{callback.action.name} needs a {part}")
        parts.append(str(value))

    data = ":".join(parts)
    if len(data.encode("utf-8")) > MAX_CALLBACK_BYTES:
        raise ValueError(f"Callback data longer than {MAX_CALLBACK_BYTES} bytes: {data!r}")
    return data


def decode(data: str) -> CallbackAction:
    code, *values = (data or "").split(":")
    try:
        action = Action(code)
    except ValueError:
        raise ValidationError({"callback_data": [f"Unknown action: {data!r}"]}) from None

    shape = _shape(action)
    if len(values) != len(shape) or not all(values):
        raise ValidationError({"callback_data": [f"Malformed {action.name} button: {data!r}"]})

    fields = dict(zip(shape, values))
    if "order_id" in fields:
        try:
            fields["order_id"] = int(fields["order_id"])
        except ValueError:
            raise ValidationError({"callback_data": [f"Invalid order id in {data!r}"]}) from None
    if action == Action.SET_ETA and not fields["param"].isdigit():
        raise ValidationError({"callback_data": [f"Invalid ETA in {data!r}"]})

    return CallbackAction(action=action, **fields)


def button_data(action: Action, order_id: int | None = None, param=None) -> str:
    """Shortcut for ``encode(CallbackAction(...))``."""
    return encode(CallbackAction(action=action, order_id=order_id, param=None if param is None else str(param)))

"""
Ordered extraction strategies over raw webhook payloads.

The provider has changed its payload shape several times (flat fields, a nested
`data` object, Cloud-API style `entry/changes/value` envelopes). Each strategy looks
at one path in the payload tree; the first one that yields a non-empty value wins.
"""
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Tuple, Union

MISSING = object()

PathKey = Union[str, int]

BUSINESS_MESSAGE = ("entry", 0, "changes", 0, "value", "messages", 0)


def dig(tree: Any, path: Sequence[PathKey]) -> Any:
    """Follow path through nested dicts/lists. Returns MISSING if any step is absent."""
    node = tree
    for key in path:
        if isinstance(key, int):
            if not isinstance(node, list) or len(node) <= key:
                return MISSING
            node = node[key]
        else:
            if not isinstance(node, dict) or key not in node:
                return MISSING
            node = node[key]
    return node


@dataclass(frozen=True)
class Strategy:
    name: str
    path: Tuple[PathKey, ...]
    transform: Optional[Callable[[Any], Any]] = None

    def extract(self, payload: dict) -> Any:
        value = dig(payload, self.path)
        if value is MISSING or value is None:
            return MISSING
        if self.transform is not None:
            value = self.transform(value)
            if value is MISSING:
                return MISSING
        if isinstance(value, str):
            value = value.strip()
        if value == "":
            return MISSING
        return value


def first_match(strategies: Sequence[Strategy], payload: dict) -> Optional[Any]:
    if not isinstance(payload, dict):
        return None
    for strategy in strategies:
        value = strategy.extract(payload)
        if value is not MISSING:
            return value
    return None


def chat_id_digits(value: Any) -> Any:
    """'966512345678@c.us' -> '966512345678'. Anything else is not a chat id."""
    if not isinstance(value, str) or "@" not in value:
        return MISSING
    digits = re.sub(r"\D", "", value.split("@", 1)[0])
    return digits or MISSING


def scalar_text(value: Any) -> Any:
    if isinstance(value, bool):
        return MISSING
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value
    return MISSING


def _chat_id(name: str, *path: PathKey) -> Strategy:
    return Strategy(f"chat_id:{name}", tuple(path), chat_id_digits)


def _text(name: str, *path: PathKey) -> Strategy:
    return Strategy(name, tuple(path), scalar_text)


PHONE_STRATEGIES = [
    _chat_id("chatId", "chatId"),
    _chat_id("chat_id", "chat_id"),
    _chat_id("data.chatId", "data", "chatId"),
    _chat_id("data.from", "data", "from"),
    _chat_id("from", "from"),
    _text("from", "from"),
    _text("phone", "phone"),
    _text("phone_number", "phone_number"),
    _text("sender", "sender"),
    _text("wa_id", "wa_id"),
    _text("data.from", "data", "from"),
    _text("business.from", *BUSINESS_MESSAGE, "from"),
]

BODY_STRATEGIES = [
    _text("message", "message"),
    _text("body", "body"),
    _text("text", "text"),
    _text("message.body", "message", "body"),
    _text("message.text", "message", "text"),
    _text("text.body", "text", "body"),
    _text("data.body", "data", "body"),
    _text("data.message", "data", "message"),
    _text("data.text", "data", "text"),
    _text("business.text.body", *BUSINESS_MESSAGE, "text", "body"),
]

BUTTON_STRATEGIES = [
    _text("button_id", "button_id"),
    _text("buttonId", "buttonId"),
    _text("data.button_id", "data", "button_id"),
    _text("data.buttonId", "data", "buttonId"),
    _text("interactive.button_reply.id", "interactive", "button_reply", "id"),
    _text("interactive.id", "interactive", "id"),
    _text("data.interactive.button_reply.id", "data", "interactive", "button_reply", "id"),
    _text("data.interactive.id", "data", "interactive", "id"),
    _text("business.interactive.button_reply.id", *BUSINESS_MESSAGE, "interactive", "button_reply", "id"),
    _text("business.button.payload", *BUSINESS_MESSAGE, "button", "payload"),
]

MESSAGE_ID_STRATEGIES = [
    _text("data.id", "data", "id"),
    _text("id", "id"),
    _text("message_id", "message_id"),
    _text("business.id", *BUSINESS_MESSAGE, "id"),
]

# Id of the message a reply quotes, i.e. our outbound invitation
QUOTED_ID_STRATEGIES = [
    _text("context.id", "context", "id"),
    _text("quotedMsgId", "quotedMsgId"),
    _text("quoted_message_id", "quoted_message_id"),
    _text("data.quotedMsg.id", "data", "quotedMsg", "id"),
    _text("data.quotedMsgId", "data", "quotedMsgId"),
    _text("data.context.id", "data", "context", "id"),
    _text("business.context.id", *BUSINESS_MESSAGE, "context", "id"),
]

EVENT_STRATEGIES = [
    _text("event_type", "event_type"),
    _text("event", "event"),
    _text("data.event_type", "data", "event_type"),
]


def extract_phone(payload: dict) -> Optional[str]:
    return first_match(PHONE_STRATEGIES, payload)


def extract_body(payload: dict) -> Optional[str]:
    return first_match(BODY_STRATEGIES, payload)


def extract_button_id(payload: dict) -> Optional[str]:
    return first_match(BUTTON_STRATEGIES, payload)


def extract_message_id(payload: dict) -> Optional[str]:
    return first_match(MESSAGE_ID_STRATEGIES, payload)


def extract_quoted_message_id(payload: dict) -> Optional[str]:
    return first_match(QUOTED_ID_STRATEGIES, payload)


def extract_event_type(payload: dict) -> Optional[str]:
    return first_match(EVENT_STRATEGIES, payload)


def is_from_me(payload: dict) -> bool:
    if not isinstance(payload, dict):
        return False
    for path in (("fromMe",), ("data", "fromMe"), ("from_me",), ("data", "from_me")):
        if dig(payload, path) is True:
            return True
    return False

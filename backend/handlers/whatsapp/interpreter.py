import logging
import re
from dataclasses import dataclass
from typing import Optional

import whatsapp_constants as msg
from handlers.whatsapp.extractors import (
    extract_body,
    extract_button_id,
    extract_event_type,
    extract_message_id,
    extract_phone,
    extract_quoted_message_id,
    is_from_me,
)

logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[.,!?;:]")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class InboundMessage:
    sender_phone: str
    decision: Optional[str]
    raw_text: Optional[str] = None
    button_id: Optional[str] = None
    message_id: Optional[str] = None
    reply_to_id: Optional[str] = None


@dataclass
class Interpretation:
    """What the webhook should do with a payload before any store lookup."""
    action: str
    message: str
    inbound: Optional[InboundMessage] = None

    @property
    def actionable(self) -> bool:
        return self.action == msg.ACTION_MESSAGE


def decision_from_button(button_id: Optional[str]) -> Optional[str]:
    """
    Map a reply-button id to a decision.
    Exact CONFIRM_YES / CONFIRM_NO first, then ids carrying a yes_ / no_ marker.
    """
    if not button_id:
        return None
    if button_id == msg.BUTTON_CONFIRM_YES:
        return msg.DECISION_YES
    if button_id == msg.BUTTON_CONFIRM_NO:
        return msg.DECISION_NO

    lowered = button_id.lower()
    if lowered.startswith(msg.BUTTON_PREFIX_YES) or msg.BUTTON_PREFIX_YES in lowered:
        return msg.DECISION_YES
    if lowered.startswith(msg.BUTTON_PREFIX_NO) or msg.BUTTON_PREFIX_NO in lowered:
        return msg.DECISION_NO
    return None


def normalize_text(text: str) -> str:
    collapsed = _WHITESPACE.sub(" ", (text or "").strip()).upper()
    return _PUNCTUATION.sub("", collapsed).strip()


def _matches_keyword(normalized: str, keyword: str) -> bool:
    if len(keyword) == 1 and keyword.isascii():
        # Y / N only count as a word on their own
        return keyword in normalized.split(" ")
    return (
        normalized == keyword
        or normalized.startswith(f"{keyword} ")
        or keyword in normalized
    )


def classify_text(text: Optional[str]) -> Optional[str]:
    """
    Free-text reply to YES / NO, or None when nothing matches.

    YES keywords are checked first, so a reply containing both kinds of keyword
    counts as YES.
    """
    normalized = normalize_text(text)
    if not normalized:
        return None
    if any(_matches_keyword(normalized, kw) for kw in msg.YES_KEYWORDS):
        return msg.DECISION_YES
    if any(_matches_keyword(normalized, kw) for kw in msg.NO_KEYWORDS):
        return msg.DECISION_NO
    return None


def interpret_payload(payload: dict) -> Interpretation:
    """Filter out non-actionable events, then extract and classify the reply."""
    payload = payload if isinstance(payload, dict) else {}

    if is_from_me(payload):
        return Interpretation(msg.ACTION_IGNORED_FROM_ME, "Ignored: outgoing message")

    event_type = extract_event_type(payload)
    if event_type and event_type not in msg.MESSAGE_EVENTS:
        return Interpretation(msg.ACTION_IGNORED_EVENT, f"Ignored: event {event_type}")

    phone = extract_phone(payload)
    body = extract_body(payload)
    button_id = extract_button_id(payload)

    if not phone or not (body or button_id):
        logger.warning("[Webhook] Missing required fields (phone=%s, body=%s, button=%s)",
                       bool(phone), bool(body), bool(button_id))
        return Interpretation(msg.ACTION_MISSING_FIELDS, "Missing required fields")

    decision = decision_from_button(button_id)
    if decision is None:
        decision = classify_text(body)

    inbound = InboundMessage(
        sender_phone=phone,
        decision=decision,
        raw_text=body,
        button_id=button_id,
        message_id=extract_message_id(payload),
        reply_to_id=extract_quoted_message_id(payload),
    )
    return Interpretation(msg.ACTION_MESSAGE, "Message received", inbound)

"""
Inbound WhatsApp webhook processing.

Every outcome is reported as {"success": bool, "message": str}. Content problems
never raise to the route; unexpected errors are journaled to error_logs and
reported as success False.
"""
import hmac
import logging
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from database import RecordStore
from error_logger import log_webhook_error
from events import EventBus
from handlers.invite_handler import handle_invite_response
from handlers.whatsapp import find_player_by_phone, interpret_payload
from logic_utils import digits_only
from redis_client import MessageDeduplicator
import whatsapp_constants as msg

logger = logging.getLogger(__name__)

TOKEN_HEADERS = ("webhook-token", "webhook_token", "x-webhook-token")


def webhook_result(success: bool, message: str) -> dict:
    return {"success": success, "message": message}


def verify_webhook_token(headers: Mapping[str, Any], expected: Optional[str]) -> bool:
    """True when no secret is configured or one of the token headers matches it."""
    if not expected:
        return True
    lowered = {str(k).lower(): v for k, v in headers.items()}
    for name in TOKEN_HEADERS:
        value = lowered.get(name)
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value and hmac.compare_digest(str(value).encode(), expected.encode()):
            return True
    return False


class WebhookTestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: Optional[str] = Field(default=None, alias="from")
    body: Optional[str] = None
    message: Optional[str] = None
    button_id: Optional[str] = None
    interactive: Optional[dict] = None


def build_test_payload(request: WebhookTestRequest) -> dict:
    """Wrap a test request in a provider-style message_received envelope."""
    data = {"fromMe": False}
    if request.from_:
        data["from"] = f"{digits_only(request.from_)}@c.us"
    text = request.body or request.message
    if text:
        data["body"] = text
    if request.button_id:
        data["button_id"] = request.button_id
    if request.interactive:
        data["interactive"] = request.interactive
    return {"event_type": "message_received", "data": data}


class WebhookHandler:
    def __init__(self, store: RecordStore, bus: Optional[EventBus] = None,
                 deduplicator: Optional[MessageDeduplicator] = None):
        self.store = store
        self.bus = bus
        self.deduplicator = deduplicator

    async def handle(self, payload: dict) -> dict:
        phone = None
        claimed_id = None
        try:
            interpretation = interpret_payload(payload)
            if interpretation.action in (msg.ACTION_IGNORED_FROM_ME, msg.ACTION_IGNORED_EVENT):
                logger.info("[Webhook] %s", interpretation.message)
                return webhook_result(True, interpretation.message)
            if interpretation.action == msg.ACTION_MISSING_FIELDS:
                return webhook_result(False, interpretation.message)

            inbound = interpretation.inbound
            phone = inbound.sender_phone

            if self.deduplicator is not None:
                if not await self.deduplicator.claim(inbound.message_id):
                    logger.info("[Webhook] Duplicate delivery of message %s ignored", inbound.message_id)
                    return webhook_result(True, "Duplicate delivery ignored")
                claimed_id = inbound.message_id

            if inbound.decision is None:
                logger.info("[Webhook] Unrecognized reply from %s: %r", phone, inbound.raw_text)
                return webhook_result(True, f"Message not actioned: {msg.ACTION_UNKNOWN}")

            player = await find_player_by_phone(self.store, phone)
            if not player:
                return webhook_result(False, f"Processing failed: {msg.ACTION_PLAYER_NOT_FOUND}")

            outcome = await handle_invite_response(
                self.store, player, inbound.decision, self.bus, reply_to_id=inbound.reply_to_id
            )
            return webhook_result(True, f"Message processed: {outcome.action}")

        except Exception as e:
            logger.exception("[Webhook] Error processing webhook: %s", e)
            if claimed_id:
                # Let the provider's retry of this message through
                await self.deduplicator.release(claimed_id)
            await log_webhook_error(self.store, str(e), phone_number=phone, payload=payload, exception=e)
            return webhook_result(False, str(e) or e.__class__.__name__)

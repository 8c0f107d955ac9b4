"""
Outbound invitation and follow-up messages.

Invitations go out as interactive button messages first. If the provider rejects
that format, or the call fails in transit, the same text is sent once more as plain
text with typed-reply instructions. Ordinary failures come back as
{"success": False, "error": ...}; only ConfigurationError is raised.
"""
import logging
from typing import Optional

import httpx

from database import RecordStore
from exceptions import AccountVerificationError, ConfigurationError, ProviderError
from logic_utils import format_match_time, normalize_phone_for_provider, now_iso
from match_organizer import get_court_name
from whatsapp_client import WhatsAppClient, extract_message_id
import whatsapp_constants as msg

logger = logging.getLogger(__name__)

SEND_FAILURES = (ProviderError, httpx.HTTPError)


def send_result(success: bool, message_id: Optional[str] = None, error: Optional[str] = None) -> dict:
    result = {"success": success}
    if message_id:
        result["messageId"] = message_id
    if error:
        result["error"] = error
    return result


class InvitationSender:
    def __init__(self, store: RecordStore, client: WhatsAppClient):
        self.store = store
        self.client = client

    async def send_invitation(self, invitation_id: str) -> dict:
        # Configuration problems are deployment issues and must reach the caller
        self.client.require_configured()
        logger.info("[WhatsApp] Sending invitation for invitationId: %s", invitation_id)

        try:
            valid, error = await self.client.verify_account()
        except SEND_FAILURES as e:
            logger.error("[WhatsApp] Account verification request failed: %s", e)
            return send_result(False, error=f"Account verification failed: {e}")
        if not valid:
            logger.error("[WhatsApp] Account verification failed: %s", error)
            raise AccountVerificationError(error)

        try:
            invitation, match, player = await self._load_context(invitation_id)
            if not player.get("phone"):
                return send_result(False, error=f"Player {player.get('id')} has no phone number")

            court_name = await get_court_name(self.store, match.get("court_id"))
            text = msg.MSG_INVITATION.format(
                name=player.get("name") or "there",
                time=format_match_time(match.get("scheduled_time"), self.client.config.match_timezone),
                court=court_name,
            )
            to = normalize_phone_for_provider(player["phone"])
            buttons = [
                (f"{msg.BUTTON_PREFIX_YES}{invitation_id}", msg.BUTTON_TITLE_YES),
                (f"{msg.BUTTON_PREFIX_NO}{invitation_id}", msg.BUTTON_TITLE_NO),
            ]
            logger.info("[WhatsApp] Sending to player: %s (%s)", player.get("name"), to)

            result = await self._send_with_fallback(to, text, buttons)
            message_id = extract_message_id(result)
            await self._mark_invited(invitation, message_id)

            logger.info("[WhatsApp] Invitation %s sent to %s", invitation_id, player.get("name"))
            return send_result(True, message_id=message_id)

        except ConfigurationError:
            raise
        except Exception as e:
            logger.error("[WhatsApp] Error sending invitation %s: %s", invitation_id, e)
            return send_result(False, error=str(e) or e.__class__.__name__)

    async def _send_with_fallback(self, to: str, text: str, buttons) -> dict:
        try:
            return await self.client.send_interactive(to, text, buttons)
        except SEND_FAILURES as e:
            logger.warning("[WhatsApp] Interactive message rejected (%s), falling back to plain text", e)

        fallback_text = f"{text}\n\n{msg.MSG_REPLY_INSTRUCTIONS}"
        return await self.client.send_text(to, fallback_text)

    async def _load_context(self, invitation_id: str):
        invitation = await self.store.find_one("invitations", invitation_id)
        if not invitation:
            raise LookupError("Invitation not found")
        match = await self.store.find_one("matches", invitation["match_id"])
        if not match:
            raise LookupError("Match not found")
        player = await self.store.find_one("players", invitation["player_id"])
        if not player:
            raise LookupError("Player not found")
        return invitation, match, player

    async def _mark_invited(self, invitation: dict, message_id: Optional[str]):
        values = {"sent_at": now_iso()}
        # A re-send must not drag an answered invitation back to invited
        if invitation.get("status") in msg.OPEN_STATUSES:
            values["status"] = msg.STATUS_INVITED
        if message_id:
            values["whatsapp_message_id"] = message_id
        await self.store.update("invitations", invitation["id"], values)

    async def send_payment_link(self, invitation_id: str, payment_link: str) -> dict:
        text = msg.MSG_PAYMENT_LINK.format(link=payment_link)
        return await self._send_plain(invitation_id, text)

    async def send_decline_message(self, invitation_id: str) -> dict:
        return await self._send_plain(invitation_id, msg.MSG_DECLINE)

    async def _send_plain(self, invitation_id: str, text: str) -> dict:
        self.client.require_configured()
        try:
            invitation = await self.store.find_one("invitations", invitation_id)
            if not invitation:
                return send_result(False, error="Invitation not found")
            player = await self.store.find_one("players", invitation["player_id"])
            if not player or not player.get("phone"):
                return send_result(False, error="Invitation or player not found")

            result = await self.client.send_text(normalize_phone_for_provider(player["phone"]), text)
            return send_result(True, message_id=extract_message_id(result))
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error("[WhatsApp] Error sending message for invitation %s: %s", invitation_id, e)
            return send_result(False, error=str(e) or e.__class__.__name__)

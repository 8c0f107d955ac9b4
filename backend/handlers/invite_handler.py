import logging
from dataclasses import dataclass
from typing import Optional

from database import RecordStore
from events import EventBus, InvitationResponded
from invitations import find_latest_open_invitation, update_invitation, update_invitation_by_message_id
import whatsapp_constants as msg

logger = logging.getLogger(__name__)


@dataclass
class ResponseOutcome:
    action: str
    invitation: Optional[dict] = None


async def handle_invite_response(
    store: RecordStore,
    player: dict,
    decision: str,
    bus: Optional[EventBus] = None,
    reply_to_id: Optional[str] = None,
) -> ResponseOutcome:
    """
    Apply a player's YES/NO to one of their live invitations.

    A reply quoting an invitation message goes to that invitation; otherwise, or if
    the quoted invitation is no longer live, the newest live invitation is used.
    The status write runs the confirmation aggregator. Follow-up messages are left
    to InvitationResponded subscribers so a failed send cannot undo the transition.
    """
    new_status = msg.STATUS_CONFIRMED if decision == msg.DECISION_YES else msg.STATUS_DECLINED

    updated = None
    if reply_to_id:
        updated = await update_invitation_by_message_id(store, reply_to_id, new_status, player_id=player["id"])

    if updated is None:
        invitation = await find_latest_open_invitation(store, player["id"])
        if not invitation:
            logger.info("[Invite] No pending invitation for player %s", player["id"])
            return ResponseOutcome(msg.ACTION_NO_PENDING_INVITATION)
        updated = await update_invitation(store, invitation["id"], {"status": new_status})

    logger.info("[Invite] Invitation %s -> %s (player %s)", updated["id"], new_status, player["id"])

    if bus is not None:
        await bus.publish(InvitationResponded(invitation=updated, player=player, status=new_status))

    return ResponseOutcome(new_status, updated)

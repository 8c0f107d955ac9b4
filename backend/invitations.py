import logging
from typing import List, Optional

from database import RecordStore
from logic_utils import now_iso
from match_organizer import update_confirmed_count
import whatsapp_constants as msg

logger = logging.getLogger(__name__)


def validate_status(status: str):
    if status not in msg.INVITATION_STATUSES:
        raise ValueError(
            f"Invalid invitation status '{status}'. Expected one of: {', '.join(msg.INVITATION_STATUSES)}"
        )


async def ensure_invitations(store: RecordStore, match_id: str, player_ids: List[str]) -> List[dict]:
    """
    Make sure an invitation exists for each (match, player) pair.

    Existing rows are reused, missing ones are created as pending. The result follows
    the order of player_ids, with repeated ids collapsed.
    """
    if not match_id:
        raise ValueError("match_id is required")
    if not player_ids:
        raise ValueError("player_ids is required")

    ordered_ids = list(dict.fromkeys(player_ids))
    existing = await store.find("invitations", {"match_id": match_id, "player_id": ordered_ids})

    by_player = {}
    for invitation in existing:
        # Keep the newest row if the pair was invited more than once
        current = by_player.get(invitation["player_id"])
        if current is None or (invitation.get("created_at") or "") > (current.get("created_at") or ""):
            by_player[invitation["player_id"]] = invitation

    to_create = [
        {"match_id": match_id, "player_id": pid, "status": msg.STATUS_PENDING, "is_backup": False}
        for pid in ordered_ids
        if pid not in by_player
    ]
    if to_create:
        created = await store.insert("invitations", to_create)
        for invitation in created:
            by_player[invitation["player_id"]] = invitation
        logger.info("[Invitations] Created %s invitation(s) for match %s", len(created), match_id)

    return [by_player[pid] for pid in ordered_ids if pid in by_player]


async def find_latest_open_invitation(store: RecordStore, player_id: str) -> Optional[dict]:
    """The player's most recently created invitation that is still pending or invited."""
    rows = await store.find(
        "invitations",
        {"player_id": player_id, "status": list(msg.OPEN_STATUSES)},
        order_by="created_at",
        desc=True,
        limit=1,
    )
    return rows[0] if rows else None


async def update_invitation(store: RecordStore, invitation_id: str, updates: dict) -> dict:
    """
    Update an invitation. Moving into confirmed/declined stamps responded_at and
    recomputes the match's confirmed count.
    """
    values = {k: v for k, v in updates.items() if v is not None}
    status = values.get("status")
    if status is not None:
        validate_status(status)
        if status in msg.RESPONDED_STATUSES:
            values["responded_at"] = now_iso()

    invitation = await store.update("invitations", invitation_id, values)
    if not invitation:
        raise LookupError(f"Invitation {invitation_id} not found")

    if status in msg.RESPONDED_STATUSES:
        await update_confirmed_count(store, invitation["match_id"])

    return invitation


async def update_invitation_by_message_id(
    store: RecordStore,
    message_id: str,
    status: str,
    player_id: Optional[str] = None,
) -> Optional[dict]:
    """
    Alternate lookup: resolve an invitation through the provider message id of the
    invitation that was sent. Only live (pending/invited) invitations are matched,
    and only the given player's when player_id is set.
    """
    validate_status(status)
    values = {"status": status}
    if status in msg.RESPONDED_STATUSES:
        values["responded_at"] = now_iso()

    filters = {"whatsapp_message_id": message_id, "status": list(msg.OPEN_STATUSES)}
    if player_id:
        filters["player_id"] = player_id
    rows = await store.update_where("invitations", filters, values)
    if not rows:
        return None

    invitation = rows[0]
    if status in msg.RESPONDED_STATUSES:
        await update_confirmed_count(store, invitation["match_id"])
    return invitation


async def remove_invitation(store: RecordStore, invitation_id: str) -> dict:
    """Operator removal. Dropping a confirmed invitation recomputes the match headcount."""
    invitation = await store.find_one("invitations", invitation_id)
    if not invitation:
        raise LookupError(f"Invitation {invitation_id} not found")

    await store.delete("invitations", invitation_id)
    logger.info("[Invitations] Removed invitation %s from match %s", invitation_id, invitation["match_id"])

    if invitation.get("status") == msg.STATUS_CONFIRMED:
        await update_confirmed_count(store, invitation["match_id"])
    return invitation

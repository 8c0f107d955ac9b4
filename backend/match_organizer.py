import logging

from database import RecordStore
from logic_utils import now_iso
import whatsapp_constants as msg

logger = logging.getLogger(__name__)


async def update_match(store: RecordStore, match_id: str, updates: dict) -> dict:
    """
    Update match fields.

    Args:
        store: Record store
        match_id: The match ID
        updates: Dictionary of fields to update

    Returns:
        Updated match dictionary
    """
    match = await store.update("matches", match_id, updates)
    if not match:
        raise LookupError(f"Failed to update match {match_id}")
    return match


async def update_confirmed_count(store: RecordStore, match_id: str) -> dict:
    """
    Recompute a match's confirmed headcount and auto-lock it when full.

    The count is always rebuilt from the current invitation rows, so running this
    repeatedly, or out of order with other replies for the same match, converges on
    the same result. Locked is terminal: locked_at is stamped only on the first
    transition and a later drop in the count does not unlock the match.

    The lock write only matches rows whose locked_at is still null, so when two
    replies for the same match race, exactly one of them performs the transition.
    """
    count = await store.count("invitations", {"match_id": match_id, "status": msg.STATUS_CONFIRMED})
    match = await update_match(store, match_id, {"confirmed_count": count})

    target = match.get("target_count") or msg.DEFAULT_TARGET_COUNT
    if count >= target and match.get("status") != msg.MATCH_STATUS_LOCKED:
        locked = await store.update_where(
            "matches",
            {"id": match_id, "locked_at": None},
            {"status": msg.MATCH_STATUS_LOCKED, "locked_at": now_iso()},
        )
        if locked:
            logger.info("[Match] %s reached %s/%s confirmed, locked", match_id, count, target)
            return locked[0]
        # Another run locked it between our read and write
        match = await store.find_one("matches", match_id) or match
    return match


async def get_match_invites(store: RecordStore, match_id: str) -> list:
    """
    Get all invitations for a match with player details, oldest first.
    """
    invitations = await store.find("invitations", {"match_id": match_id}, order_by="created_at")
    if not invitations:
        return []

    player_ids = list({inv["player_id"] for inv in invitations})
    players = await store.find("players", {"id": player_ids})
    players_by_id = {p["id"]: p for p in players}

    result = []
    for invitation in invitations:
        player = players_by_id.get(invitation["player_id"])
        if player:
            result.append({**invitation, "player": player})
        else:
            result.append(invitation)
    return result


async def get_court_name(store: RecordStore, court_id: str) -> str:
    if not court_id:
        return "Court"
    try:
        court = await store.find_one("courts", court_id)
    except Exception as e:
        logger.warning("[Match] Error fetching court %s: %s", court_id, e)
        return "Court"
    return (court or {}).get("name") or "Court"

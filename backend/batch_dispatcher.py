import asyncio
import logging
from typing import List

from database import RecordStore
from invitation_sender import InvitationSender
from invitations import ensure_invitations

logger = logging.getLogger(__name__)

# In-flight sends per batch
DEFAULT_CONCURRENCY = 3


async def send_invitations(
    invitations: List[dict],
    sender: InvitationSender,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> List[dict]:
    """
    Send every invitation exactly once through a fixed pool of workers.

    Workers claim the next index from a shared cursor until it runs out. The claim
    is a read-and-increment with no await in between, so on the event loop no two
    workers can take the same index. Results land in the slot of their input
    position as sends complete.
    """
    results: List[dict] = [None] * len(invitations)
    cursor = 0

    async def worker(worker_id: int):
        nonlocal cursor
        while cursor < len(invitations):
            index = cursor
            cursor += 1

            invitation_id = invitations[index]["id"]
            try:
                outcome = await sender.send_invitation(invitation_id)
                slot = {"invitationId": invitation_id, "success": bool(outcome.get("success"))}
                if outcome.get("error"):
                    slot["error"] = outcome["error"]
            except Exception as e:
                logger.error("[Dispatcher] worker %s: invitation %s raised %s", worker_id, invitation_id, e)
                slot = {"invitationId": invitation_id, "success": False, "error": str(e) or e.__class__.__name__}
            results[index] = slot

    pool_size = max(1, min(concurrency, len(invitations)))
    await asyncio.gather(*(worker(i) for i in range(pool_size)))
    return results


async def dispatch_invitations(
    store: RecordStore,
    sender: InvitationSender,
    match_id: str,
    player_ids: List[str],
    concurrency: int = DEFAULT_CONCURRENCY,
) -> List[dict]:
    """Ensure invitations exist for the players, then send them all."""
    invitations = await ensure_invitations(store, match_id, player_ids)
    logger.info("[Dispatcher] Sending %s invitation(s) for match %s (concurrency %s)",
                len(invitations), match_id, concurrency)

    results = await send_invitations(invitations, sender, concurrency)

    sent = sum(1 for r in results if r["success"])
    logger.info("[Dispatcher] Sent %s/%s invitations for match %s", sent, len(results), match_id)
    return results

import logging

from database import RecordStore

logger = logging.getLogger(__name__)


async def create_payment_link(
    store: RecordStore,
    invitation_id: str,
    frontend_url: str,
    amount: float = 15.0,
    currency: str = "EUR",
) -> str:
    """
    Create (or reuse) the pending payment for an invitation and return its link.

    The link points at the dashboard's pay page; the actual payment provider
    checkout is outside this service. A repeated confirmation for the same
    invitation gets the existing link back instead of a second payment row.
    """
    existing = await store.find("payments", {"invitation_id": invitation_id}, limit=1)
    if existing and existing[0].get("payment_link"):
        return existing[0]["payment_link"]

    invitation = await store.find_one("invitations", invitation_id)
    if not invitation:
        raise LookupError(f"Invitation {invitation_id} not found")

    if existing:
        payment = existing[0]
    else:
        created = await store.insert("payments", {
            "invitation_id": invitation_id,
            "match_id": invitation["match_id"],
            "player_id": invitation["player_id"],
            "amount": amount,
            "currency": currency,
            "status": "pending",
        })
        payment = created[0]

    payment_link = f"{frontend_url.rstrip('/')}/pay/{payment['id']}"
    await store.update("payments", payment["id"], {
        "payment_link": payment_link,
        "payment_provider": "stripe",
    })
    logger.info("[Payments] Payment link ready for invitation %s", invitation_id)
    return payment_link

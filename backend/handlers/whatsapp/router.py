import logging
from typing import Optional

from database import RecordStore
from logic_utils import phone_lookup_variants

logger = logging.getLogger(__name__)


async def find_player_by_phone(store: RecordStore, phone: str) -> Optional[dict]:
    """
    Resolve the sending player. Phones are stored inconsistently, so try the literal
    sender string, then digits only, then digits with a leading '+'.
    """
    for candidate in phone_lookup_variants(phone):
        rows = await store.find("players", {"phone": candidate}, limit=1)
        if rows:
            return rows[0]

    logger.info("[Webhook] No player found for phone %s", phone)
    return None

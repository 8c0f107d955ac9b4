"""
Replay reply payloads for one invitation against the configured store.

Usage (from backend/):
    python scripts/whatsapp_local_verify.py --invitation-id=<INVITATION_ID> [--send]

--send calls the WhatsApp provider to deliver the invitation first (needs WHATSAPP_* env).
Without it, only simulated webhook payloads run and the resulting status is checked.
"""
import argparse
import asyncio
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import get_store
from events import EventBus
from invitation_sender import InvitationSender
from log_utils import setup_logging
from logic_utils import normalize_phone_for_provider
from settings import WhatsAppConfig, get_settings
from webhook_handler import WebhookHandler
from whatsapp_client import WhatsAppClient

CASES = [
    ("text YES", {"body": "YES", "type": "chat"}, "confirmed"),
    ("button CONFIRM_YES", {"button_id": "CONFIRM_YES", "body": "", "type": "button"}, "confirmed"),
    ("button CONFIRM_NO", {"button_id": "CONFIRM_NO", "body": "", "type": "button"}, "declined"),
]


async def run(invitation_id: str, send: bool):
    store = await get_store()
    invitation = await store.find_one("invitations", invitation_id)
    player = await store.find_one("players", invitation["player_id"]) if invitation else None
    if not player or not player.get("phone"):
        raise SystemExit(f"Invitation {invitation_id} not found or player has no phone")

    sender_phone = normalize_phone_for_provider(player["phone"]).replace("-", "")
    print(f"[LocalVerify] Invitation {invitation_id}: {player.get('name')} ({sender_phone}), status {invitation['status']}")

    if send:
        client = WhatsAppClient(WhatsAppConfig.from_settings(get_settings()))
        try:
            result = await InvitationSender(store, client).send_invitation(invitation_id)
            print(f"[LocalVerify] Send result: {result}")
        finally:
            await client.aclose()

    # No follow-up subscribers: replays must not message the player
    handler = WebhookHandler(store, EventBus())

    async def assert_status(expected: str):
        latest = await store.find_one("invitations", invitation_id)
        actual = latest.get("status") if latest else None
        print(f"[LocalVerify] Invitation status: expected={expected} actual={actual}")
        if actual != expected:
            raise SystemExit(f"Expected invitation status {expected} but got {actual}")

    for name, payload, expected in CASES:
        print(f"\n[LocalVerify] Case: {name}")
        await store.update("invitations", invitation_id, {"status": "invited", "responded_at": None})
        await assert_status("invited")
        result = await handler.handle({"from": sender_phone, **payload})
        print(f"[LocalVerify] Webhook result: {result}")
        await assert_status(expected)

    print("\n[LocalVerify] All cases passed.")


def main():
    parser = argparse.ArgumentParser(description="Verify the WhatsApp reply pipeline for one invitation")
    parser.add_argument("--invitation-id", required=True)
    parser.add_argument("--send", action="store_true", help="Send the invitation through the provider first")
    args = parser.parse_args()

    setup_logging(get_settings().log_level)
    asyncio.run(run(args.invitation_id, args.send))


if __name__ == "__main__":
    main()

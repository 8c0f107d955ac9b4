"""
Follow-up messages after a reply: payment link on confirm, acknowledgment on decline.
"""
import unittest
from unittest.mock import AsyncMock

from error_logger import log_error
from events import EventBus, InvitationResponded
from handlers.followup_handler import FollowupNotifier
from memory_store import MemoryStore
from payments import create_payment_link
from settings import Settings


def make_store():
    return MemoryStore({
        "players": [{"id": "p1", "name": "Sara", "phone": "+966512345678"}],
        "invitations": [{"id": "i1", "match_id": "m1", "player_id": "p1", "status": "confirmed"}],
    })


def make_settings():
    return Settings(frontend_url="https://app.test/", payment_amount=20.0, payment_currency="SAR")


class TestPayments(unittest.IsolatedAsyncioTestCase):

    async def test_creates_payment_and_link(self):
        store = make_store()

        link = await create_payment_link(store, "i1", "https://app.test/")

        payment = store.rows("payments")[0]
        self.assertEqual(link, f"https://app.test/pay/{payment['id']}")
        self.assertEqual(payment["amount"], 15.0)
        self.assertEqual(payment["currency"], "EUR")
        self.assertEqual(payment["status"], "pending")
        self.assertEqual(payment["payment_provider"], "stripe")
        self.assertEqual(payment["payment_link"], link)
        self.assertEqual(payment["match_id"], "m1")

    async def test_reuses_existing_link(self):
        store = make_store()
        first = await create_payment_link(store, "i1", "https://app.test")
        second = await create_payment_link(store, "i1", "https://app.test")
        self.assertEqual(first, second)
        self.assertEqual(len(store.rows("payments")), 1)

    async def test_missing_invitation(self):
        with self.assertRaises(LookupError):
            await create_payment_link(MemoryStore(), "nope", "https://app.test")


class TestFollowupNotifier(unittest.IsolatedAsyncioTestCase):

    def event(self, status):
        return InvitationResponded(
            invitation={"id": "i1", "match_id": "m1", "player_id": "p1", "status": status},
            player={"id": "p1", "phone": "+966512345678"},
            status=status,
        )

    async def test_confirmed_sends_payment_link(self):
        store = make_store()
        sender = AsyncMock()
        sender.send_payment_link.return_value = {"success": True, "messageId": "m"}

        await FollowupNotifier(store, sender, make_settings())(self.event("confirmed"))

        payment = store.rows("payments")[0]
        self.assertEqual(payment["amount"], 20.0)
        self.assertEqual(payment["currency"], "SAR")
        sender.send_payment_link.assert_awaited_once_with("i1", f"https://app.test/pay/{payment['id']}")
        sender.send_decline_message.assert_not_awaited()

    async def test_declined_sends_acknowledgment(self):
        store = make_store()
        sender = AsyncMock()
        sender.send_decline_message.return_value = {"success": True}

        await FollowupNotifier(store, sender, make_settings())(self.event("declined"))

        sender.send_decline_message.assert_awaited_once_with("i1")
        self.assertEqual(store.rows("payments"), [])
        self.assertEqual(store.rows("error_logs"), [])

    async def test_send_failure_is_journaled(self):
        store = make_store()
        sender = AsyncMock()
        sender.send_decline_message.return_value = {"success": False, "error": "format not supported"}

        await FollowupNotifier(store, sender, make_settings())(self.event("declined"))

        entry = store.rows("error_logs")[0]
        self.assertEqual(entry["error_type"], "whatsapp_send")
        self.assertEqual(entry["error_message"], "format not supported")
        self.assertEqual(entry["player_id"], "p1")
        self.assertEqual(entry["additional_context"], {"invitation_id": "i1"})

    async def test_exception_does_not_escape_bus(self):
        store = make_store()
        sender = AsyncMock()
        sender.send_payment_link.side_effect = RuntimeError("provider down")
        bus = EventBus()
        bus.subscribe(InvitationResponded, FollowupNotifier(store, sender, make_settings()))

        completed = await bus.publish(self.event("confirmed"))

        self.assertEqual(completed, 1)
        entry = store.rows("error_logs")[0]
        self.assertEqual(entry["error_message"], "provider down")
        self.assertIn("RuntimeError", entry["stack_trace"])


class TestEventBus(unittest.IsolatedAsyncioTestCase):

    async def test_failing_subscriber_does_not_stop_others(self):
        bus = EventBus()
        calls = []

        async def broken(event):
            raise ValueError("bad")

        async def working(event):
            calls.append(event)

        bus.subscribe(InvitationResponded, broken)
        bus.subscribe(InvitationResponded, working)
        event = InvitationResponded(invitation={"id": "i1"}, player={}, status="declined")

        self.assertEqual(await bus.publish(event), 1)
        self.assertEqual(calls, [event])

    async def test_no_subscribers(self):
        self.assertEqual(await EventBus().publish(object()), 0)


class TestErrorLogger(unittest.IsolatedAsyncioTestCase):

    async def test_context_is_redacted(self):
        store = MemoryStore()
        await log_error(store, "webhook_processing", "boom",
                        additional_context={"payload": {"token": "abc", "body": "yes"}})
        entry = store.rows("error_logs")[0]
        self.assertEqual(entry["additional_context"], {"payload": {"token": "***", "body": "yes"}})
        self.assertNotIn("player_id", entry)

    async def test_store_failure_is_swallowed(self):
        store = MemoryStore()
        store.insert = AsyncMock(side_effect=RuntimeError("no table"))
        await log_error(store, "whatsapp_send", "boom")
        store.insert.assert_awaited_once()


if __name__ == "__main__":
    unittest.main()

"""
HTTP surface: webhook ingress and operator routes, with collaborators overridden.
"""
import unittest
from unittest.mock import AsyncMock, patch

import httpx
from fastapi.testclient import TestClient

from dependencies import get_invitation_sender, get_webhook_handler, get_whatsapp_client, require_store
from events import EventBus
from invitation_sender import InvitationSender
from main import app
from memory_store import MemoryStore
from settings import Settings, WhatsAppConfig, get_settings
from webhook_handler import WebhookHandler
from whatsapp_client import WhatsAppClient

SECRET = "hook-secret"


def make_store():
    return MemoryStore({
        "matches": [{"id": "m1", "status": "Open", "target_count": 4, "scheduled_time": "2025-06-01T16:00:00+00:00"}],
        "players": [{"id": "p1", "name": "Sara", "phone": "+966512345678"}],
        "invitations": [{"id": "i1", "match_id": "m1", "player_id": "p1", "status": "invited",
                         "created_at": "2025-01-01T10:00:00+00:00"}],
    })


class RouteTestCase(unittest.TestCase):

    def setUp(self):
        self.store = make_store()
        app.dependency_overrides[get_settings] = lambda: Settings(whatsapp_webhook_token=SECRET)
        app.dependency_overrides[get_webhook_handler] = lambda: WebhookHandler(self.store, EventBus())
        app.dependency_overrides[require_store] = lambda: self.store
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def status(self):
        return self.store.tables["invitations"][0]["status"]


class TestWebhookRoutes(RouteTestCase):

    def test_liveness_check(self):
        response = self.client.get("/webhooks/whatsapp")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertIn("timestamp", body)

    def test_mismatched_token_is_200_with_failure(self):
        response = self.client.post(
            "/webhooks/whatsapp",
            json={"data": {"from": "966512345678@c.us", "body": "yes"}},
            headers={"x-webhook-token": "wrong"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": False, "message": "Invalid webhook token"})
        self.assertEqual(self.status(), "invited")

    def test_missing_token(self):
        response = self.client.post("/webhooks/whatsapp", json={"from": "966512345678", "body": "yes"})
        self.assertFalse(response.json()["success"])

    def test_valid_reply(self):
        response = self.client.post(
            "/webhooks/whatsapp",
            json={"event_type": "message_received", "data": {"from": "966512345678@c.us", "body": "Yes!"}},
            headers={"webhook-token": SECRET},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True, "message": "Message processed: confirmed"})
        self.assertEqual(self.status(), "confirmed")

    def test_unparseable_body_is_empty_payload(self):
        response = self.client.post(
            "/webhooks/whatsapp",
            content=b"not json",
            headers={"webhook-token": SECRET, "content-type": "application/json"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": False, "message": "Missing required fields"})

    def test_non_object_body(self):
        response = self.client.post("/webhooks/whatsapp", json=["yes"], headers={"webhook-token": SECRET})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["success"])

    def test_test_endpoint_runs_same_handler(self):
        response = self.client.post(
            "/webhooks/whatsapp/test",
            json={"from": "+966512345678", "body": "no thanks"},
            headers={"webhook_token": SECRET},
        )
        self.assertEqual(response.json(), {"success": True, "message": "Message processed: declined"})
        self.assertEqual(self.status(), "declined")

    def test_test_endpoint_checks_token(self):
        response = self.client.post("/webhooks/whatsapp/test", json={"from": "+966512345678", "body": "yes"})
        self.assertEqual(response.json()["message"], "Invalid webhook token")

    def test_unconfigured_store(self):
        app.dependency_overrides[get_webhook_handler] = lambda: None
        response = self.client.post(
            "/webhooks/whatsapp", json={"from": "966512345678", "body": "yes"}, headers={"webhook-token": SECRET}
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["success"])

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "healthy"})


class TestOperatorRoutes(RouteTestCase):

    def test_patch_invitation_runs_aggregator(self):
        response = self.client.patch("/api/invitations/i1", json={"status": "confirmed"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["invitation"]["status"], "confirmed")
        self.assertEqual(self.store.tables["matches"][0]["confirmed_count"], 1)

    def test_patch_rejects_unknown_status(self):
        response = self.client.patch("/api/invitations/i1", json={"status": "maybe"})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(self.status(), "invited")

    def test_patch_missing_invitation(self):
        response = self.client.patch("/api/invitations/nope", json={"status": "declined"})
        self.assertEqual(response.status_code, 404)

    def test_patch_without_fields(self):
        self.assertEqual(self.client.patch("/api/invitations/i1", json={}).status_code, 400)

    def test_list_invitations(self):
        response = self.client.get("/api/invitations", params={"match_id": "m1"})
        invitations = response.json()["invitations"]
        self.assertEqual(invitations[0]["player"]["name"], "Sara")

    def test_delete_invitation(self):
        self.assertEqual(self.client.delete("/api/invitations/i1").json(), {"success": True})
        self.assertEqual(self.store.tables["invitations"], [])
        self.assertEqual(self.client.delete("/api/invitations/i1").status_code, 404)

    def test_recount(self):
        self.store.tables["invitations"][0]["status"] = "confirmed"
        response = self.client.post("/api/matches/m1/recount")
        self.assertEqual(response.json()["match"]["confirmed_count"], 1)
        self.assertEqual(self.client.post("/api/matches/nope/recount").status_code, 404)

    def test_send_invitation_configuration_error(self):
        client = WhatsAppClient(WhatsAppConfig(api_token="", account_id=7))
        app.dependency_overrides[get_invitation_sender] = lambda: InvitationSender(self.store, client)

        response = self.client.post("/api/whatsapp/send-invitation", json={"invitation_id": "i1"})

        self.assertEqual(response.status_code, 500)
        self.assertIn("WHATSAPP_API_TOKEN", response.json()["detail"])

    def test_send_batch(self):
        def provider(request):
            if request.url.path == "/accounts":
                return httpx.Response(200, json={"data": [{"id": 7, "ready": True}]})
            return httpx.Response(200, json={"status": "success", "id": "wamid.9"})

        client = WhatsAppClient(
            WhatsAppConfig(api_token="t", api_url="https://provider.test", account_id=7),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(provider)),
        )
        app.dependency_overrides[get_invitation_sender] = lambda: InvitationSender(self.store, client)

        response = self.client.post("/api/invitations/send", json={"match_id": "m1", "player_ids": ["p1"]})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            "match_id": "m1",
            "results": [{"invitationId": "i1", "success": True}],
        })
        self.assertEqual(self.store.tables["invitations"][0]["whatsapp_message_id"], "wamid.9")

    def test_send_batch_uses_client_concurrency(self):
        client = WhatsAppClient(WhatsAppConfig(api_token="t", account_id=7, send_concurrency=2))
        app.dependency_overrides[get_invitation_sender] = lambda: InvitationSender(self.store, client)

        with patch("api_routes.dispatch_invitations", new=AsyncMock(return_value=[])) as dispatch:
            response = self.client.post("/api/invitations/send", json={"match_id": "m1", "player_ids": ["p1"]})

        self.assertEqual(response.status_code, 200)
        dispatch.assert_awaited_once()
        self.assertEqual(dispatch.await_args.args[2:], ("m1", ["p1"], 2))

    def test_send_batch_requires_players(self):
        response = self.client.post("/api/invitations/send", json={"match_id": "m1", "player_ids": []})
        self.assertEqual(response.status_code, 400)

    def test_whatsapp_status_without_token(self):
        app.dependency_overrides[get_whatsapp_client] = lambda: WhatsAppClient(WhatsAppConfig(api_token=""))
        body = self.client.get("/api/whatsapp/status").json()
        self.assertFalse(body["valid"])
        self.assertIn("WHATSAPP_API_TOKEN", body["error"])


if __name__ == "__main__":
    unittest.main()

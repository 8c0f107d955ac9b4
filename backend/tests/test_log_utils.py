"""
Test cases for payload redaction before logging.
"""
import json

from log_utils import CIRCULAR, REDACTED, is_sensitive_key, redact, to_log_json


class TestRedact:

    def test_masks_credential_keys(self):
        result = redact({"token": "abc", "Authorization": "Bearer x", "body": "yes"})
        assert result == {"token": REDACTED, "Authorization": REDACTED, "body": "yes"}

    def test_hyphen_and_underscore_variants(self):
        for key in ("api-key", "api_key", "apikey", "Webhook-Token", "webhook_token", "x_access_token", "client_secret"):
            assert is_sensitive_key(key), key

    def test_plain_keys_untouched(self):
        for key in ("from", "body", "tokens_used", "message", 5):
            assert not is_sensitive_key(key), key

    def test_nested_structures(self):
        payload = {"data": {"from": "1@c.us", "auth": [{"password": "p"}, {"secret": "s"}]}}
        result = redact(payload)
        assert result["data"]["auth"] == [{"password": REDACTED}, {"secret": REDACTED}]
        assert result["data"]["from"] == "1@c.us"
        # input is left untouched
        assert payload["data"]["auth"][0]["password"] == "p"

    def test_cycles(self):
        payload = {"name": "loop"}
        payload["self"] = payload
        result = redact(payload)
        assert result["self"] == CIRCULAR
        assert result["name"] == "loop"

    def test_shared_non_cyclic_references_are_kept(self):
        shared = {"body": "yes"}
        result = redact({"a": shared, "b": shared})
        assert result == {"a": {"body": "yes"}, "b": {"body": "yes"}}

    def test_to_log_json(self):
        payload = {"token": "abc"}
        payload["again"] = payload
        assert json.loads(to_log_json(payload)) == {"token": REDACTED, "again": CIRCULAR}

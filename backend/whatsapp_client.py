import logging
from typing import List, Optional, Tuple

import httpx

from exceptions import ConfigurationError, ProviderError
from settings import WhatsAppConfig

logger = logging.getLogger(__name__)


def build_text_payload(account_id: int, to: str, text: str) -> dict:
    return {"whatsapp_account_id": account_id, "to": to, "message": text}


def build_interactive_payload(account_id: int, to: str, text: str, buttons: List[Tuple[str, str]]) -> dict:
    """buttons is a list of (reply_id, title) pairs."""
    return {
        "whatsapp_account_id": account_id,
        "to": to,
        "type": "interactive",
        "interactive": {
            "type": "button",
            "body": {"text": text},
            "action": {
                "buttons": [
                    {"type": "reply", "reply": {"id": reply_id, "title": title}}
                    for reply_id, title in buttons
                ]
            },
        },
    }


def extract_message_id(result: dict) -> Optional[str]:
    """The provider has returned the id under several keys over time."""
    for key in ("id", "messageId", "message_id", "msgid"):
        if result.get(key):
            return str(result[key])
    data = result.get("data")
    if isinstance(data, dict):
        for key in ("id", "message_id"):
            if data.get(key):
                return str(data[key])
    return None


class WhatsAppClient:
    """
    Thin async client for the WhatsApp provider REST API.

    Success is signalled by {"status": "success"} in the body, even on HTTP 200;
    anything else raises ProviderError. Transport problems surface as httpx errors.
    """

    def __init__(self, config: WhatsAppConfig, http_client: httpx.AsyncClient = None):
        self.config = config
        self._http = http_client
        self._owns_http = http_client is None

    def require_configured(self):
        if not self.config.api_token or not self.config.api_token.strip():
            logger.error("[WhatsApp] API token is not configured")
            raise ConfigurationError(
                "WhatsApp API token is not configured. Please set WHATSAPP_API_TOKEN in environment variables."
            )
        if self.config.account_id is None:
            logger.error("[WhatsApp] Account id is not configured")
            raise ConfigurationError(
                "WhatsApp account id is not configured. Please set WHATSAPP_ACCOUNT_ID in environment variables."
            )

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._http

    async def aclose(self):
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    def _headers(self) -> dict:
        return {"token": self.config.api_token, "Content-Type": "application/json"}

    async def _request(self, method: str, path: str, json_body: dict = None):
        url = f"{self.config.base_url}{path}"
        response = await self.http.request(
            method,
            url,
            headers=self._headers(),
            json=json_body,
            timeout=self.config.timeout_seconds,
        )
        logger.debug("[WhatsApp] %s %s -> %s", method, path, response.status_code)
        try:
            result = response.json()
        except ValueError:
            raise ProviderError(
                f"WhatsApp API returned invalid JSON ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise ProviderError(
                f"WhatsApp API error ({response.status_code}): {_error_text(result)}",
                response=result if isinstance(result, dict) else {},
                status_code=response.status_code,
            )
        return result

    async def _send(self, payload: dict) -> dict:
        self.require_configured()
        result = await self._request("POST", "/messages/send", payload)
        if not isinstance(result, dict) or result.get("status") != "success":
            raise ProviderError(
                f"WhatsApp API returned error: {_error_text(result)}",
                response=result if isinstance(result, dict) else {},
            )
        return result

    async def send_text(self, to: str, text: str) -> dict:
        return await self._send(build_text_payload(self.config.account_id, to, text))

    async def send_interactive(self, to: str, text: str, buttons: List[Tuple[str, str]]) -> dict:
        return await self._send(build_interactive_payload(self.config.account_id, to, text, buttons))

    async def list_accounts(self) -> List[dict]:
        """Account entries as dicts; entries of any other shape are dropped."""
        self.require_configured()
        result = await self._request("GET", "/accounts")
        if isinstance(result, dict):
            accounts = result.get("data") or result.get("accounts") or []
        else:
            accounts = result
        if not isinstance(accounts, list):
            raise ProviderError(
                f"WhatsApp API returned a malformed account list: {_error_text(result)}",
                response=result if isinstance(result, dict) else {},
            )
        return [account for account in accounts if isinstance(account, dict)]

    async def verify_account(self) -> Tuple[bool, Optional[str]]:
        """
        Check that the configured account is listed and ready.

        Returns (valid, error). Transport errors propagate so callers can tell
        "provider unreachable" apart from "account not usable".
        """
        accounts = await self.list_accounts()
        wanted = str(self.config.account_id)
        for account in accounts:
            if str(account.get("id")) == wanted:
                if account.get("ready"):
                    return True, None
                return False, f"WhatsApp account {wanted} is not ready. Scan the QR code in the provider dashboard."
        return False, f"WhatsApp account {wanted} was not found in the provider account list."

    async def set_webhook(self, webhook_url: str, webhook_token: str = None) -> dict:
        self.require_configured()
        body = {"whatsapp_account_id": self.config.account_id, "url": webhook_url}
        if webhook_token:
            body["token"] = webhook_token
        result = await self._request("POST", "/webhooks/set", body)
        if not isinstance(result, dict) or result.get("status") != "success":
            raise ProviderError(f"Webhook registration failed: {_error_text(result)}")
        logger.info("[WhatsApp] Webhook registered: %s", webhook_url)
        return result


def _error_text(result) -> str:
    if isinstance(result, dict):
        return str(result.get("message") or result.get("error") or result)
    return str(result)

"""
Logging setup and payload redaction.

Webhook payloads and headers are logged in full for debugging provider shape drift,
so anything credential-shaped is masked before it reaches a handler.
"""
import json
import logging
from typing import Any

REDACTED = "***"
CIRCULAR = "[Circular]"

SENSITIVE_KEYS = {
    "token",
    "authorization",
    "api_key",
    "apikey",
    "password",
    "passwd",
    "secret",
    "client_secret",
    "access_token",
    "refresh_token",
    "webhook_token",
}

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO"):
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def is_sensitive_key(key: Any) -> bool:
    if not isinstance(key, str):
        return False
    normalized = key.strip().lower().replace("-", "_")
    if normalized in SENSITIVE_KEYS:
        return True
    return normalized.endswith("_token") or "secret" in normalized or "password" in normalized


def redact(value: Any, _seen: frozenset = frozenset()) -> Any:
    """Return a copy of value with sensitive keys masked. Cycles become '[Circular]'."""
    if isinstance(value, (dict, list, tuple)):
        if id(value) in _seen:
            return CIRCULAR
        seen = _seen | {id(value)}
        if isinstance(value, dict):
            return {
                k: (REDACTED if is_sensitive_key(k) else redact(v, seen))
                for k, v in value.items()
            }
        return [redact(item, seen) for item in value]
    return value


def to_log_json(value: Any) -> str:
    """Redact and serialize for a log line; never raises."""
    try:
        return json.dumps(redact(value), default=str, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        return f"<unserializable: {e}>"

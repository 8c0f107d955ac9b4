import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

import api_routes
import dependencies
from dependencies import get_webhook_handler
from log_utils import setup_logging, to_log_json
from logic_utils import now_iso
from settings import Settings, get_settings
from webhook_handler import (
    WebhookHandler,
    WebhookTestRequest,
    build_test_payload,
    verify_webhook_token,
    webhook_result,
)

logger = logging.getLogger(__name__)

settings = get_settings()
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await dependencies.shutdown()


# For Vercel, requests come in at /api/* so we need to handle that
is_vercel = os.environ.get('VERCEL', False)

app = FastAPI(title=settings.app_name, root_path="/api" if is_vercel else "", lifespan=lifespan)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with frontend URL
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routes - remove /api prefix when on Vercel since /api is already in the path
prefix = "" if is_vercel else "/api"
app.include_router(api_routes.router, prefix=prefix)


@app.get("/")
async def root():
    return {"message": "WhatsApp Padel Sync API"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


async def _read_payload(request: Request) -> dict:
    try:
        payload = await request.json()
    except (ValueError, UnicodeDecodeError):
        return {}
    return payload if isinstance(payload, dict) else {}


async def _process(handler: Optional[WebhookHandler], payload: dict) -> dict:
    if handler is None:
        return webhook_result(False, "Record store is not configured")
    result = await handler.handle(payload)
    logger.info("[Webhook] Result: %s", to_log_json(result))
    return result


@app.get("/webhooks/whatsapp")
async def whatsapp_webhook_liveness():
    return {"success": True, "message": "WhatsApp webhook is reachable", "timestamp": now_iso()}


@app.post("/webhooks/whatsapp")
async def whatsapp_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    handler: Optional[WebhookHandler] = Depends(get_webhook_handler),
):
    """
    Handle incoming messages from the WhatsApp provider.
    Always answers 200 so the provider does not retry content problems.
    """
    payload = await _read_payload(request)
    logger.info("[Webhook] Headers: %s", to_log_json(dict(request.headers)))
    logger.info("[Webhook] Payload: %s", to_log_json(payload))

    if not verify_webhook_token(request.headers, settings.whatsapp_webhook_token):
        logger.warning("[Webhook] Invalid webhook token")
        return webhook_result(False, "Invalid webhook token")

    return await _process(handler, payload)


@app.post("/webhooks/whatsapp/test")
async def whatsapp_webhook_test(
    body: WebhookTestRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    handler: Optional[WebhookHandler] = Depends(get_webhook_handler),
):
    """
    Simulate an incoming WhatsApp message (test mode).
    Runs the same handler as the provider webhook.
    """
    if not verify_webhook_token(request.headers, settings.whatsapp_webhook_token):
        return webhook_result(False, "Invalid webhook token")

    payload = build_test_payload(body)
    logger.info("[Webhook] Test payload: %s", to_log_json(payload))
    return await _process(handler, payload)

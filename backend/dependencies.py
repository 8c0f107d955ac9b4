"""
Process-wide collaborators for the routes, built lazily from Settings.
Tests replace these through app.dependency_overrides.
"""
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException

from database import RecordStore, get_store
from events import EventBus, InvitationResponded
from exceptions import ConfigurationError
from handlers.followup_handler import FollowupNotifier
from invitation_sender import InvitationSender
from redis_client import MessageDeduplicator
from settings import WhatsAppConfig, get_settings
from webhook_handler import WebhookHandler
from whatsapp_client import WhatsAppClient

logger = logging.getLogger(__name__)

_event_bus = None


@lru_cache
def get_whatsapp_client() -> WhatsAppClient:
    return WhatsAppClient(WhatsAppConfig.from_settings(get_settings()))


@lru_cache
def get_deduplicator() -> MessageDeduplicator:
    return MessageDeduplicator(get_settings().redis_url)


async def require_store() -> RecordStore:
    try:
        return await get_store()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


async def get_invitation_sender(store: RecordStore = Depends(require_store)) -> InvitationSender:
    return InvitationSender(store, get_whatsapp_client())


def get_event_bus(store: RecordStore) -> EventBus:
    global _event_bus
    if _event_bus is None:
        bus = EventBus()
        sender = InvitationSender(store, get_whatsapp_client())
        bus.subscribe(InvitationResponded, FollowupNotifier(store, sender, get_settings()))
        _event_bus = bus
    return _event_bus


async def get_webhook_handler() -> Optional[WebhookHandler]:
    """None when the store is not configured; the webhook still answers 200."""
    try:
        store = await get_store()
    except ConfigurationError as e:
        logger.error("[Webhook] %s", e)
        return None
    return WebhookHandler(store, get_event_bus(store), get_deduplicator())


async def shutdown():
    if get_whatsapp_client.cache_info().currsize:
        await get_whatsapp_client().aclose()
    if get_deduplicator.cache_info().currsize:
        await get_deduplicator().aclose()

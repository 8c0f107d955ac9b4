from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

import httpx

from batch_dispatcher import dispatch_invitations
from database import RecordStore
from dependencies import get_invitation_sender, get_whatsapp_client, require_store
from exceptions import ConfigurationError, ProviderError
from invitation_sender import InvitationSender
from invitations import remove_invitation, update_invitation
from match_organizer import get_match_invites, update_confirmed_count
from whatsapp_client import WhatsAppClient

router = APIRouter()

InvitationStatus = Literal["pending", "invited", "confirmed", "declined", "timeout", "backup"]


class SendInvitationsRequest(BaseModel):
    match_id: str
    player_ids: List[str]


class SendInvitationRequest(BaseModel):
    invitation_id: str


class InvitationUpdateRequest(BaseModel):
    status: Optional[InvitationStatus] = None
    whatsapp_message_id: Optional[str] = None
    sent_at: Optional[str] = None


class SetWebhookRequest(BaseModel):
    webhook_url: str
    webhook_token: Optional[str] = None


@router.post("/invitations/send")
async def send_invitations_endpoint(
    request: SendInvitationsRequest,
    store: RecordStore = Depends(require_store),
    sender: InvitationSender = Depends(get_invitation_sender),
):
    """Ensure invitations exist for the players and send them all."""
    if not request.player_ids:
        raise HTTPException(status_code=400, detail="player_ids must not be empty")
    try:
        results = await dispatch_invitations(
            store, sender, request.match_id, request.player_ids, sender.client.config.send_concurrency
        )
        return {"match_id": request.match_id, "results": results}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/whatsapp/send-invitation")
async def send_single_invitation(
    request: SendInvitationRequest,
    sender: InvitationSender = Depends(get_invitation_sender),
):
    """Send (or re-send) one invitation over WhatsApp."""
    try:
        return await sender.send_invitation(request.invitation_id)
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/invitations")
async def list_invitations(match_id: str, store: RecordStore = Depends(require_store)):
    """Get all invitations for a match with player details and status."""
    try:
        invitations = await get_match_invites(store, match_id)
        return {"invitations": invitations}
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/invitations/{invitation_id}")
async def update_invitation_endpoint(
    invitation_id: str,
    request: InvitationUpdateRequest,
    store: RecordStore = Depends(require_store),
):
    """Update an invitation. Confirmed/declined recomputes the match headcount."""
    updates = request.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    try:
        invitation = await update_invitation(store, invitation_id, updates)
        return {"invitation": invitation, "message": "Invitation updated successfully"}
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/invitations/{invitation_id}")
async def delete_invitation_endpoint(invitation_id: str, store: RecordStore = Depends(require_store)):
    """Remove an invitation. Removing a confirmed one recomputes the match headcount."""
    try:
        await remove_invitation(store, invitation_id)
        return {"success": True}
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/matches/{match_id}/recount")
async def recount_match(match_id: str, store: RecordStore = Depends(require_store)):
    """Rebuild confirmed_count from the invitations and lock the match if full."""
    try:
        match = await update_confirmed_count(store, match_id)
        return {"match": match}
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/whatsapp/status")
async def whatsapp_status(client: WhatsAppClient = Depends(get_whatsapp_client)):
    """Check that the configured WhatsApp account is listed and ready."""
    try:
        valid, error = await client.verify_account()
    except ConfigurationError as e:
        return {"valid": False, "error": str(e)}
    except (ProviderError, httpx.HTTPError) as e:
        return {"valid": False, "error": f"Account verification failed: {e}"}
    return {"valid": valid, "error": error, "account_id": client.config.account_id}


@router.post("/whatsapp/webhook")
async def register_webhook(
    request: SetWebhookRequest,
    client: WhatsAppClient = Depends(get_whatsapp_client),
):
    """Register this service's webhook URL with the provider."""
    try:
        result = await client.set_webhook(request.webhook_url, request.webhook_token)
        return {"success": True, "result": result}
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except (ProviderError, httpx.HTTPError) as e:
        raise HTTPException(status_code=502, detail=str(e))

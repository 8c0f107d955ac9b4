import logging

from database import RecordStore
from error_logger import log_send_error
from events import InvitationResponded
from invitation_sender import InvitationSender
from payments import create_payment_link
from settings import Settings
import whatsapp_constants as msg

logger = logging.getLogger(__name__)


class FollowupNotifier:
    """
    InvitationResponded subscriber: payment link on confirm, acknowledgment on decline.
    Failures are logged and journaled, never raised back into the webhook.
    """

    def __init__(self, store: RecordStore, sender: InvitationSender, settings: Settings):
        self.store = store
        self.sender = sender
        self.settings = settings

    async def __call__(self, event: InvitationResponded):
        invitation_id = event.invitation["id"]
        try:
            if event.status == msg.STATUS_CONFIRMED:
                link = await create_payment_link(
                    self.store,
                    invitation_id,
                    self.settings.frontend_url,
                    amount=self.settings.payment_amount,
                    currency=self.settings.payment_currency,
                )
                result = await self.sender.send_payment_link(invitation_id, link)
            elif event.status == msg.STATUS_DECLINED:
                result = await self.sender.send_decline_message(invitation_id)
            else:
                return
        except Exception as e:
            logger.error("[Followup] Follow-up for invitation %s failed: %s", invitation_id, e)
            await log_send_error(self.store, str(e), invitation_id, player=event.player, exception=e)
            return

        if not result.get("success"):
            logger.warning("[Followup] Follow-up for invitation %s not delivered: %s",
                           invitation_id, result.get("error"))
            await log_send_error(self.store, result.get("error") or "send failed", invitation_id, player=event.player)

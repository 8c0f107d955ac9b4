"""
Error logging module for WhatsApp pipeline debugging.
Logs errors to the error_logs table for persistent debugging.
"""
import logging
import traceback

from database import RecordStore
from log_utils import redact

logger = logging.getLogger(__name__)


async def log_error(
    store: RecordStore,
    error_type: str,
    error_message: str,
    phone_number: str = None,
    player_id: str = None,
    invitation_id: str = None,
    handler_name: str = None,
    exception: Exception = None,
    additional_context: dict = None
):
    """
    Log an error to the error_logs table.

    Args:
        store: Record store to write the entry to
        error_type: Category of error (e.g., 'webhook_processing', 'invitation_send')
        error_message: Human-readable error description
        phone_number: Sender/recipient phone number if available
        player_id: Player id if available
        invitation_id: Invitation id if available
        handler_name: Name of the handler where the error occurred
        exception: The exception object if available
        additional_context: Any additional debug info as dict (redacted before storing)
    """
    try:
        stack_trace = None
        if exception:
            stack_trace = ''.join(traceback.format_exception(
                type(exception), exception, exception.__traceback__
            ))

        context = dict(additional_context or {})
        if invitation_id:
            context["invitation_id"] = invitation_id

        error_data = {
            "error_type": error_type,
            "error_message": str(error_message),
            "phone_number": phone_number,
            "player_id": player_id,
            "handler_name": handler_name,
            "stack_trace": stack_trace,
            "additional_context": redact(context) if context else None
        }

        # Remove None values
        error_data = {k: v for k, v in error_data.items() if v is not None}

        await store.insert("error_logs", error_data)
        logger.info("[ERROR_LOG] %s: %s", error_type, error_message)

    except Exception as e:
        # Don't let logging errors break the pipeline
        logger.warning("[ERROR_LOG] Failed to log error: %s", e)
        logger.warning("[ERROR_LOG] Original error: %s - %s", error_type, error_message)


async def log_webhook_error(
    store: RecordStore,
    error_message: str,
    phone_number: str = None,
    payload: dict = None,
    exception: Exception = None
):
    """Convenience function for inbound webhook errors."""
    await log_error(
        store,
        error_type="webhook_processing",
        error_message=error_message,
        phone_number=phone_number,
        handler_name="webhook_handler",
        exception=exception,
        additional_context={"payload": payload} if payload else None
    )


async def log_send_error(
    store: RecordStore,
    error_message: str,
    invitation_id: str,
    player: dict = None,
    exception: Exception = None
):
    """Convenience function for outbound message errors."""
    await log_error(
        store,
        error_type="whatsapp_send",
        error_message=error_message,
        phone_number=player.get("phone") if player else None,
        player_id=player.get("id") if player else None,
        invitation_id=invitation_id,
        handler_name="followup_handler",
        exception=exception
    )

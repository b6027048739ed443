"""
Integration API routes.

Provides endpoints for the WhatsApp (Evolution API) integration settings,
its message log and incoming webhook, and the notification settings.
"""
import json
import logging
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query

from ...database.models import WhatsappIntegration, ResponseMode
from ...database.storage import Storage
from ...schemas.integration import (
    WhatsappIntegrationRequest, WhatsappIntegrationUpdateRequest, WhatsappIntegrationResponse,
    WhatsappLogResponse, WhatsappWebhookMessage, WebhookResult,
    NotificationSettingsRequest, NotificationSettingsResponse
)
from ...schemas.auth import StandardResponse
from ...auth.dependencies import get_current_user, get_current_admin_user, get_storage, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Integrations"])

LOG_TYPE_MESSAGE = "message"
LOG_TYPE_BLOCKED = "blocked"


def _get_integration_or_404(storage: Storage) -> WhatsappIntegration:
    integration = storage.get_whatsapp_integration()
    if not integration:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="WhatsApp integration not configured"
        )
    return integration


def authorized_numbers(integration: WhatsappIntegration) -> List[str]:
    if not integration.authorized_numbers:
        return []
    return json.loads(integration.authorized_numbers)


def is_sender_authorized(integration: WhatsappIntegration, sender: str, chat_id: Optional[str]) -> bool:
    """
    Decide whether an incoming message may be answered.

    In group mode only the configured group is accepted. In individual mode
    any sender is accepted unless the integration is restricted to its
    authorized numbers.
    """
    if integration.response_mode == ResponseMode.GROUP.value:
        return bool(integration.allowed_group_jid) and chat_id == integration.allowed_group_jid
    if not integration.restrict_to_numbers:
        return True
    return sender in authorized_numbers(integration)


# PUBLIC_INTERFACE
@router.get("/whatsapp/integration", response_model=WhatsappIntegrationResponse,
           summary="Get WhatsApp integration",
           description="Current WhatsApp integration settings (admin only).")
async def get_whatsapp_integration(
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    return WhatsappIntegrationResponse.model_validate(_get_integration_or_404(storage))


# PUBLIC_INTERFACE
@router.post("/whatsapp/integration", response_model=WhatsappIntegrationResponse,
            status_code=status.HTTP_201_CREATED,
            summary="Configure WhatsApp integration",
            description="Store the WhatsApp integration, replacing any existing one (admin only).")
async def create_whatsapp_integration(
    request: WhatsappIntegrationRequest,
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    integration = storage.create_whatsapp_integration(**request.model_dump(mode="json"))
    logger.info("WhatsApp integration %s configured by admin %s", integration.instance_name, current_user.user_id)
    return WhatsappIntegrationResponse.model_validate(integration)


# PUBLIC_INTERFACE
@router.put("/whatsapp/integration", response_model=WhatsappIntegrationResponse,
           summary="Update WhatsApp integration",
           description="Update the WhatsApp integration settings (admin only).")
async def update_whatsapp_integration(
    request: WhatsappIntegrationUpdateRequest,
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    integration = _get_integration_or_404(storage)
    nullable = {"webhook_url", "authorized_numbers", "allowed_group_jid"}
    updates = {k: v for k, v in request.model_dump(exclude_unset=True, mode="json").items()
               if v is not None or k in nullable}
    return WhatsappIntegrationResponse.model_validate(
        storage.update_whatsapp_integration(integration.id, updates)
    )


# PUBLIC_INTERFACE
@router.delete("/whatsapp/integration", response_model=StandardResponse,
              summary="Delete WhatsApp integration",
              description="Remove the WhatsApp integration and its logs (admin only).")
async def delete_whatsapp_integration(
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    integration = _get_integration_or_404(storage)
    storage.delete_whatsapp_integration(integration.id)
    return StandardResponse(message="WhatsApp integration deleted")


# PUBLIC_INTERFACE
@router.get("/whatsapp/logs", response_model=List[WhatsappLogResponse],
           summary="WhatsApp logs",
           description="Most recent integration log entries first (admin only).")
async def list_whatsapp_logs(
    limit: Optional[int] = Query(50, ge=1, le=500, description="Maximum number of entries"),
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    integration = _get_integration_or_404(storage)
    return [WhatsappLogResponse.model_validate(log) for log in storage.get_whatsapp_logs(integration.id, limit)]


# PUBLIC_INTERFACE
@router.post("/whatsapp/webhook", response_model=WebhookResult,
            summary="WhatsApp webhook",
            description="Record an incoming WhatsApp message, blocking unauthorized senders.")
async def whatsapp_webhook(
    request: WhatsappWebhookMessage,
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    """
    Receive a message forwarded by the Evolution API.

    Args:
        request: Sender, chat and message text
        current_user: Admin identity the webhook is called with (API key)
        storage: Storage facade

    Returns:
        WebhookResult: Whether the sender was authorized, and the stored log entry

    Raises:
        HTTPException: If the integration is missing or inactive
    """
    integration = _get_integration_or_404(storage)
    if not integration.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="WhatsApp integration is inactive"
        )

    authorized = is_sender_authorized(integration, request.sender, request.chat_id)
    metadata = json.dumps({"sender": request.sender, "chat_id": request.chat_id, "event": request.event})
    log = storage.create_whatsapp_log(
        integration.id,
        LOG_TYPE_MESSAGE if authorized else LOG_TYPE_BLOCKED,
        request.message,
        metadata=metadata,
    )
    if authorized:
        storage.update_whatsapp_integration(integration.id, {"last_connection": datetime.now(timezone.utc)})
    else:
        logger.warning("Blocked WhatsApp message from %s", request.sender)

    return WebhookResult(authorized=authorized, log=WhatsappLogResponse.model_validate(log))


# PUBLIC_INTERFACE
@router.get("/notification-settings", response_model=NotificationSettingsResponse,
           summary="Get notification settings",
           description="Stored notification settings, or the defaults when none are saved.")
async def get_notification_settings(
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    settings = storage.get_notification_settings()
    if not settings:
        return NotificationSettingsResponse()
    return NotificationSettingsResponse.model_validate(settings)


# PUBLIC_INTERFACE
@router.put("/notification-settings", response_model=NotificationSettingsResponse,
           summary="Update notification settings",
           description="Update the notification settings, creating them on first save (admin only).")
async def update_notification_settings(
    request: NotificationSettingsRequest,
    current_user: CurrentUser = Depends(get_current_admin_user),
    storage: Storage = Depends(get_storage)
):
    updates = {k: v for k, v in request.model_dump(exclude_unset=True).items() if v is not None}
    settings = storage.update_notification_settings(updates)
    if settings is None:
        settings = storage.create_notification_settings(**updates)
    return NotificationSettingsResponse.model_validate(settings)

"""
Integration-related Pydantic schemas.

Defines request/response models for the WhatsApp (Evolution API)
integration, its logs and webhook payloads, and the notification settings.
"""
import json
import re
from datetime import datetime
from typing import Optional, Any, Dict
from pydantic import BaseModel, Field, HttpUrl, field_validator

from ..database.models import ResponseMode

TIME_OF_DAY_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _validate_authorized_numbers(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return value
    try:
        numbers = json.loads(value)
    except ValueError:
        raise ValueError("authorized_numbers must be a JSON array")
    if not isinstance(numbers, list):
        raise ValueError("authorized_numbers must be a JSON array")
    for number in numbers:
        if not isinstance(number, str) or "@c.us" not in number:
            raise ValueError("each authorized number must be a string like 5531999999999@c.us")
    return value


class WhatsappIntegrationRequest(BaseModel):
    """WhatsApp integration creation request schema."""
    instance_name: str = Field(..., min_length=1, max_length=255, description="Evolution API instance name")
    api_url: HttpUrl = Field(..., description="Evolution API base URL")
    api_key: str = Field(..., min_length=1, max_length=255, description="Evolution API key")
    phone_number: str = Field(..., min_length=10, max_length=50, description="Connected phone number")
    is_active: bool = Field(default=True, description="Whether the integration is active")
    webhook_url: Optional[str] = Field(None, max_length=500, description="Webhook URL registered with the API")
    authorized_numbers: Optional[str] = Field(None, description="JSON array of authorized senders")
    restrict_to_numbers: bool = Field(default=True, description="Only answer authorized numbers")
    allowed_group_jid: Optional[str] = Field(None, max_length=255, description="Group JID used in group mode")
    response_mode: ResponseMode = Field(default=ResponseMode.INDIVIDUAL, description="individual or group")

    @field_validator("authorized_numbers")
    @classmethod
    def validate_authorized_numbers(cls, v):
        return _validate_authorized_numbers(v)


class WhatsappIntegrationUpdateRequest(BaseModel):
    """WhatsApp integration update request schema."""
    instance_name: Optional[str] = Field(None, min_length=1, max_length=255, description="Evolution API instance name")
    api_url: Optional[HttpUrl] = Field(None, description="Evolution API base URL")
    api_key: Optional[str] = Field(None, min_length=1, max_length=255, description="Evolution API key")
    phone_number: Optional[str] = Field(None, min_length=10, max_length=50, description="Connected phone number")
    is_active: Optional[bool] = Field(None, description="Whether the integration is active")
    webhook_url: Optional[str] = Field(None, max_length=500, description="Webhook URL")
    authorized_numbers: Optional[str] = Field(None, description="JSON array of authorized senders")
    restrict_to_numbers: Optional[bool] = Field(None, description="Only answer authorized numbers")
    allowed_group_jid: Optional[str] = Field(None, max_length=255, description="Group JID used in group mode")
    response_mode: Optional[ResponseMode] = Field(None, description="individual or group")

    @field_validator("authorized_numbers")
    @classmethod
    def validate_authorized_numbers(cls, v):
        return _validate_authorized_numbers(v)


class WhatsappIntegrationResponse(BaseModel):
    """WhatsApp integration response schema."""
    id: int
    instance_name: str
    api_url: str
    api_key: str
    phone_number: str
    is_active: bool
    webhook_url: Optional[str] = None
    authorized_numbers: Optional[str] = None
    restrict_to_numbers: bool
    allowed_group_jid: Optional[str] = None
    response_mode: str
    last_connection: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WhatsappLogResponse(BaseModel):
    """WhatsApp log entry response schema."""
    id: int
    integration_id: int
    log_type: str
    message: str
    metadata: Optional[str] = Field(None, validation_alias="log_metadata")
    timestamp: datetime

    class Config:
        from_attributes = True


class WhatsappWebhookMessage(BaseModel):
    """Incoming message forwarded by the Evolution API webhook."""
    sender: str = Field(..., min_length=1, description="Sender JID, e.g. 5531999999999@c.us")
    chat_id: Optional[str] = Field(None, description="Chat JID; a group JID for group messages")
    message: str = Field(default="", description="Message text")
    event: Optional[str] = Field(None, description="Webhook event name")
    payload: Optional[Dict[str, Any]] = Field(None, description="Raw webhook payload")


class WebhookResult(BaseModel):
    authorized: bool
    log: WhatsappLogResponse


class NotificationSettingsRequest(BaseModel):
    """Notification settings update request schema."""
    enable_daily_report: Optional[bool] = None
    daily_report_time: Optional[str] = Field(None, description="Daily report time, HH:MM")
    enable_weekly_report: Optional[bool] = None
    weekly_report_day: Optional[int] = Field(None, ge=0, le=6, description="0=sunday .. 6=saturday")
    enable_deadline_reminders: Optional[bool] = None
    reminder_hours_before: Optional[int] = Field(None, ge=1, le=168, description="Hours before a deadline")
    enable_timer_reminders: Optional[bool] = None
    timer_reminder_interval: Optional[int] = Field(None, ge=5, le=480, description="Minutes between reminders")

    @field_validator("daily_report_time")
    @classmethod
    def validate_report_time(cls, v):
        if v is not None and not TIME_OF_DAY_PATTERN.match(v):
            raise ValueError("daily_report_time must use the HH:MM format")
        return v


class NotificationSettingsResponse(BaseModel):
    """Notification settings response schema."""
    id: Optional[int] = None
    enable_daily_report: bool = False
    daily_report_time: Optional[str] = "18:00"
    enable_weekly_report: bool = False
    weekly_report_day: Optional[int] = 5
    enable_deadline_reminders: bool = True
    reminder_hours_before: Optional[int] = 24
    enable_timer_reminders: bool = False
    timer_reminder_interval: Optional[int] = 120
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


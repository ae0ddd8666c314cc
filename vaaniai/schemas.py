"""
Pydantic schemas for request/response validation.

This module defines all data models for API requests and responses.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from .config.constants import DEFAULT_MAX_TOKENS, DEFAULT_RATE_LIMIT, DEFAULT_TEMPERATURE

# Base64 images arrive as data URLs; about 5 MB of image data
MAX_IMAGE_DATA_LENGTH = 7_000_000


# ============================================================================
# User Schemas
# ============================================================================


class UserRegister(BaseModel):
    """Schema for user registration request."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "राहुल शर्मा",
                "email": "rahul@example.com",
                "password": "SecurePass123",
            }
        }
    )

    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if len(v.strip()) < 2:
            raise ValueError("Name must be at least 2 characters long")
        return v.strip()


class UserLogin(BaseModel):
    """Schema for user login request."""

    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """Schema for user data in responses."""

    id: int
    name: str
    email: str
    plan: str
    messages_used: int
    messages_limit: int
    messages_remaining: int
    role: str
    is_admin: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    """Schema for authentication token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class ProfileUpdate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)


class PlanUpdate(BaseModel):
    """Schema for changing a plan (user self-service or admin)."""

    plan: Literal["free", "premium", "enterprise"]


class PlanInfo(BaseModel):
    id: str
    name_hindi: str
    messages_limit: int
    unlimited: bool
    price: int
    currency: str


# ============================================================================
# Session Schemas
# ============================================================================


class MessageResponse(BaseModel):
    id: int
    text: str
    sender: Literal["user", "bot"]
    image_url: Optional[str] = None
    image_data: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SessionSummary(BaseModel):
    """Session as shown in the sidebar list."""

    id: int
    title: str
    created_at: datetime
    updated_at: datetime
    is_active: bool = False

    model_config = ConfigDict(from_attributes=True)


class SessionDetail(SessionSummary):
    messages: List[MessageResponse] = []
    is_typing: bool = False


class SessionRename(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()


class SendMessageRequest(BaseModel):
    """
    A user message. Text may be empty only when an image is attached
    (image_url for a remote image, image_data for a base64 data URL).
    """

    text: Optional[str] = Field(None, max_length=10_000)
    image_url: Optional[str] = Field(None, max_length=2048)
    image_data: Optional[str] = Field(None, max_length=MAX_IMAGE_DATA_LENGTH)

    @field_validator("image_data")
    @classmethod
    def image_data_is_data_url(cls, v):
        if v is not None and not v.startswith("data:image/"):
            raise ValueError("image_data must be a base64 image data URL")
        return v

    @field_validator("image_url")
    @classmethod
    def image_url_is_http(cls, v):
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("image_url must be an http(s) URL")
        return v

    @model_validator(mode="after")
    def text_or_image(self):
        if not (self.text or "").strip() and not (self.image_url or self.image_data):
            raise ValueError("Message text cannot be empty without an image")
        return self


class SendMessageResponse(BaseModel):
    state: Literal["rejected", "delivered", "failed"]
    session: SessionDetail
    user_message: Optional[MessageResponse] = None
    bot_message: MessageResponse
    error: Optional[str] = None


class GuestUsageResponse(BaseModel):
    used: int
    limit: int
    remaining: int
    mode: str
    resets_on: Optional[str] = None


# ============================================================================
# Admin Schemas
# ============================================================================


class AdminStatsResponse(BaseModel):
    """Schema for admin dashboard statistics."""

    total_users: int
    total_sessions: int
    total_messages: int
    free_users: int
    premium_users: int
    enterprise_users: int
    active_users: int
    active_users_window_days: int
    revenue: int
    currency: str
    api_calls: int
    users_by_plan: Dict[str, int]


class AdminConfigUpdate(BaseModel):
    """Full replacement of the completion API configuration."""

    api_key: Optional[str] = Field(None, max_length=512)
    selected_model: str = Field(..., min_length=1, max_length=255)
    vision_model: Optional[str] = Field(None, max_length=255)
    rate_limit: int = Field(DEFAULT_RATE_LIMIT, ge=0, le=10_000)
    max_tokens: int = Field(DEFAULT_MAX_TOKENS, gt=0, le=32_000)
    temperature: float = Field(DEFAULT_TEMPERATURE, ge=0.0, le=2.0)


class AdminConfigResponse(BaseModel):
    configured: bool
    api_key_masked: Optional[str] = None
    selected_model: str
    vision_model: str
    rate_limit: int
    max_tokens: int
    temperature: float
    updated_at: Optional[datetime] = None


class ConnectionTestResponse(BaseModel):
    success: bool
    model: Optional[str] = None
    response_time: float = 0
    reply_preview: Optional[str] = None
    error: Optional[str] = None


class AdminUserResponse(UserResponse):
    """User as listed in the admin back-office."""

    is_active: bool
    session_count: int = 0


class AdminUserListResponse(BaseModel):
    users: List[AdminUserResponse]
    total: int
    page: int
    per_page: int
    total_pages: int


class AdminMessageLogItem(BaseModel):
    id: int
    session_id: int
    session_title: str
    user_id: Optional[int] = None
    user_email: Optional[str] = None
    guest_id: Optional[str] = None
    text: str
    sender: str
    has_image: bool
    created_at: datetime


class AdminMessageLogResponse(BaseModel):
    messages: List[AdminMessageLogItem]
    total: int
    page: int
    per_page: int
    total_pages: int

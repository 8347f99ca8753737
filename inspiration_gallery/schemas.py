"""Pydantic schemas for request/response validation and serialization."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ==================== Error Schemas ====================

class ErrorBody(BaseModel):
    """Standardized error body with code and message."""
    error: str
    message: str
    details: dict | None = None


class ErrorResponse(BaseModel):
    """Body of every error response. ``message`` repeats ``detail.message`` for the UI."""
    message: str
    detail: ErrorBody


class MessageResponse(BaseModel):
    message: str


# ==================== User Schemas ====================

class UserOut(BaseModel):
    """Public view of a user. The password hash is never part of it."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class UserRegister(BaseModel):
    """Registration payload. Required-field and password-length rules are enforced by the service."""
    name: str | None = Field(None, max_length=100, description="Display name")
    email: str | None = Field(None, max_length=255, description="Login email, stored as given")
    password: str | None = Field(None, max_length=128, description="Plain text password")

    @field_validator('name', 'email')
    @classmethod
    def strip_whitespace(cls, v: str | None) -> str | None:
        return v.strip() if isinstance(v, str) else v


class UserLogin(BaseModel):
    """Schema for user login credentials."""
    email: str | None = Field(None, description="User's email address")
    password: str | None = Field(None, description="User's password")


class AuthResponse(BaseModel):
    message: str
    user: UserOut


class MeResponse(BaseModel):
    user: UserOut


# ==================== Inspiration Schemas ====================

class InspirationOut(BaseModel):
    """Inspiration as the gallery UI consumes it (camelCase keys, ``_id``)."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: int = Field(..., alias="_id")
    user_id: int
    title: str
    description: str
    image_url: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        # SQLite hands back naive values for timezone-aware columns
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class InspirationEnvelope(BaseModel):
    message: str
    inspiration: InspirationOut


class InspirationCreate(BaseModel):
    """Fields accepted when creating an inspiration. ``tags`` is raw user input."""
    title: str | None = None
    description: str | None = None
    tags: str | list[str] | None = None


class InspirationPatch(BaseModel):
    """Partial update. ``None`` means the field was not sent."""
    title: str | None = None
    description: str | None = None
    tags: str | list[str] | None = None
    remove_image: bool = False


class InspirationFilter(BaseModel):
    """Listing options: substring search and required tags."""
    search: str | None = None
    tags: list[str] = Field(default_factory=list)


class ImageUpload(BaseModel):
    """An uploaded image file held in memory."""
    data: bytes
    filename: str = "upload"
    content_type: str | None = None

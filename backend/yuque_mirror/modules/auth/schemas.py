"""Pydantic schemas for the remote session."""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthSessionBase(BaseModel):
    user_id: str = Field(default="", max_length=64, description="Remote user id")
    user_name: str = Field(default="", max_length=255, description="Display name")
    login: Annotated[str, Field(min_length=1, max_length=255, description="Remote login used in content URLs")]


class AuthSessionCreate(AuthSessionBase):
    """Schema for storing a session obtained elsewhere."""

    cookies: Annotated[str, Field(min_length=1, description="Cookie header value for the remote")]


class AuthSessionRead(AuthSessionBase):
    """The stored session without its credential material."""

    model_config = ConfigDict(from_attributes=True)

    expires_at: int = Field(description="Expiry as a millisecond epoch")


class AuthStatus(BaseModel):
    authenticated: bool
    session: Optional[AuthSessionRead] = None

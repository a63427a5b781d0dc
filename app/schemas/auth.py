from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserResponse(CamelModel):
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    profile_photo_url: Optional[str] = None
    role: str
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


class LoginRequest(CamelModel):
    email_or_username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    keep_logged_in: bool = False


class AuthResponse(CamelModel):
    success: bool = True
    message: str
    user: UserResponse
    access_token: str


class RefreshResponse(CamelModel):
    success: bool = True
    access_token: str
    user: UserResponse


class UserEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    user: UserResponse


class MessageResponse(CamelModel):
    success: bool = True
    message: str

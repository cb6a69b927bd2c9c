"""Pydantic schemas for the auth routes.

Separate request schemas (input) from response schemas (output).
The refresh token never appears in a response body; it travels in the
httpOnly cookie only.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class AccessTokenResponse(BaseModel):
    access_token: str
    expires_in: int
    token_type: str = "bearer"


class PasswordResetRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)


class PasswordReset(BaseModel):
    password: str = Field(..., min_length=8, max_length=255)
    token: str = Field(..., min_length=1)


class VerifyRequest(BaseModel):
    token: str = Field(..., min_length=1)


class UserRead(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    verified_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}

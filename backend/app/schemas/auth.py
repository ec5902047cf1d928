# backend/app/schemas/auth.py
from __future__ import annotations

import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.models.user import User


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=256)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    default_page: str


class ProfileUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    full_name: str = Field(max_length=200)

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        cleaned = User.normalize_full_name(v)
        if not cleaned:
            raise ValueError("Name is required")
        return cleaned


class PrincipalOut(BaseModel):
    id: uuid.UUID
    email: EmailStr
    full_name: Optional[str] = None
    role: Optional[str] = None
    role_label: Optional[str] = None
    barangay_id: Optional[uuid.UUID] = None
    is_active: bool


class SessionResponse(BaseModel):
    authenticated: bool = True
    user: PrincipalOut
    pages: List[str]
    default_page: str

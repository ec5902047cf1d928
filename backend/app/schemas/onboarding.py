from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.auth import PrincipalOut


def _normalize_code(value: str) -> str:
    return (value or "").strip().upper()


class VerifyCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        return _normalize_code(v)


class VerifyCodeResponse(BaseModel):
    code: str
    email: EmailStr
    role: str
    role_label: str
    barangay_id: Optional[uuid.UUID] = None
    expires_at: datetime
    step: str


class SignupRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)
    name: str = Field(..., max_length=200)
    password: str = Field(..., max_length=256)
    confirm_password: str = Field(..., max_length=256)

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        return _normalize_code(v)


class BootstrapRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., max_length=200)
    password: str = Field(..., max_length=256)
    confirm_password: str = Field(..., max_length=256)


class SignupResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: PrincipalOut
    default_page: str
    step: str


class BootstrapStatusOut(BaseModel):
    bootstrap_available: bool
    user_count: int

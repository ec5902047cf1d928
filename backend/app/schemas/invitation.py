from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class InvitationCreate(BaseModel):
    email: EmailStr
    role: str = Field(..., min_length=1, max_length=40)

    @field_validator("role")
    @classmethod
    def normalize_role(cls, v: str) -> str:
        return v.strip().lower()


class InvitationOut(BaseModel):
    id: uuid.UUID
    email: EmailStr
    role: str
    barangay_id: Optional[uuid.UUID] = None
    status: str
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvitationCreatedOut(InvitationOut):
    # Returned only once, at creation; the list endpoint never exposes codes.
    code: str


class GrantableRoleOut(BaseModel):
    value: str
    label: str
    description: str

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BarangayBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, max_length=200)
    address: Optional[str] = Field(default=None, max_length=500)
    contact_number: Optional[str] = Field(default=None, max_length=32)
    email: Optional[str] = Field(default=None, max_length=320)
    municipality: Optional[str] = Field(default=None, max_length=200)
    province: Optional[str] = Field(default=None, max_length=200)


class BarangayCreate(BarangayBase):
    pass


class BarangayUpdate(BarangayBase):
    pass


class BarangayOut(BaseModel):
    id: uuid.UUID
    name: str
    address: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    municipality: Optional[str] = None
    province: Optional[str] = None
    owner_user_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TenantStateOut(BaseModel):
    # ready | pending_setup | not_applicable
    status: str
    can_create: bool = False
    barangay: Optional[BarangayOut] = None


class BarangayExistsOut(BaseModel):
    created: bool = False
    message: str
    barangay_id: Optional[uuid.UUID] = None

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class PageOut(BaseModel):
    id: str
    label: str


class AccessPagesOut(BaseModel):
    role: Optional[str] = None
    pages: List[PageOut]
    default_page: str


class AccessCheckOut(BaseModel):
    page: str
    allowed: bool
    # Where the client should go instead; None when allowed
    redirect_to: Optional[str] = None

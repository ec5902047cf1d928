from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.deps.session import get_current_principal
from app.auth.permissions import PAGE_LABELS, accessible_pages, default_page, has_page_access
from app.core.session_gateway import Principal
from app.schemas.access import AccessCheckOut, AccessPagesOut, PageOut

router = APIRouter(prefix="/access", tags=["access"])


@router.get("/pages", response_model=AccessPagesOut)
async def get_pages(principal: Principal = Depends(get_current_principal)) -> AccessPagesOut:
    """
    Navigation for the current principal, in display order.
    """
    return AccessPagesOut(
        role=principal.role.value if principal.role else None,
        pages=[PageOut(id=p.value, label=PAGE_LABELS[p]) for p in accessible_pages(principal.role)],
        default_page=default_page(principal.role).value,
    )


@router.get("/check", response_model=AccessCheckOut)
async def check_page(
    page: str = Query(..., min_length=1, max_length=64),
    principal: Principal = Depends(get_current_principal),
) -> AccessCheckOut:
    """
    Route guard. Unknown page ids are simply not allowed.
    """
    page = page.strip().lower()
    if has_page_access(principal.role, page):
        return AccessCheckOut(page=page, allowed=True)
    return AccessCheckOut(page=page, allowed=False, redirect_to=default_page(principal.role).value)

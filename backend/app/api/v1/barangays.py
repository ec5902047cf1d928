# app/api/v1/barangays.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.session import get_current_principal
from app.api.errors import raise_for_failure
from app.core.outcomes import Failure, FailureReason
from app.core.session_gateway import Principal
from app.core.tenant_resolver import NotApplicable, PendingSetup, create_tenant, resolve_tenant, update_tenant
from app.db.session import get_db
from app.schemas.barangay import (
    BarangayCreate,
    BarangayExistsOut,
    BarangayOut,
    BarangayUpdate,
    TenantStateOut,
)

router = APIRouter(prefix="/barangays", tags=["barangays"])


@router.get("/current", response_model=TenantStateOut)
async def get_current_barangay(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> TenantStateOut:
    """
    ready           -> barangay is set
    pending_setup   -> no barangay yet; can_create tells the client whether to show the setup form
    not_applicable  -> superadmin
    """
    state = await resolve_tenant(db, principal)
    if isinstance(state, NotApplicable):
        return TenantStateOut(status="not_applicable")
    if isinstance(state, PendingSetup):
        return TenantStateOut(status="pending_setup", can_create=state.can_create)
    return TenantStateOut(status="ready", barangay=BarangayOut.model_validate(state))


@router.post(
    "",
    response_model=BarangayOut,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"model": BarangayExistsOut}},
)
async def create_barangay(
    payload: BarangayCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Captain only. Re-submitting is a no-op: 200 with the existing barangay id.
    """
    result = await create_tenant(db, principal, payload.model_dump(exclude_unset=True))
    if isinstance(result, Failure):
        if result.reason == FailureReason.ALREADY_EXISTS:
            body = BarangayExistsOut(message=result.message, barangay_id=result.details.get("barangay_id"))
            return JSONResponse(status_code=status.HTTP_200_OK, content=body.model_dump(mode="json"))
        raise_for_failure(result)
    return result


@router.put("/{barangay_id}", response_model=BarangayOut)
async def update_barangay(
    barangay_id: uuid.UUID,
    payload: BarangayUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    result = await update_tenant(db, principal, barangay_id, payload.model_dump(exclude_unset=True))
    if isinstance(result, Failure):
        raise_for_failure(result)
    return result

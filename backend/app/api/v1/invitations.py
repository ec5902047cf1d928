from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.session import get_current_principal
from app.api.errors import raise_for_failure
from app.auth.permissions import ROLE_DESCRIPTIONS, format_role_name, grantable_roles, role_rank
from app.core import invitation_ledger
from app.core.outcomes import Failure
from app.core.session_gateway import Principal
from app.db.session import get_db
from app.schemas.invitation import (
    GrantableRoleOut,
    InvitationCreate,
    InvitationCreatedOut,
    InvitationOut,
)

router = APIRouter(prefix="/invitations", tags=["invitations"])


# =========================================================
# CREATE + LIST
# =========================================================
@router.post("", response_model=InvitationCreatedOut, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    payload: InvitationCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Issue an invitation code for `email` to join as `role`.
    The code is in this response only; pass it to the invitee out of band.
    """
    result = await invitation_ledger.create_invitation(db, principal, str(payload.email), payload.role)
    if isinstance(result, Failure):
        raise_for_failure(result)
    return result


@router.get("", response_model=List[InvitationOut])
async def list_invitations(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    result = await invitation_ledger.list_invitations(db, principal)
    if isinstance(result, Failure):
        raise_for_failure(result)
    return result


@router.get("/grantable-roles", response_model=List[GrantableRoleOut])
async def list_grantable_roles(principal: Principal = Depends(get_current_principal)):
    """
    Roles the current principal may invite; empty list means no invite permission.
    """
    roles = sorted(grantable_roles(principal.role), key=role_rank)
    return [
        GrantableRoleOut(value=r.value, label=format_role_name(r), description=ROLE_DESCRIPTIONS[r])
        for r in roles
    ]


# =========================================================
# REVOKE
# =========================================================
@router.post("/{invitation_id}/revoke", response_model=InvitationOut)
async def revoke_invitation(
    invitation_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    result = await invitation_ledger.revoke_invitation(db, principal, invitation_id)
    if isinstance(result, Failure):
        raise_for_failure(result)
    return result

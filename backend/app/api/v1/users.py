from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.session import require_page, require_roles
from app.api.errors import raise_for_failure
from app.auth.permissions import ROLE_GRANTS
from app.core.outcomes import Failure
from app.core.roles import PageId
from app.core.session_gateway import Principal
from app.crud.users import list_visible_users, set_user_active
from app.db.session import get_db
from app.schemas.user import UserOut, UserStatusUpdate

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserOut])
async def list_users(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_page(PageId.SETTINGS)),
):
    return await list_visible_users(db, principal)


@router.patch("/{user_id}", response_model=UserOut)
async def update_user_status(
    user_id: uuid.UUID,
    payload: UserStatusUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(*ROLE_GRANTS)),
):
    """
    Activate or deactivate a user the principal could have invited.
    Deactivated users keep their row; their next request gets 403 ACCOUNT_INACTIVE.
    """
    result = await set_user_active(db, principal, user_id, payload.is_active)
    if isinstance(result, Failure):
        raise_for_failure(result)
    return result

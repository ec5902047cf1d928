# app/crud/users.py
from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import can_manage_user, role_rank
from app.core.identity_provider import IdentityProvider
from app.core.outcomes import Failure, FailureReason
from app.core.roles import Role
from app.core.session_gateway import Principal
from app.models.user import User

logger = logging.getLogger(__name__)


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.external_id == external_id))
    return res.scalar_one_or_none()


async def list_visible_users(db: AsyncSession, principal: Principal) -> List[User]:
    """
    Superadmin sees every barangay captain; everyone else
    sees the members of their own barangay. Sorted by role hierarchy, then name.
    """
    if principal.is_superadmin:
        stmt = select(User).where(User.role == Role.BARANGAY_CAPTAIN.value)
    elif principal.barangay_id is None:
        return []
    else:
        stmt = select(User).where(User.barangay_id == principal.barangay_id)

    users = list((await db.execute(stmt)).scalars().all())
    users.sort(key=lambda u: (role_rank(u.role), (u.full_name or u.email).lower()))
    return users


async def set_user_active(
    db: AsyncSession,
    actor: Principal,
    user_id: uuid.UUID,
    is_active: bool,
) -> Union[User, Failure]:
    if user_id == actor.id:
        return Failure(FailureReason.FORBIDDEN, "You cannot change your own account status")

    target = await db.get(User, user_id)
    if target is None:
        return Failure(FailureReason.NOT_FOUND, "User not found")

    if not can_manage_user(
        actor_role=actor.role,
        actor_barangay_id=actor.barangay_id,
        target_role=target.role,
        target_barangay_id=target.barangay_id,
    ):
        return Failure(FailureReason.FORBIDDEN, "You do not have permission to manage this user")

    target.is_active = is_active
    await db.commit()
    await db.refresh(target)

    logger.info("User %s set is_active=%s by %s", target.id, is_active, actor.id)
    return target


async def update_display_name(
    db: AsyncSession,
    identity_provider: IdentityProvider,
    principal: Principal,
    full_name: str,
) -> Union[User, Failure]:
    user = await db.get(User, principal.id)
    if user is None:
        return Failure(FailureReason.NOT_FOUND, "User not found")

    user.full_name = full_name
    await identity_provider.update_display_name(user.external_id, full_name)
    await db.commit()
    await db.refresh(user)
    return user

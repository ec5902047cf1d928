"""
Session gateway: turns request credentials into a resolved Principal.

Read-only. Accounts are created by the onboarding flow, never here.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.identity_provider import IdentityProvider
from app.core.outcomes import Failure, FailureReason
from app.core.roles import Role, parse_role
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    id: uuid.UUID
    external_id: str
    email: str
    display_name: Optional[str]
    role: Optional[Role]  # None if the stored value is not a known role
    barangay_id: Optional[uuid.UUID]
    active: bool

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            id=user.id,
            external_id=user.external_id,
            email=user.email,
            display_name=user.full_name,
            role=parse_role(user.role),
            barangay_id=user.barangay_id,
            active=bool(user.is_active),
        )

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN


async def resolve_principal(
    db: AsyncSession,
    identity_provider: IdentityProvider,
    credentials: Optional[str],
) -> Union[Principal, Failure]:
    """
    NoCredentials                       -> UNAUTHENTICATED
    credentials not recognised          -> UNAUTHENTICATED
    recognised, no stored account       -> UNAUTHENTICATED ("Account not found")
    recognised, account inactive        -> ACCOUNT_INACTIVE
    otherwise                           -> Principal
    """
    if not credentials:
        return Failure(FailureReason.UNAUTHENTICATED, "Not authenticated")

    external_id = await identity_provider.verify_credentials(credentials)
    if not external_id:
        return Failure(FailureReason.UNAUTHENTICATED, "Invalid token")

    user = (
        await db.execute(select(User).where(User.external_id == external_id))
    ).scalar_one_or_none()
    if user is None:
        logger.warning("Identity %s has no account record", external_id)
        return Failure(FailureReason.UNAUTHENTICATED, "Account not found")

    if not user.is_active:
        return Failure(FailureReason.ACCOUNT_INACTIVE, "Account is inactive")

    return Principal.from_user(user)

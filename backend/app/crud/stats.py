# app/crud/stats.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.onboarding import count_users
from app.core.roles import Role
from app.core.tenant_resolver import PLACEHOLDER_LOCATION
from app.models.barangay import Barangay
from app.models.user import User


@dataclass(frozen=True)
class OnboardingStats:
    total_barangays: int
    total_captains: int
    active_captains: int
    total_users: int
    pending_setup: int


async def _count(db: AsyncSession, stmt) -> int:
    return int((await db.execute(stmt)).scalar() or 0)


async def get_onboarding_stats(db: AsyncSession) -> OnboardingStats:
    """
    Platform-wide onboarding progress for the superadmin dashboard.
    A barangay still carrying the placeholder municipality has not finished setup.
    """
    captains = select(func.count(User.id)).where(User.role == Role.BARANGAY_CAPTAIN.value)

    return OnboardingStats(
        total_barangays=await _count(db, select(func.count(Barangay.id))),
        total_captains=await _count(db, captains),
        active_captains=await _count(db, captains.where(User.is_active.is_(True))),
        total_users=await count_users(db),
        pending_setup=await _count(
            db,
            select(func.count(Barangay.id)).where(Barangay.municipality == PLACEHOLDER_LOCATION),
        ),
    )

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.session import require_roles
from app.core.roles import Role
from app.core.session_gateway import Principal
from app.crud.stats import get_onboarding_stats
from app.db.session import get_db
from app.schemas.admin import OnboardingStatsOut

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=OnboardingStatsOut)
async def onboarding_stats(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(Role.SUPERADMIN)),
):
    return await get_onboarding_stats(db)

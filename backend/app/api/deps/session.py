from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import raise_for_failure
from app.auth.permissions import has_page_access
from app.core.identity_provider import IdentityProvider, get_identity_provider
from app.core.outcomes import Failure
from app.core.roles import PageId, Role
from app.core.security import bearer_scheme
from app.core.session_gateway import Principal, resolve_principal
from app.db.session import get_db


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> Principal:
    """
    Dependency for protected endpoints.
    401 when unauthenticated, 403 ACCOUNT_INACTIVE for disabled accounts.
    """
    token = credentials.credentials if credentials else None
    principal = await resolve_principal(db, identity_provider, token)
    if isinstance(principal, Failure):
        raise_for_failure(principal)
    return principal


def require_roles(*allowed_roles: Role):
    """
    Enforce principal.role in allowed_roles.
    """
    allowed = set(allowed_roles)

    async def _checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            role = principal.role.value if principal.role else "unknown"
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "FORBIDDEN",
                    "message": f"Insufficient role: {role}",
                    "allowed": sorted(r.value for r in allowed),
                },
            )
        return principal

    return _checker


def require_page(page: PageId):
    """
    Server-side twin of the UI route guard.
    """

    async def _checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not has_page_access(principal.role, page):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"error": "FORBIDDEN", "message": f"No access to {page.value}"},
            )
        return principal

    return _checker

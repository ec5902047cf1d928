# backend/app/api/v1/auth.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.session import get_current_principal
from app.api.errors import raise_for_failure
from app.auth.permissions import accessible_pages, default_page, format_role_name
from app.core.identity_provider import IdentityProvider, get_identity_provider
from app.core.outcomes import Failure, FailureReason
from app.core.security import bearer_scheme
from app.core.session_gateway import Principal, resolve_principal
from app.crud.users import get_user_by_external_id, update_display_name
from app.db.session import get_db
from app.schemas.auth import (
    LoginRequest,
    PrincipalOut,
    ProfileUpdateRequest,
    SessionResponse,
    TokenResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def principal_out(principal: Principal) -> PrincipalOut:
    return PrincipalOut(
        id=principal.id,
        email=principal.email,
        full_name=principal.display_name,
        role=principal.role.value if principal.role else None,
        role_label=format_role_name(principal.role) if principal.role else None,
        barangay_id=principal.barangay_id,
        is_active=principal.active,
    )


def session_response(principal: Principal) -> SessionResponse:
    return SessionResponse(
        user=principal_out(principal),
        pages=[p.value for p in accessible_pages(principal.role)],
        default_page=default_page(principal.role).value,
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> TokenResponse:
    """
    Body: {"email": "...", "password": "..."}
    Returns: access_token and the page the client should land on.
    """
    external_id = await identity_provider.authenticate(str(payload.email), payload.password)
    if not external_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "INVALID_CREDENTIALS", "message": "Invalid email or password"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await get_user_by_external_id(db, external_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": FailureReason.UNAUTHENTICATED.value, "message": "Account not found"},
        )

    # Deactivated accounts get a distinct answer so the client can explain it.
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": FailureReason.ACCOUNT_INACTIVE.value, "message": "Account is inactive"},
        )

    return TokenResponse(
        access_token=identity_provider.issue_token(external_id),
        default_page=default_page(user.role).value,
    )


@router.get("/session", response_model=SessionResponse)
async def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    """
    Session check used on app start. Never raises for a missing session;
    answers {"authenticated": false} instead.
    """
    token = credentials.credentials if credentials else None
    principal = await resolve_principal(db, identity_provider, token)
    if isinstance(principal, Failure):
        code = (
            status.HTTP_403_FORBIDDEN
            if principal.reason == FailureReason.ACCOUNT_INACTIVE
            else status.HTTP_401_UNAUTHORIZED
        )
        return JSONResponse(status_code=code, content={"authenticated": False, **principal.to_dict()})

    return session_response(principal)


@router.patch("/me", response_model=PrincipalOut)
async def update_me(
    payload: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    principal: Principal = Depends(get_current_principal),
) -> PrincipalOut:
    user = await update_display_name(db, identity_provider, principal, payload.full_name)
    if isinstance(user, Failure):
        raise_for_failure(user)
    return principal_out(Principal.from_user(user))

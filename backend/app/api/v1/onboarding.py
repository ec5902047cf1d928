from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import raise_for_failure
from app.api.v1.auth import principal_out
from app.auth.permissions import default_page, format_role_name
from app.core import onboarding
from app.core.identity_provider import IdentityProvider, get_identity_provider
from app.core.outcomes import Failure
from app.core.session_gateway import Principal
from app.db.session import get_db
from app.schemas.onboarding import (
    BootstrapRequest,
    BootstrapStatusOut,
    SignupRequest,
    SignupResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


def _signup_response(result: onboarding.SignupResult) -> SignupResponse:
    principal = Principal.from_user(result.user)
    return SignupResponse(
        access_token=result.access_token,
        user=principal_out(principal),
        default_page=default_page(principal.role).value,
        step=result.step.value,
    )


@router.post("/verify-code", response_model=VerifyCodeResponse)
async def verify_code(payload: VerifyCodeRequest, db: AsyncSession = Depends(get_db)):
    """
    Step 1 (public). Checks the code without consuming it.
    Unknown and expired codes get the same 400 INVALID_INVITATION.
    """
    result = await onboarding.verify_code(db, payload.code)
    if isinstance(result, Failure):
        raise_for_failure(result, invitation_code=True)

    return VerifyCodeResponse(
        code=result.code,
        email=result.email,
        role=result.role,
        role_label=format_role_name(result.role),
        barangay_id=result.barangay_id,
        expires_at=result.expires_at,
        step=result.step.value,
    )


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest,
    db: AsyncSession = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    """
    Step 2 (public). Creates the account bound to the invitation and consumes
    the code. 409 ALREADY_CONSUMED if another signup won the same code.
    """
    result = await onboarding.complete_signup(
        db,
        identity_provider,
        code=payload.code,
        name=payload.name,
        password=payload.password,
        confirm_password=payload.confirm_password,
    )
    if isinstance(result, Failure):
        raise_for_failure(result, invitation_code=True)
    return _signup_response(result)


@router.get("/bootstrap-status", response_model=BootstrapStatusOut)
async def bootstrap_status(db: AsyncSession = Depends(get_db)):
    """
    Public. Lets the signup screen offer first-user setup only on an empty system.
    """
    user_count = await onboarding.count_users(db)
    return BootstrapStatusOut(bootstrap_available=user_count == 0, user_count=user_count)


@router.post("/bootstrap", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def bootstrap(
    payload: BootstrapRequest,
    db: AsyncSession = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    """
    First account on an empty system becomes superadmin. 403 once any user exists.
    """
    result = await onboarding.bootstrap_superadmin(
        db,
        identity_provider,
        email=str(payload.email),
        name=payload.name,
        password=payload.password,
        confirm_password=payload.confirm_password,
    )
    if isinstance(result, Failure):
        raise_for_failure(result)
    return _signup_response(result)

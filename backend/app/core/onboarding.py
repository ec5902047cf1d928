"""
Invitation-based signup.

    AWAITING_CODE --verify_code--> CODE_VERIFIED --complete_signup--> ACCOUNT_CREATED
    ACCOUNT_CREATED --(client stores token, navigates)--> SESSION_ESTABLISHED

A failed step leaves the caller where it was; nothing is consumed on a
failed code lookup.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import invitation_ledger
from app.core.config import settings
from app.core.identity_provider import IdentityProvider
from app.core.outcomes import Failure, FailureReason
from app.core.roles import Role
from app.models.invitation import InvitationStatus
from app.models.user import User

logger = logging.getLogger(__name__)


class OnboardingStep(str, enum.Enum):
    AWAITING_CODE = "AWAITING_CODE"
    CODE_VERIFIED = "CODE_VERIFIED"
    ACCOUNT_CREATED = "ACCOUNT_CREATED"
    SESSION_ESTABLISHED = "SESSION_ESTABLISHED"


@dataclass(frozen=True)
class VerifiedInvitation:
    code: str
    email: str
    role: str
    barangay_id: Optional[uuid.UUID]
    expires_at: datetime
    step: OnboardingStep = OnboardingStep.CODE_VERIFIED


@dataclass(frozen=True)
class SignupResult:
    user: User
    access_token: str
    step: OnboardingStep = OnboardingStep.ACCOUNT_CREATED


def check_password(password: Optional[str], confirm_password: Optional[str]) -> Optional[Failure]:
    if not password:
        return Failure(FailureReason.INVALID_INPUT, "Password is required", {"field": "password"})
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        return Failure(
            FailureReason.INVALID_INPUT,
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters",
            {"field": "password"},
        )
    if password != confirm_password:
        return Failure(FailureReason.INVALID_INPUT, "Passwords do not match", {"field": "confirm_password"})
    return None


def _check_name(name: Optional[str]) -> Union[str, Failure]:
    cleaned = User.normalize_full_name(name)
    if not cleaned:
        return Failure(FailureReason.INVALID_INPUT, "Name is required", {"field": "name"})
    return cleaned


async def verify_code(db: AsyncSession, code: str) -> Union[VerifiedInvitation, Failure]:
    inv = await invitation_ledger.lookup_by_code(db, code)
    if isinstance(inv, Failure):
        return inv

    return VerifiedInvitation(
        code=inv.code,
        email=inv.email,
        role=inv.role,
        barangay_id=inv.barangay_id,
        expires_at=inv.expires_at,
    )


async def complete_signup(
    db: AsyncSession,
    identity_provider: IdentityProvider,
    *,
    code: str,
    name: str,
    password: str,
    confirm_password: str,
) -> Union[SignupResult, Failure]:
    """
    Provision the invitee and consume the code in one commit.

    AuthProviderError from the provider propagates; the session is rolled back
    by the caller's request scope.
    """
    password_problem = check_password(password, confirm_password)
    if password_problem is not None:
        return password_problem

    display_name = _check_name(name)
    if isinstance(display_name, Failure):
        return display_name

    inv = await invitation_ledger.lookup_by_code(db, code)
    if isinstance(inv, Failure):
        return inv

    # Snapshot before anything can refresh the row under us.
    code = inv.code
    email = inv.email
    role = inv.role
    barangay_id = inv.barangay_id

    external_id = await identity_provider.provision_account(email, password, display_name)

    try:
        user = User(
            external_id=external_id,
            email=email,
            full_name=display_name,
            role=role,
            barangay_id=barangay_id,
            is_active=True,
        )
        db.add(user)
        await db.flush()

        consumed = await invitation_ledger.consume(db, code, user.id)
    except IntegrityError:
        # The racing signup inserted this email first and is about to consume the code.
        await db.rollback()
        consumed = await _classify_lost_race(db, code)

    if isinstance(consumed, Failure):
        await db.rollback()
        logger.warning(
            "Signup rejected (%s); identity %s has no account binding",
            consumed.reason.value,
            external_id,
        )
        return consumed

    await db.commit()
    await db.refresh(user)

    logger.info("Account %s created with role=%s barangay=%s", user.id, user.role, user.barangay_id)
    return SignupResult(user=user, access_token=identity_provider.issue_token(external_id))


async def _classify_lost_race(db: AsyncSession, code: str) -> Failure:
    inv = await invitation_ledger.get_by_code(db, code)
    if inv is not None and inv.status == InvitationStatus.CONSUMED.value:
        return Failure(FailureReason.ALREADY_CONSUMED, "This invitation has already been used")
    if inv is not None and inv.status == InvitationStatus.PENDING.value:
        return Failure(FailureReason.ALREADY_EXISTS, "An account with this email already exists")
    return Failure(FailureReason.EXPIRED, "Invalid or expired invitation code")


async def count_users(db: AsyncSession) -> int:
    return int((await db.execute(select(func.count(User.id)))).scalar() or 0)


async def bootstrap_available(db: AsyncSession) -> bool:
    return await count_users(db) == 0


async def bootstrap_superadmin(
    db: AsyncSession,
    identity_provider: IdentityProvider,
    *,
    email: str,
    name: str,
    password: str,
    confirm_password: str,
) -> Union[SignupResult, Failure]:
    """
    First account on an empty system becomes superadmin without an invitation.
    """
    if not await bootstrap_available(db):
        return Failure(FailureReason.FORBIDDEN, "Invitation code is required")

    password_problem = check_password(password, confirm_password)
    if password_problem is not None:
        return password_problem

    display_name = _check_name(name)
    if isinstance(display_name, Failure):
        return display_name

    email = User.normalize_email(email)
    external_id = await identity_provider.provision_account(email, password, display_name)

    user = User(
        external_id=external_id,
        email=email,
        full_name=display_name,
        role=Role.SUPERADMIN.value,
        barangay_id=None,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("Bootstrapped superadmin %s", user.id)
    return SignupResult(user=user, access_token=identity_provider.issue_token(external_id))

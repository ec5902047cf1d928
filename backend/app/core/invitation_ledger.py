# backend/app/core/invitation_ledger.py
from __future__ import annotations

import logging
import secrets
import uuid
from datetime import timedelta
from typing import List, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import (
    TENANT_BOUND_GRANTORS,
    can_grant,
    forbidden_grant_message,
    grantable_roles,
)
from app.core.clock import as_utc, utcnow
from app.core.config import settings
from app.core.outcomes import Failure, FailureReason
from app.core.roles import Role, parse_role
from app.core.session_gateway import Principal
from app.models.barangay import Barangay
from app.models.invitation import Invitation, InvitationStatus
from app.models.user import User

logger = logging.getLogger(__name__)

# 32 symbols, no 0/O/1/I. 6 chars -> 32**6 ~ 1.07e9 codes.
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_ALLOCATION_ATTEMPTS = 10


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def generate_code(length: Optional[int] = None) -> str:
    n = length or settings.INVITATION_CODE_LENGTH
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(n))


async def _allocate_code(db: AsyncSession) -> str:
    for _ in range(CODE_ALLOCATION_ATTEMPTS):
        code = generate_code()
        taken = (
            await db.execute(select(Invitation.id).where(Invitation.code == code))
        ).scalar_one_or_none()
        if taken is None:
            return code
    raise RuntimeError("Could not allocate unique invitation code")


def _same_barangay(barangay_id: Optional[uuid.UUID]):
    if barangay_id is None:
        return Invitation.barangay_id.is_(None)
    return Invitation.barangay_id == barangay_id


async def _has_pending(db: AsyncSession, email: str, barangay_id: Optional[uuid.UUID]) -> bool:
    found = (
        await db.execute(
            select(Invitation.id)
            .where(
                Invitation.email == email,
                _same_barangay(barangay_id),
                Invitation.status == InvitationStatus.PENDING.value,
            )
            .limit(1)
        )
    ).scalar_one_or_none()
    return found is not None


async def _check_grantor_prerequisites(db: AsyncSession, grantor: Principal) -> Optional[Failure]:
    if grantor.role not in TENANT_BOUND_GRANTORS:
        return None

    if grantor.barangay_id is None:
        return Failure(
            FailureReason.PREREQUISITE_MISSING,
            "Please complete your barangay setup in Settings before inviting users",
        )

    barangay = await db.get(Barangay, grantor.barangay_id)
    if barangay is None:
        return Failure(
            FailureReason.PREREQUISITE_MISSING,
            "Please complete your barangay information in Settings before inviting users",
        )
    return None


# =========================================================
# CREATE
# =========================================================
async def create_invitation(
    db: AsyncSession,
    grantor: Principal,
    email: str,
    requested_role: Union[Role, str],
) -> Union[Invitation, Failure]:
    """
    Issue a single-use code for `email` to join as `requested_role`.

    Any earlier pending invitation for the same (email, barangay) is marked
    expired; only the newest code stays redeemable.
    """
    role = parse_role(requested_role)
    if role is None or not can_grant(grantor.role, role):
        return Failure(
            FailureReason.FORBIDDEN,
            forbidden_grant_message(grantor.role),
            {"requested_role": str(getattr(requested_role, "value", requested_role))},
        )

    prerequisite = await _check_grantor_prerequisites(db, grantor)
    if prerequisite is not None:
        return prerequisite

    email = normalize_email(email)

    existing_user = (await db.execute(select(User.id).where(User.email == email))).scalar_one_or_none()
    if existing_user is not None:
        return Failure(FailureReason.ALREADY_EXISTS, "A user with this email already exists")

    # Captains found their own barangay; everyone else joins the grantor's.
    barangay_id = None if role == Role.BARANGAY_CAPTAIN else grantor.barangay_id

    for _ in range(CODE_ALLOCATION_ATTEMPTS):
        superseded = await db.execute(
            update(Invitation)
            .where(
                Invitation.email == email,
                _same_barangay(barangay_id),
                Invitation.status == InvitationStatus.PENDING.value,
            )
            .values(status=InvitationStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )

        invitation = Invitation(
            code=await _allocate_code(db),
            email=email,
            role=role.value,
            barangay_id=barangay_id,
            status=InvitationStatus.PENDING.value,
            created_by_user_id=grantor.id,
            expires_at=utcnow() + timedelta(days=settings.INVITATION_TTL_DAYS),
        )
        db.add(invitation)

        try:
            await db.commit()
            break
        except IntegrityError:
            await db.rollback()

        # Lost to a concurrent create for the same (email, barangay)...
        if await _has_pending(db, email, barangay_id):
            return Failure(
                FailureReason.ALREADY_EXISTS,
                "An invitation for this email was just created. Please refresh and try again.",
            )
        # ...or to a concurrent create that drew the same code.
        logger.warning("Invitation code collision for barangay=%s; drawing a new code", barangay_id)
    else:
        raise RuntimeError("Could not allocate unique invitation code")

    await db.refresh(invitation)

    if superseded.rowcount:
        logger.info("Superseded %d pending invitation(s) for barangay=%s", superseded.rowcount, barangay_id)
    logger.info(
        "Invitation %s created by %s role=%s barangay=%s",
        invitation.id,
        grantor.id,
        invitation.role,
        barangay_id,
    )
    return invitation


# =========================================================
# LOOKUP + CONSUME
# =========================================================
async def get_by_code(db: AsyncSession, code: str) -> Optional[Invitation]:
    stmt = (
        select(Invitation)
        .where(Invitation.code == normalize_code(code))
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def lookup_by_code(db: AsyncSession, code: str) -> Union[Invitation, Failure]:
    """
    Read-only. Unknown -> NOT_FOUND; consumed, superseded or past expiry -> EXPIRED.
    """
    inv = await get_by_code(db, code)
    if inv is None:
        return Failure(FailureReason.NOT_FOUND, "Invalid or expired invitation code")

    if inv.status != InvitationStatus.PENDING.value or as_utc(inv.expires_at) < utcnow():
        return Failure(FailureReason.EXPIRED, "Invalid or expired invitation code")

    return inv


async def consume(
    db: AsyncSession,
    code: str,
    user_id: uuid.UUID,
) -> Union[Invitation, Failure]:
    """
    pending -> consumed as one conditional UPDATE; of two racing callers
    exactly one matches the row.

    Does not commit: the caller commits together with the account it provisioned.
    """
    code = normalize_code(code)
    now = utcnow()

    result = await db.execute(
        update(Invitation)
        .where(
            Invitation.code == code,
            Invitation.status == InvitationStatus.PENDING.value,
            Invitation.expires_at >= now,
        )
        .values(
            status=InvitationStatus.CONSUMED.value,
            accepted_by_user_id=user_id,
            accepted_at=now,
        )
        .execution_options(synchronize_session=False)
    )

    inv = await get_by_code(db, code)
    if result.rowcount == 1 and inv is not None:
        logger.info("Invitation %s consumed by user %s", inv.id, user_id)
        return inv

    if inv is None:
        return Failure(FailureReason.NOT_FOUND, "Invalid or expired invitation code")
    if inv.status == InvitationStatus.CONSUMED.value:
        logger.warning("Invitation %s already consumed; rejecting user %s", inv.id, user_id)
        return Failure(FailureReason.ALREADY_CONSUMED, "This invitation has already been used")
    return Failure(FailureReason.EXPIRED, "Invalid or expired invitation code")


# =========================================================
# LIST + REVOKE
# =========================================================
async def expire_stale_invitations(db: AsyncSession) -> int:
    """
    Flip pending invitations past their expiry to `expired`. Does not commit.
    """
    result = await db.execute(
        update(Invitation)
        .where(
            Invitation.status == InvitationStatus.PENDING.value,
            Invitation.expires_at < utcnow(),
        )
        .values(status=InvitationStatus.EXPIRED.value)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)


def _scope_filter(grantor: Principal):
    # Superadmin invites are tenant-less, so scope them by author instead.
    if grantor.is_superadmin:
        return Invitation.created_by_user_id == grantor.id
    return Invitation.barangay_id == grantor.barangay_id


async def list_invitations(db: AsyncSession, grantor: Principal) -> Union[List[Invitation], Failure]:
    if not grantable_roles(grantor.role):
        return Failure(FailureReason.FORBIDDEN, "You do not have permission to view invitations")

    if grantor.role != Role.SUPERADMIN and grantor.barangay_id is None:
        return []

    await expire_stale_invitations(db)
    await db.commit()

    stmt = (
        select(Invitation)
        .where(_scope_filter(grantor))
        .order_by(Invitation.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return list((await db.execute(stmt)).scalars().all())


async def revoke_invitation(
    db: AsyncSession,
    grantor: Principal,
    invitation_id: uuid.UUID,
) -> Union[Invitation, Failure]:
    if not grantable_roles(grantor.role):
        return Failure(FailureReason.FORBIDDEN, "You do not have permission to revoke invitations")
    if grantor.role != Role.SUPERADMIN and grantor.barangay_id is None:
        return Failure(FailureReason.NOT_FOUND, "Invitation not found")

    inv = (
        await db.execute(
            select(Invitation)
            .where(Invitation.id == invitation_id, _scope_filter(grantor))
            .with_for_update()
        )
    ).scalar_one_or_none()

    if inv is None:
        return Failure(FailureReason.NOT_FOUND, "Invitation not found")

    if inv.status == InvitationStatus.CONSUMED.value:
        return Failure(FailureReason.ALREADY_CONSUMED, "Invitation already accepted")

    if inv.status != InvitationStatus.PENDING.value or as_utc(inv.expires_at) < utcnow():
        return Failure(FailureReason.EXPIRED, "Invitation already expired")

    # Soft-revoke (keeps audit trail)
    inv.status = InvitationStatus.EXPIRED.value
    await db.commit()
    await db.refresh(inv)

    logger.info("Invitation %s revoked by %s", inv.id, grantor.id)
    return inv

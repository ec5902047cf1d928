"""
Tenant (barangay) resolution for a principal.

One lookup path only: the principal's `barangay_id`. Legacy rows that were
linked by e-mail need a data migration, not a runtime fallback.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.outcomes import Failure, FailureReason
from app.core.roles import Role
from app.core.session_gateway import Principal
from app.models.barangay import Barangay
from app.models.user import User

logger = logging.getLogger(__name__)

PLACEHOLDER_LOCATION = "To be configured"

# Roles allowed to edit their own barangay's profile.
TENANT_EDITORS = frozenset({Role.BARANGAY_CAPTAIN, Role.SECRETARY})

EDITABLE_FIELDS = ("name", "address", "contact_number", "email", "municipality", "province")


@dataclass(frozen=True)
class PendingSetup:
    """
    No barangay yet. `can_create` is True for a captain (show the setup form)
    and False for everyone else (waiting on a captain).
    """

    can_create: bool


@dataclass(frozen=True)
class NotApplicable:
    """Superadmins are not scoped to any barangay."""


TenantResolution = Union[Barangay, PendingSetup, NotApplicable]


async def resolve_tenant(db: AsyncSession, principal: Principal) -> TenantResolution:
    if principal.role == Role.SUPERADMIN:
        return NotApplicable()

    can_create = principal.role == Role.BARANGAY_CAPTAIN

    if principal.barangay_id is None:
        return PendingSetup(can_create=can_create)

    barangay = await db.get(Barangay, principal.barangay_id)
    if barangay is None:
        logger.warning(
            "User %s is bound to missing barangay %s", principal.id, principal.barangay_id
        )
        return PendingSetup(can_create=can_create)

    return barangay


def _placeholder_name(principal: Principal) -> str:
    first = (principal.display_name or principal.email.split("@")[0]).split(" ")[0]
    return f"Barangay of {first}"


def _clean(attrs: Mapping[str, Any]) -> dict:
    out = {}
    for key in EDITABLE_FIELDS:
        if key not in attrs:
            continue
        value = attrs[key]
        if isinstance(value, str):
            value = value.strip() or None
        out[key] = value
    return out


async def _owned_barangay(db: AsyncSession, owner_id: uuid.UUID) -> Optional[Barangay]:
    stmt = select(Barangay).where(Barangay.owner_user_id == owner_id)
    return (await db.execute(stmt)).scalar_one_or_none()


def _already_exists(barangay_id) -> Failure:
    return Failure(
        FailureReason.ALREADY_EXISTS,
        "You already have a barangay set up",
        {"barangay_id": str(barangay_id) if barangay_id else None},
    )


async def create_tenant(
    db: AsyncSession,
    principal: Principal,
    attrs: Mapping[str, Any],
) -> Union[Barangay, Failure]:
    """
    Create the captain's barangay and bind the captain to it in one commit.

    The unique constraint on `owner_user_id` decides concurrent creates; the
    loser gets ALREADY_EXISTS with the winner's id.
    """
    if principal.role != Role.BARANGAY_CAPTAIN:
        return Failure(FailureReason.FORBIDDEN, "Only a barangay captain can create a barangay")

    if principal.barangay_id is not None:
        return _already_exists(principal.barangay_id)

    values = _clean(attrs)
    barangay = Barangay(
        name=values.get("name") or _placeholder_name(principal),
        address=values.get("address"),
        contact_number=values.get("contact_number"),
        email=values.get("email") or principal.email,
        municipality=values.get("municipality") or PLACEHOLDER_LOCATION,
        province=values.get("province") or PLACEHOLDER_LOCATION,
        owner_user_id=principal.id,
    )

    try:
        db.add(barangay)
        await db.flush()

        bound = await db.execute(
            update(User)
            .where(User.id == principal.id, User.barangay_id.is_(None))
            .values(barangay_id=barangay.id)
            .execution_options(synchronize_session=False)
        )
        if bound.rowcount != 1:
            # Bound by someone else between our read and this write.
            await db.rollback()
            current = (
                await db.execute(select(User.barangay_id).where(User.id == principal.id))
            ).scalar_one_or_none()
            return _already_exists(current)

        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await _owned_barangay(db, principal.id)
        return _already_exists(existing.id if existing else None)

    await db.refresh(barangay)
    logger.info("Barangay %s created by captain %s", barangay.id, principal.id)
    return barangay


async def update_tenant(
    db: AsyncSession,
    principal: Principal,
    barangay_id: uuid.UUID,
    attrs: Mapping[str, Any],
) -> Union[Barangay, Failure]:
    if principal.barangay_id is None or principal.barangay_id != barangay_id:
        return Failure(FailureReason.FORBIDDEN, "Unauthorized to update this barangay")

    if principal.role not in TENANT_EDITORS:
        return Failure(FailureReason.FORBIDDEN, "Your role cannot update barangay information")

    barangay = await db.get(Barangay, barangay_id)
    if barangay is None:
        return Failure(FailureReason.NOT_FOUND, "Barangay not found")

    values = _clean(attrs)
    if "name" in values and not values["name"]:
        return Failure(FailureReason.INVALID_INPUT, "Barangay name is required")

    for key, value in values.items():
        setattr(barangay, key, value)

    await db.commit()
    await db.refresh(barangay)
    return barangay

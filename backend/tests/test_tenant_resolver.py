# tests/test_tenant_resolver.py
from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func, select

from app.core.outcomes import Failure, FailureReason
from app.core.roles import Role
from app.core.tenant_resolver import (
    NotApplicable,
    PendingSetup,
    create_tenant,
    resolve_tenant,
    update_tenant,
)
from app.models.barangay import Barangay
from app.models.user import User


async def reload_user(db, user_id) -> User:
    stmt = select(User).where(User.id == user_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one()


@pytest.mark.asyncio
async def test_resolution_by_role(db, make_user, captain_with_barangay, principal_of):
    admin = await make_user(Role.SUPERADMIN)
    lone_captain = await make_user(Role.BARANGAY_CAPTAIN)
    lone_staff = await make_user(Role.STAFF)
    captain, barangay = await captain_with_barangay()
    treasurer = await make_user(Role.TREASURER, barangay_id=barangay.id)

    assert isinstance(await resolve_tenant(db, principal_of(admin)), NotApplicable)
    assert await resolve_tenant(db, principal_of(lone_captain)) == PendingSetup(can_create=True)
    assert await resolve_tenant(db, principal_of(lone_staff)) == PendingSetup(can_create=False)

    for user in (captain, treasurer):
        resolved = await resolve_tenant(db, principal_of(user))
        assert isinstance(resolved, Barangay)
        assert resolved.id == barangay.id


@pytest.mark.asyncio
async def test_dangling_binding_reads_as_pending(db, make_user, principal_of):
    captain = await make_user(Role.BARANGAY_CAPTAIN, barangay_id=uuid.uuid4())

    assert await resolve_tenant(db, principal_of(captain)) == PendingSetup(can_create=True)


@pytest.mark.asyncio
async def test_captain_creates_barangay_with_placeholders(db, make_user, principal_of):
    captain = await make_user(Role.BARANGAY_CAPTAIN, name="Maria Clara Santos", email="maria@example.com")

    created = await create_tenant(db, principal_of(captain), {})

    assert isinstance(created, Barangay)
    assert created.name == "Barangay of Maria"
    assert created.municipality == "To be configured"
    assert created.province == "To be configured"
    assert created.email == "maria@example.com"
    assert created.owner_user_id == captain.id

    refreshed = await reload_user(db, captain.id)
    assert refreshed.barangay_id == created.id

    resolved = await resolve_tenant(db, principal_of(refreshed))
    assert isinstance(resolved, Barangay)
    assert resolved.id == created.id


@pytest.mark.asyncio
async def test_second_create_is_a_no_op(db, make_user, principal_of):
    captain = await make_user(Role.BARANGAY_CAPTAIN)
    first = await create_tenant(db, principal_of(captain), {"name": "Barangay Malinis"})

    captain = await reload_user(db, captain.id)
    second = await create_tenant(db, principal_of(captain), {"name": "Another"})

    assert isinstance(second, Failure)
    assert second.reason == FailureReason.ALREADY_EXISTS
    assert second.details["barangay_id"] == str(first.id)

    total = (await db.execute(select(func.count(Barangay.id)))).scalar()
    assert total == 1


@pytest.mark.asyncio
async def test_concurrent_create_keeps_one_barangay(db, sessionmaker, make_user, principal_of):
    captain = await make_user(Role.BARANGAY_CAPTAIN)
    # Both requests carry the same unbound snapshot of the captain.
    principal = principal_of(captain)

    async with sessionmaker() as first, sessionmaker() as second:
        winner = await create_tenant(first, principal, {"name": "Barangay Uno"})
        loser = await create_tenant(second, principal, {"name": "Barangay Dos"})

    assert isinstance(winner, Barangay)
    assert isinstance(loser, Failure)
    assert loser.reason == FailureReason.ALREADY_EXISTS
    assert loser.details["barangay_id"] == str(winner.id)

    names = (await db.execute(select(Barangay.name))).scalars().all()
    assert names == ["Barangay Uno"]
    assert (await reload_user(db, captain.id)).barangay_id == winner.id


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [Role.SUPERADMIN, Role.SECRETARY, Role.STAFF])
async def test_only_captains_create(db, make_user, principal_of, role):
    user = await make_user(role)

    result = await create_tenant(db, principal_of(user), {"name": "Nope"})

    assert isinstance(result, Failure)
    assert result.reason == FailureReason.FORBIDDEN


@pytest.mark.asyncio
async def test_update_own_barangay(db, make_user, captain_with_barangay, principal_of):
    captain, barangay = await captain_with_barangay()
    secretary = await make_user(Role.SECRETARY, barangay_id=barangay.id)
    staff = await make_user(Role.STAFF, barangay_id=barangay.id)
    _, other = await captain_with_barangay()

    updated = await update_tenant(
        db, principal_of(secretary), barangay.id, {"address": " 12 Rizal St. ", "province": "Laguna"}
    )
    assert isinstance(updated, Barangay)
    assert updated.address == "12 Rizal St."
    assert updated.province == "Laguna"
    assert updated.name == barangay.name

    denied = await update_tenant(db, principal_of(staff), barangay.id, {"name": "X"})
    assert isinstance(denied, Failure)
    assert denied.reason == FailureReason.FORBIDDEN

    foreign = await update_tenant(db, principal_of(captain), other.id, {"name": "Mine now"})
    assert isinstance(foreign, Failure)
    assert foreign.reason == FailureReason.FORBIDDEN

    blank = await update_tenant(db, principal_of(captain), barangay.id, {"name": "   "})
    assert isinstance(blank, Failure)
    assert blank.reason == FailureReason.INVALID_INPUT

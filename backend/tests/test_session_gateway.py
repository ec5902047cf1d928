# tests/test_session_gateway.py
from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func, select

from app.core.identity_provider import LocalIdentityProvider
from app.core.outcomes import Failure, FailureReason
from app.core.roles import Role
from app.core.security import create_access_token
from app.core.session_gateway import Principal, resolve_principal
from app.models.user import User


@pytest.mark.asyncio
async def test_valid_token_resolves_principal(db, captain_with_barangay):
    captain, barangay = await captain_with_barangay()
    provider = LocalIdentityProvider(db)

    principal = await resolve_principal(db, provider, create_access_token(captain.external_id))

    assert isinstance(principal, Principal)
    assert principal.id == captain.id
    assert principal.role == Role.BARANGAY_CAPTAIN
    assert principal.barangay_id == barangay.id
    assert principal.active is True


@pytest.mark.asyncio
@pytest.mark.parametrize("credentials", [None, "", "not-a-jwt"])
async def test_missing_or_garbage_credentials(db, credentials):
    result = await resolve_principal(db, LocalIdentityProvider(db), credentials)

    assert isinstance(result, Failure)
    assert result.reason == FailureReason.UNAUTHENTICATED


@pytest.mark.asyncio
async def test_token_for_unknown_identity(db):
    token = create_access_token(str(uuid.uuid4()))

    result = await resolve_principal(db, LocalIdentityProvider(db), token)

    assert isinstance(result, Failure)
    assert result.reason == FailureReason.UNAUTHENTICATED


@pytest.mark.asyncio
async def test_identity_without_account_is_not_auto_provisioned(db, make_user):
    user = await make_user(Role.STAFF)
    external_id = user.external_id
    await db.delete(user)
    await db.commit()

    result = await resolve_principal(db, LocalIdentityProvider(db), create_access_token(external_id))

    assert isinstance(result, Failure)
    assert result.reason == FailureReason.UNAUTHENTICATED
    assert result.message == "Account not found"
    assert (await db.execute(select(func.count(User.id)))).scalar() == 0


@pytest.mark.asyncio
async def test_inactive_account(db, make_user):
    user = await make_user(Role.TREASURER, is_active=False)

    result = await resolve_principal(db, LocalIdentityProvider(db), create_access_token(user.external_id))

    assert isinstance(result, Failure)
    assert result.reason == FailureReason.ACCOUNT_INACTIVE


@pytest.mark.asyncio
async def test_unknown_stored_role_has_no_role(db, make_user):
    user = await make_user("mayor")

    principal = await resolve_principal(db, LocalIdentityProvider(db), create_access_token(user.external_id))

    assert isinstance(principal, Principal)
    assert principal.role is None

from __future__ import annotations

import os
import uuid
from typing import Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from app.core.roles import Role
from app.core.security import create_access_token, hash_password
from app.core.session_gateway import Principal
from app.db.session import get_db

# Ensure Base + models are registered before create_all
from app.db.base import Base  # noqa: F401
import app.models  # noqa: F401
from app.models.barangay import Barangay
from app.models.identity import Identity
from app.models.user import User

DEFAULT_PASSWORD = "correct-horse-1"


# ---------------------------------------------------------
# Database config
# ---------------------------------------------------------
@pytest.fixture()
def database_url_async(tmp_path) -> str:
    """
    Fresh SQLite file per test. Set TEST_DATABASE_URL_ASYNC to run the suite
    against PostgreSQL instead (tables are dropped and recreated per test).
    """
    url = os.getenv("TEST_DATABASE_URL_ASYNC")
    if url:
        return url
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


# ---------------------------------------------------------
# Engine + schema lifecycle
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def engine(database_url_async: str):
    engine = create_async_engine(
        database_url_async,
        future=True,
        echo=False,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture()
def sessionmaker(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )


# ---------------------------------------------------------
# DB session for assertions / setup
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def db(sessionmaker):
    """
    Session for test setup & assertions ONLY.
    """
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker):
    from app.main import app as fastapi_app

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------
# Factories
# ---------------------------------------------------------
@pytest.fixture()
def make_user(db):
    async def _make_user(
        role: Role | str,
        *,
        email: Optional[str] = None,
        name: Optional[str] = None,
        barangay_id: Optional[uuid.UUID] = None,
        is_active: bool = True,
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        role_value = role.value if isinstance(role, Role) else role
        email = (email or f"{role_value}-{uuid.uuid4().hex[:8]}@example.com").lower()
        name = name or f"Juan {role_value.title()}"

        identity = Identity(
            id=uuid.uuid4(),
            email=email,
            display_name=name,
            password_hash=hash_password(password),
        )
        user = User(
            external_id=str(identity.id),
            email=email,
            full_name=name,
            role=role_value,
            barangay_id=barangay_id,
            is_active=is_active,
        )
        db.add_all([identity, user])
        await db.commit()
        await db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_barangay(db):
    async def _make_barangay(owner: Optional[User] = None, name: str = "Barangay San Roque") -> Barangay:
        barangay = Barangay(
            name=name,
            municipality="Quezon City",
            province="Metro Manila",
            owner_user_id=owner.id if owner else None,
        )
        db.add(barangay)
        await db.flush()
        if owner is not None:
            owner.barangay_id = barangay.id
        await db.commit()
        await db.refresh(barangay)
        return barangay

    return _make_barangay


@pytest.fixture()
def captain_with_barangay(make_user, make_barangay):
    async def _captain_with_barangay(**kwargs):
        captain = await make_user(Role.BARANGAY_CAPTAIN, **kwargs)
        barangay = await make_barangay(captain)
        return captain, barangay

    return _captain_with_barangay


@pytest.fixture()
def principal_of():
    return Principal.from_user


@pytest.fixture()
def auth_headers():
    def _auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.external_id)}"}

    return _auth_headers

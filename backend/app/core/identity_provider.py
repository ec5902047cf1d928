# backend/app/core/identity_provider.py
from __future__ import annotations

import logging
import uuid
from typing import Optional, Protocol

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.outcomes import AuthProviderError
from app.core.security import create_access_token, decode_access_token, hash_password, verify_password
from app.db.session import get_db
from app.models.identity import Identity

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    """
    External authenticator. Everything outside this module treats the
    returned identity id as an opaque string.
    """

    async def provision_account(self, email: str, password: str, display_name: str) -> str: ...

    async def verify_credentials(self, credentials: Optional[str]) -> Optional[str]: ...

    async def authenticate(self, email: str, password: str) -> Optional[str]: ...

    async def update_display_name(self, external_id: str, display_name: str) -> None: ...

    def issue_token(self, external_id: str) -> str: ...


class LocalIdentityProvider:
    """
    Identity provider backed by the `identities` table and HS256 bearer tokens.

    Shares the request's session: the identity row is written by the caller's
    next flush and rolls back together with the rest of a failed signup.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def provision_account(self, email: str, password: str, display_name: str) -> str:
        email = email.strip().lower()
        try:
            existing = (
                await self.db.execute(select(Identity.id).where(Identity.email == email))
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise AuthProviderError("Failed to create account") from exc

        if existing is not None:
            raise AuthProviderError(
                "An account with this email already exists. Please use a different email or try logging in.",
                code="USER_EXISTS",
            )

        identity = Identity(
            id=uuid.uuid4(),
            email=email,
            display_name=display_name,
            password_hash=hash_password(password),
        )
        self.db.add(identity)

        logger.info("Provisioned identity %s", identity.id)
        return str(identity.id)

    async def verify_credentials(self, credentials: Optional[str]) -> Optional[str]:
        subject = decode_access_token(credentials)
        if not subject:
            return None

        try:
            identity_id = uuid.UUID(subject)
        except ValueError:
            return None

        try:
            identity = await self.db.get(Identity, identity_id)
        except SQLAlchemyError as exc:
            raise AuthProviderError("Failed to verify credentials") from exc
        return str(identity.id) if identity else None

    async def authenticate(self, email: str, password: str) -> Optional[str]:
        email = email.strip().lower()
        try:
            identity = (
                await self.db.execute(select(Identity).where(Identity.email == email))
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise AuthProviderError("Failed to verify credentials") from exc

        if identity is None or not verify_password(password, identity.password_hash):
            return None
        return str(identity.id)

    async def update_display_name(self, external_id: str, display_name: str) -> None:
        """
        Keeps the credential record in step with the profile. Written on the
        caller's next commit.
        """
        try:
            identity_id = uuid.UUID(external_id)
        except ValueError:
            return

        try:
            identity = await self.db.get(Identity, identity_id)
        except SQLAlchemyError as exc:
            raise AuthProviderError("Failed to update account") from exc
        if identity is not None:
            identity.display_name = display_name

    def issue_token(self, external_id: str) -> str:
        return create_access_token(subject=external_id)


async def get_identity_provider(db: AsyncSession = Depends(get_db)) -> IdentityProvider:
    return LocalIdentityProvider(db)

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from classifieds.adapters.base import IdentityRecord
from classifieds.core.errors import (
    AuthenticationError,
    ConflictError,
    PersistenceError,
    ValidationError,
)
from classifieds.core.security import generate_access_token, hash_access_token, hash_password, verify_password
from classifieds.models.access_token import AccessToken
from classifieds.models.account import Account

log = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

MIN_PASSWORD_LENGTH = 6


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(dt: datetime) -> datetime:
    # sqlite hands back naive datetimes
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


async def get_credential(
    creds: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
) -> str | None:
    """
    Extract the raw bearer credential. Verification is left to the operation,
    which must call IdentityVerifier.verify before doing anything else.
    """
    if creds is None:
        return None
    return creds.credentials


async def require_credential(credential: str | None = Depends(get_credential)) -> str:
    """
    Like get_credential, but rejects a request without a bearer header up
    front, before its body is validated.
    """
    if not credential:
        raise AuthenticationError("Missing bearer credential")
    return credential


@dataclass(frozen=True)
class IssuedToken:
    token: str
    uid: str
    expires_at: datetime


class SqlIdentityProvider:
    """
    Email/password accounts with opaque bearer tokens.

    Tokens are generated and peppered like API keys: only the hash is stored,
    the plain token is returned once by sign_in.
    """

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        *,
        pepper: str,
        token_ttl: timedelta,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._sessions = sessions
        self._pepper = pepper
        self._token_ttl = token_ttl
        self._clock = clock

    async def verify(self, credential: str | None) -> str:
        if not credential or not credential.strip():
            raise AuthenticationError("Missing bearer credential")
        if not credential.startswith("ct_"):
            raise AuthenticationError("Malformed bearer credential")

        hashed = hash_access_token(credential, pepper=self._pepper)
        stmt = select(AccessToken).where(AccessToken.token_hash == hashed)
        try:
            async with self._sessions() as db:
                row = (await db.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError("Could not verify credential") from e

        if row is None:
            raise AuthenticationError("Invalid bearer credential")
        if not row.is_active:
            raise AuthenticationError("Bearer credential has been revoked")
        if _aware(row.expires_at) <= self._clock():
            raise AuthenticationError("Bearer credential has expired")
        return row.account_id

    async def lookup(self, uid: str) -> IdentityRecord | None:
        try:
            async with self._sessions() as db:
                acc = (await db.execute(select(Account).where(Account.id == uid))).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError("Could not read account") from e
        if acc is None:
            return None
        return IdentityRecord(uid=acc.id, email=acc.email, display_name=acc.display_name)

    async def sign_up(self, *, email: str, password: str, display_name: str | None = None) -> IdentityRecord:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"The password is too weak. It must be at least {MIN_PASSWORD_LENGTH} characters.")

        account = Account(email=email.strip().lower(), display_name=display_name, password_hash=hash_password(password))
        try:
            async with self._sessions() as db:
                db.add(account)
                await db.commit()
        except IntegrityError as e:
            log.info("sign up rejected: email already registered")
            raise ConflictError("The email address is already in use by another account.") from e
        except SQLAlchemyError as e:
            log.exception("sign up failed")
            raise PersistenceError("Could not create account") from e

        return IdentityRecord(uid=account.id, email=account.email, display_name=account.display_name)

    async def sign_in(self, *, email: str, password: str) -> IssuedToken:
        stmt = select(Account).where(Account.email == email.strip().lower())
        try:
            async with self._sessions() as db:
                acc = (await db.execute(stmt)).scalar_one_or_none()
                if acc is None or not verify_password(password, acc.password_hash):
                    raise AuthenticationError("Invalid email or password")

                parts = generate_access_token(pepper=self._pepper)
                expires_at = self._clock() + self._token_ttl
                db.add(AccessToken(
                    account_id=acc.id,
                    token_prefix=parts.prefix,
                    token_hash=parts.hashed,
                    is_active=True,
                    expires_at=expires_at,
                ))
                await db.commit()
        except SQLAlchemyError as e:
            log.exception("sign in failed")
            raise PersistenceError("Could not issue credential") from e

        return IssuedToken(token=parts.plain, uid=acc.id, expires_at=expires_at)

    async def sign_out(self, credential: str | None) -> None:
        await self.verify(credential)
        hashed = hash_access_token(credential, pepper=self._pepper)
        try:
            async with self._sessions() as db:
                await db.execute(
                    update(AccessToken)
                    .where(AccessToken.token_hash == hashed)
                    .values(is_active=False, revoked_at=self._clock())
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError("Could not revoke credential") from e

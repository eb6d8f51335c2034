from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from classifieds.adapters.base import UserProfile
from classifieds.adapters.registry import Backends
from classifieds.core.errors import NotFoundError, PersistenceError, StoreError
from classifieds.models.profile import UserProfileRow

log = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "location", "phone_number")


def _to_profile(row: UserProfileRow) -> UserProfile:
    return UserProfile(
        id=row.id,
        email=row.email or "",
        name=row.name,
        location=row.location,
        phone_number=row.phone_number,
    )


class SqlProfileStore:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def get(self, uid: str) -> UserProfile | None:
        try:
            async with self._sessions() as db:
                row = (await db.execute(select(UserProfileRow).where(UserProfileRow.id == uid))).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(f"could not read profile {uid}") from e
        return _to_profile(row) if row else None

    async def upsert(self, uid: str, fields: dict[str, Any]) -> UserProfile:
        allowed = {k: v for k, v in fields.items() if k in ("email", *EDITABLE_FIELDS)}
        try:
            async with self._sessions() as db:
                row = (await db.execute(select(UserProfileRow).where(UserProfileRow.id == uid))).scalar_one_or_none()
                if row is None:
                    row = UserProfileRow(id=uid, **allowed)
                    db.add(row)
                else:
                    for k, v in allowed.items():
                        setattr(row, k, v)
                await db.commit()
                return _to_profile(row)
        except SQLAlchemyError as e:
            raise StoreError(f"could not write profile {uid}") from e


class ProfileService:
    def __init__(self, backends: Backends):
        self._backends = backends

    async def get_profile(self, credential: str | None) -> UserProfile:
        """
        Return the caller's profile, creating it from identity data on first read.
        """
        self._backends.require("identity", "profiles")
        uid = await self._backends.identity.verify(credential)

        try:
            existing = await self._backends.profiles.get(uid)
        except StoreError as e:
            raise PersistenceError("Could not load your profile.") from e
        if existing is not None:
            return existing

        identity = await self._backends.identity.lookup(uid)
        if identity is None:
            raise NotFoundError("No account exists for this credential.")

        fields: dict[str, Any] = {"email": identity.email}
        if identity.display_name:
            fields["name"] = identity.display_name
        try:
            profile = await self._backends.profiles.upsert(uid, fields)
        except StoreError as e:
            raise PersistenceError("Could not create your profile.") from e
        log.info("created profile for %s on first read", uid)
        return profile

    async def update_profile(self, credential: str | None, changes: dict[str, Any]) -> UserProfile:
        """
        Merge the submitted editable fields into the caller's profile.
        Keys that are absent from `changes` are left untouched; email always
        comes from the identity provider.
        """
        self._backends.require("identity", "profiles")
        uid = await self._backends.identity.verify(credential)

        identity = await self._backends.identity.lookup(uid)
        if identity is None:
            raise NotFoundError("No account exists for this credential.")

        fields = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        fields["email"] = identity.email
        try:
            return await self._backends.profiles.upsert(uid, fields)
        except StoreError as e:
            log.exception("profile update failed for %s", uid)
            raise PersistenceError("An unexpected error occurred while updating your profile.") from e

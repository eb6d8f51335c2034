from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import NotSupportedError, ProgrammingError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from classifieds.adapters.base import ListingRecord
from classifieds.core.errors import OrderingUnavailableError, StoreError
from classifieds.models.listing import Listing

log = logging.getLogger(__name__)

_WRITABLE = frozenset({
    "author_id",
    "title",
    "description",
    "price",
    "category",
    "location",
    "tags",
    "image_urls",
    "image_hint",
    "created_at",
    "updated_at",
})

# set once at creation
_IMMUTABLE = frozenset({"id", "author_id", "created_at"})


def _to_record(row: Listing) -> ListingRecord:
    return ListingRecord(
        id=row.id,
        author_id=row.author_id,
        title=row.title,
        description=row.description,
        price=row.price,
        category=row.category,
        location=row.location or "",
        tags=list(row.tags or []),
        image_urls=list(row.image_urls or []),
        image_hint=row.image_hint or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlListingStore:
    """ListingStore over the `listings` table; one short session per call."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def get(self, listing_id: str) -> ListingRecord | None:
        try:
            async with self._sessions() as db:
                row = (await db.execute(select(Listing).where(Listing.id == listing_id))).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(f"could not read listing {listing_id}") from e
        return _to_record(row) if row else None

    async def query_by_author(self, author_id: str) -> list[ListingRecord]:
        stmt = select(Listing).where(Listing.author_id == author_id)
        try:
            async with self._sessions() as db:
                rows = (await db.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"could not read listings of {author_id}") from e
        return [_to_record(r) for r in rows]

    async def add(self, fields: dict[str, Any]) -> str:
        values = {k: v for k, v in fields.items() if k in _WRITABLE}
        try:
            async with self._sessions() as db:
                row = Listing(**values)
                db.add(row)
                await db.commit()
                return row.id
        except SQLAlchemyError as e:
            raise StoreError("could not create listing") from e

    async def update(self, listing_id: str, fields: dict[str, Any]) -> None:
        values = {k: v for k, v in fields.items() if k in _WRITABLE and k not in _IMMUTABLE}
        try:
            async with self._sessions() as db:
                res = await db.execute(update(Listing).where(Listing.id == listing_id).values(**values))
                await db.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"could not update listing {listing_id}") from e
        if res.rowcount == 0:
            raise StoreError(f"listing {listing_id} disappeared before update")

    async def delete(self, listing_id: str) -> None:
        try:
            async with self._sessions() as db:
                await db.execute(delete(Listing).where(Listing.id == listing_id))
                await db.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"could not delete listing {listing_id}") from e

    async def list_all(self, *, ordered: bool = True) -> list[ListingRecord]:
        stmt = select(Listing)
        if ordered:
            stmt = stmt.order_by(Listing.created_at.desc())
        try:
            async with self._sessions() as db:
                rows = (await db.execute(stmt)).scalars().all()
        except (ProgrammingError, NotSupportedError) as e:
            # the backend rejected the ORDER BY itself; connection and runtime
            # failures (OperationalError etc.) stay plain store errors
            if ordered:
                log.warning("ordered listing read rejected: %s", e)
                raise OrderingUnavailableError("store cannot order listings by created_at") from e
            raise StoreError("could not read listings") from e
        except SQLAlchemyError as e:
            raise StoreError("could not read listings") from e
        return [_to_record(r) for r in rows]

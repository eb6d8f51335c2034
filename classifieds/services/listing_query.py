from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from classifieds.adapters.base import ListingRecord, UserProfile
from classifieds.adapters.registry import Backends
from classifieds.core.errors import NotFoundError, OrderingUnavailableError, PersistenceError, StoreError

log = logging.getLogger(__name__)

ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class ListingPage:
    listings: list[ListingRecord]
    # True when the store could not order by created_at and the list is unordered
    degraded_ordering: bool = False


@dataclass(frozen=True)
class ListingDetails:
    listing: ListingRecord
    author: UserProfile | None


def filter_listings(
    listings: Iterable[ListingRecord],
    category: str | None = None,
    location: str | None = None,
    search: str | None = None,
) -> list[ListingRecord]:
    """
    Category/location/search filter used by the browse page. Pure, order preserving.

    - category: "all" (or empty) matches everything, otherwise exact equality
    - location: case-insensitive substring of listing.location
    - search: case-insensitive substring of the title or of any tag
    """
    category = category or ALL_CATEGORIES
    loc = (location or "").lower()
    q = (search or "").lower()

    def matches(listing: ListingRecord) -> bool:
        if category != ALL_CATEGORIES and listing.category != category:
            return False
        if loc and loc not in (listing.location or "").lower():
            return False
        if q:
            in_title = q in (listing.title or "").lower()
            in_tags = any(q in tag.lower() for tag in listing.tags or [])
            if not (in_title or in_tags):
                return False
        return True

    return [listing for listing in listings if matches(listing)]


class ListingQuery:
    def __init__(self, backends: Backends):
        self._backends = backends

    async def list(self) -> ListingPage:
        """Newest first; falls back to an unordered read flagged as degraded."""
        self._backends.require("listings")
        store = self._backends.listings
        try:
            return ListingPage(listings=await store.list_all(ordered=True))
        except OrderingUnavailableError:
            log.warning("listing order by created_at unavailable, falling back to unsorted listings")
        except StoreError as e:
            raise PersistenceError("Could not fetch listings.") from e

        try:
            return ListingPage(listings=await store.list_all(ordered=False), degraded_ordering=True)
        except StoreError as e:
            raise PersistenceError("Could not fetch listings.") from e

    async def browse(
        self,
        category: str | None = None,
        location: str | None = None,
        search: str | None = None,
    ) -> ListingPage:
        page = await self.list()
        return ListingPage(
            listings=filter_listings(page.listings, category, location, search),
            degraded_ordering=page.degraded_ordering,
        )

    async def details(self, listing_id: str) -> ListingDetails:
        self._backends.require("listings")
        try:
            listing = await self._backends.listings.get(listing_id)
        except StoreError as e:
            raise PersistenceError("Failed to fetch listing details.") from e
        if listing is None:
            raise NotFoundError("Listing not found.")

        author = None
        if self._backends.profiles is not None and listing.author_id:
            try:
                author = await self._backends.profiles.get(listing.author_id)
            except StoreError as e:
                raise PersistenceError("Failed to fetch listing details.") from e
        return ListingDetails(listing=listing, author=author)

    async def mine(self, credential: str | None) -> list[ListingRecord]:
        self._backends.require("identity", "listings")
        uid = await self._backends.identity.verify(credential)
        try:
            listings = await self._backends.listings.query_by_author(uid)
        except StoreError as e:
            raise PersistenceError("Could not fetch your listings.") from e
        return sorted(listings, key=lambda r: r.created_at, reverse=True)

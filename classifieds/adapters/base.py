from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Protocol, runtime_checkable


LISTING_CATEGORIES: tuple[str, ...] = (
    "Electronics",
    "Services",
    "Housing",
    "Events",
    "For Sale",
    "Pets & Animals",
    "House & Garden",
    "Clothes",
    "Collectibles & Art",
    "Books, Movies & Music",
    "Vehicles",
    "Sports & Outdoors",
    "Toys",
    "Hobbies",
    "Baby & Kids",
    "Health & Beauty",
    "Other",
)

MIN_IMAGES = 1
MAX_IMAGES = 5
MAX_TAGS = 10


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes submitted with a create/update, not yet hosted."""
    data: bytes
    mime_type: str


@dataclass
class ListingInput:
    """
    Caller-editable listing fields.

    There is no author field: the author always comes from the
    verified credential. `from_mapping` drops any key it does not know,
    including authorId/author_id.
    """
    title: str = ""
    description: str = ""
    price: float | None = None
    category: str = ""
    location: str = ""
    tags: list[str] = field(default_factory=list)
    image_urls: list[str] = field(default_factory=list)
    image_hint: str | None = None
    suggest_tags: bool = False

    _ALIASES = {
        "imageUrls": "image_urls",
        "imageHint": "image_hint",
        "suggestTags": "suggest_tags",
    }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ListingInput":
        known = {f for f in cls.__dataclass_fields__ if not f.startswith("_")}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            key = cls._ALIASES.get(key, key)
            if key in known:
                kwargs[key] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class ListingRecord:
    id: str
    author_id: str
    title: str
    description: str
    price: float | None
    category: str
    location: str
    tags: list[str]
    image_urls: list[str]
    image_hint: str
    created_at: datetime
    updated_at: datetime | None = None


@dataclass(frozen=True)
class IdentityRecord:
    uid: str
    email: str
    display_name: str | None = None


@dataclass(frozen=True)
class UserProfile:
    id: str
    email: str
    name: str | None = None
    location: str | None = None
    phone_number: str | None = None


@runtime_checkable
class IdentityVerifier(Protocol):
    async def verify(self, credential: str | None) -> str:
        """
        Return the verified uid for a bearer credential.
        Raises AuthenticationError when it is absent, malformed, expired or revoked.
        """
        ...

    async def lookup(self, uid: str) -> IdentityRecord | None:
        ...


@runtime_checkable
class ListingStore(Protocol):
    """
    Document access to listings. Raises StoreError on backend failure and
    OrderingUnavailableError when list_all(ordered=True) cannot be satisfied.
    """

    async def get(self, listing_id: str) -> ListingRecord | None:
        ...

    async def query_by_author(self, author_id: str) -> list[ListingRecord]:
        ...

    async def add(self, fields: dict[str, Any]) -> str:
        ...

    async def update(self, listing_id: str, fields: dict[str, Any]) -> None:
        ...

    async def delete(self, listing_id: str) -> None:
        ...

    async def list_all(self, *, ordered: bool = True) -> list[ListingRecord]:
        """ordered=True means created_at descending."""
        ...


@runtime_checkable
class ProfileStore(Protocol):
    async def get(self, uid: str) -> UserProfile | None:
        ...

    async def upsert(self, uid: str, fields: dict[str, Any]) -> UserProfile:
        """Merge semantics: only keys present in `fields` are written."""
        ...


@runtime_checkable
class BlobStore(Protocol):
    async def upload(self, path_hint: str, data: bytes, mime_type: str) -> str:
        """Store bytes under a path derived from path_hint; return a fetchable URL."""
        ...

    async def delete(self, url: str) -> None:
        """Idempotent: an already missing blob is not an error."""
        ...

    def key_of(self, url: str) -> str | None:
        """Storage key behind a URL this store issued, None for any other URL."""
        ...


@runtime_checkable
class TagSuggester(Protocol):
    async def suggest(self, title: str, description: str) -> list[str]:
        ...


@runtime_checkable
class ImageGenerator(Protocol):
    async def generate(self, title: str) -> str:
        """Return an image URL or data URI for the given title."""
        ...

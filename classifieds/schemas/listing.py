from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from classifieds.adapters.base import (
    LISTING_CATEGORIES,
    MAX_IMAGES,
    MAX_TAGS,
    ImagePayload,
    ListingInput,
    ListingRecord,
)
from classifieds.schemas.profile import ProfileOut

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)


def decode_data_uri(uri: str) -> ImagePayload:
    m = _DATA_URI_RE.match(uri.strip())
    if not m:
        raise ValueError("expected a data:<mime>;base64,<data> URI")
    try:
        data = base64.b64decode(m.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("image data is not valid base64") from e
    return ImagePayload(data=data, mime_type=m.group("mime").lower())


class ListingWrite(BaseModel):
    """
    Body of POST /listings and PUT /listings/{id}.

    image_urls: already hosted images to keep (on update: a subset of the
    listing's current images). new_images: data URIs to upload.
    Unknown keys (authorId included) are ignored.
    """
    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=5, max_length=100)
    description: str = Field(min_length=20, max_length=5000)
    price: float | None = Field(default=None, ge=0)
    category: str
    location: str = Field(default="", max_length=200)
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS)
    image_urls: list[str] = Field(default_factory=list, max_length=MAX_IMAGES)
    new_images: list[str] = Field(default_factory=list, max_length=MAX_IMAGES)
    image_hint: str | None = Field(default=None, max_length=200)
    suggest_tags: bool = False

    @field_validator("category")
    @classmethod
    def known_category(cls, v: str) -> str:
        if v not in LISTING_CATEGORIES:
            raise ValueError(f"category must be one of: {', '.join(LISTING_CATEGORIES)}")
        return v

    @field_validator("new_images")
    @classmethod
    def valid_data_uris(cls, v: list[str]) -> list[str]:
        for uri in v:
            decode_data_uri(uri)
        return v

    def to_input(self) -> ListingInput:
        return ListingInput(
            title=self.title,
            description=self.description,
            price=self.price,
            category=self.category,
            location=self.location,
            tags=list(self.tags),
            image_urls=list(self.image_urls),
            image_hint=self.image_hint,
            suggest_tags=self.suggest_tags,
        )

    def payloads(self) -> list[ImagePayload]:
        return [decode_data_uri(uri) for uri in self.new_images]


class ListingOut(BaseModel):
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
    updated_at: datetime | None

    @classmethod
    def from_record(cls, r: ListingRecord) -> "ListingOut":
        return cls(
            id=r.id,
            author_id=r.author_id,
            title=r.title,
            description=r.description,
            price=r.price,
            category=r.category,
            location=r.location,
            tags=list(r.tags),
            image_urls=list(r.image_urls),
            image_hint=r.image_hint,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )


class ListingPageOut(BaseModel):
    listings: list[ListingOut]
    degraded_ordering: bool = False


class ListingDetailsOut(ListingOut):
    author: ProfileOut | None = None

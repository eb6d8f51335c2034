from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from classifieds.adapters.base import (
    LISTING_CATEGORIES,
    MAX_IMAGES,
    MAX_TAGS,
    MIN_IMAGES,
    ImagePayload,
    ListingInput,
    ListingRecord,
)
from classifieds.adapters.registry import Backends
from classifieds.core.errors import (
    AdapterWarning,
    AuthorizationError,
    BlobNotFoundError,
    NotFoundError,
    PersistenceError,
    StoreError,
    ValidationError,
)

log = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def image_prefix(author_id: str) -> str:
    """Blob key prefix for every image uploaded on behalf of author_id."""
    return f"listings/{author_id}/"


def _dedupe(items: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


@dataclass(frozen=True)
class ImagePlan:
    kept: list[str]
    to_delete: list[str]


def reconcile_images(existing: Sequence[str], submitted: Sequence[str]) -> ImagePlan:
    """
    Split an existing image set against the URLs the caller kept.

    `submitted` may only name URLs already on the listing; new images arrive
    as payloads and are appended after upload. kept and to_delete partition
    `existing`.
    """
    existing_set = set(existing)
    unknown = [u for u in submitted if u not in existing_set]
    if unknown:
        raise ValidationError(
            "Image URLs must belong to the listing; upload new images as files.",
            details=[{"image_url": u} for u in unknown],
        )
    kept = _dedupe(submitted)
    kept_set = set(kept)
    return ImagePlan(kept=kept, to_delete=[u for u in _dedupe(existing) if u not in kept_set])


def _clean_tags(tags: Sequence[Any]) -> list[str]:
    cleaned = _dedupe([t.strip() for t in tags if isinstance(t, str) and t.strip()])
    if len(cleaned) > MAX_TAGS:
        raise ValidationError(f"A listing can have at most {MAX_TAGS} tags.")
    return cleaned


class ListingLifecycle:
    """
    Create / update / delete listings on behalf of a verified caller.

    Every operation verifies the credential first, then loads and authorizes
    against Listing.author_id, then validates, and only then touches the blob
    store or the listing store. Multi-step writes run as a small saga: blobs
    uploaded by a failed attempt are deleted again (best effort) and the
    listing document is always the last write.
    """

    def __init__(self, backends: Backends, *, clock: Callable[[], datetime] = utcnow):
        self._backends = backends
        self._clock = clock

    # --- public operations ---

    async def create(
        self,
        data: ListingInput,
        credential: str | None,
        images: Sequence[ImagePayload] = (),
    ) -> str:
        self._backends.require("identity", "listings")
        author_id = await self._backends.identity.verify(credential)

        fields = self._clean_fields(data)
        hosted = _dedupe([u for u in data.image_urls if isinstance(u, str) and u.strip()])
        self._check_hosted(author_id, hosted)
        self._check_images(len(hosted), images)
        if images:
            self._backends.require("blobs")

        fields["tags"] = await self._with_suggested_tags(fields, enabled=data.suggest_tags)

        uploaded = await self._upload_all(author_id, images)

        record = {
            **fields,
            "author_id": author_id,
            "image_urls": hosted + uploaded,
            "created_at": self._clock(),
        }
        try:
            listing_id = await self._backends.listings.add(record)
        except StoreError as e:
            log.exception("create failed writing listing for %s", author_id)
            await self._compensate(author_id, uploaded)
            raise PersistenceError("Failed to create post.") from e

        log.info("listing %s created by %s with %d images", listing_id, author_id, len(record["image_urls"]))
        return listing_id

    async def update(
        self,
        listing_id: str,
        data: ListingInput,
        credential: str | None,
        new_images: Sequence[ImagePayload] = (),
    ) -> None:
        self._backends.require("identity", "listings")
        uid = await self._backends.identity.verify(credential)

        existing = await self._load(listing_id)
        self._authorize(existing, uid, action="update")

        fields = self._clean_fields(data)
        plan = reconcile_images(existing.image_urls, data.image_urls)
        self._check_images(len(plan.kept), new_images)
        if new_images or plan.to_delete:
            self._backends.require("blobs")

        fields["tags"] = await self._with_suggested_tags(fields, enabled=data.suggest_tags)

        added = await self._upload_all(uid, new_images)

        try:
            await self._backends.listings.update(listing_id, {
                **fields,
                "image_urls": plan.kept + added,
                "updated_at": self._clock(),
            })
        except StoreError as e:
            log.exception("update failed writing listing %s", listing_id)
            await self._compensate(uid, added)
            raise PersistenceError("Failed to update post in the database. Please try again.") from e

        for url in plan.to_delete:
            await self._best_effort_delete(url, owner=uid, reason=f"removed from listing {listing_id}")

        log.info(
            "listing %s updated by %s (kept=%d added=%d removed=%d)",
            listing_id, uid, len(plan.kept), len(added), len(plan.to_delete),
        )

    async def delete(self, listing_id: str, credential: str | None) -> None:
        self._backends.require("identity", "listings")
        uid = await self._backends.identity.verify(credential)

        existing = await self._load(listing_id)
        self._authorize(existing, uid, action="delete")

        if existing.image_urls:
            self._backends.require("blobs")
        for url in existing.image_urls:
            await self._best_effort_delete(url, owner=uid, reason=f"listing {listing_id} deleted")

        try:
            await self._backends.listings.delete(listing_id)
        except StoreError as e:
            log.exception("delete failed removing listing %s", listing_id)
            raise PersistenceError("An unexpected error occurred while deleting the listing.") from e

        log.info("listing %s deleted by %s", listing_id, uid)

    async def get_for_edit(self, listing_id: str, credential: str | None) -> ListingRecord:
        self._backends.require("identity", "listings")
        uid = await self._backends.identity.verify(credential)
        existing = await self._load(listing_id)
        self._authorize(existing, uid, action="edit")
        return existing

    # --- steps ---

    async def _load(self, listing_id: str) -> ListingRecord:
        try:
            existing = await self._backends.listings.get(listing_id)
        except StoreError as e:
            raise PersistenceError("Failed to load listing.") from e
        if existing is None:
            raise NotFoundError("Listing not found.")
        return existing

    def _authorize(self, existing: ListingRecord, uid: str, *, action: str) -> None:
        if existing.author_id != uid:
            log.info("denied %s of listing %s to %s", action, existing.id, uid)
            raise AuthorizationError(f"You are not authorized to {action} this listing.")

    def _clean_fields(self, data: ListingInput) -> dict[str, Any]:
        title = (data.title or "").strip()
        description = (data.description or "").strip()
        if not title:
            raise ValidationError("Title is required.")
        if not description:
            raise ValidationError("Description is required.")
        if data.category not in LISTING_CATEGORIES:
            raise ValidationError(f"Unknown category: {data.category!r}")

        price = data.price
        if price is not None:
            try:
                price = float(price)
            except (TypeError, ValueError) as e:
                raise ValidationError("Price must be a number.") from e
            if math.isnan(price) or price < 0:
                raise ValidationError("Price must be zero or positive.")

        return {
            "title": title,
            "description": description,
            "price": price,
            "category": data.category,
            "location": (data.location or "").strip(),
            "tags": _clean_tags(data.tags or []),
            "image_hint": (data.image_hint or "").strip() or title,
        }

    def _check_hosted(self, author_id: str, urls: Sequence[str]) -> None:
        """Hosted URLs served by our blob store must be the caller's own uploads."""
        blobs = self._backends.blobs
        if blobs is None:
            return
        prefix = image_prefix(author_id)
        foreign = []
        for url in urls:
            key = blobs.key_of(url)
            if key is not None and not key.startswith(prefix):
                foreign.append(url)
        if foreign:
            raise ValidationError(
                "Images uploaded for another user's listing cannot be reused.",
                details=[{"image_url": u} for u in foreign],
            )

    def _check_images(self, hosted_count: int, payloads: Sequence[ImagePayload]) -> None:
        total = hosted_count + len(payloads)
        if not MIN_IMAGES <= total <= MAX_IMAGES:
            raise ValidationError(f"A listing needs between {MIN_IMAGES} and {MAX_IMAGES} images, got {total}.")
        for i, p in enumerate(payloads):
            if not p.data:
                raise ValidationError(f"Image {i + 1} is empty.")
            if not p.mime_type.startswith("image/"):
                raise ValidationError(f"Image {i + 1} is not an image ({p.mime_type}).")
            if len(p.data) > self._backends.max_image_bytes:
                raise ValidationError(f"Image {i + 1} exceeds {self._backends.max_image_bytes} bytes.")

    async def _with_suggested_tags(self, fields: dict[str, Any], *, enabled: bool) -> list[str]:
        tags = fields["tags"]
        if not enabled:
            return tags
        if self._backends.tagger is None:
            log.info("tag suggestion requested but no tagger is configured")
            return tags
        try:
            suggested = await self._backends.tagger.suggest(fields["title"], fields["description"])
        except Exception as e:
            warning = AdapterWarning(f"tag suggestion failed: {e}")
            log.warning("%s; keeping %d submitted tags", warning.message, len(tags))
            return tags

        present = {t.lower() for t in tags}
        extra = [t for t in suggested if t.lower() not in present]
        return _dedupe(tags + extra)[:MAX_TAGS]

    async def _upload_all(self, author_id: str, images: Sequence[ImagePayload]) -> list[str]:
        if not images:
            return []
        stamp = int(self._clock().timestamp() * 1000)
        results = await asyncio.gather(
            *(
                self._backends.blobs.upload(f"{image_prefix(author_id)}{stamp}-{i}", p.data, p.mime_type)
                for i, p in enumerate(images)
            ),
            return_exceptions=True,
        )
        uploaded = [r for r in results if isinstance(r, str)]
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            log.error("%d of %d image uploads failed for %s", len(failures), len(images), author_id)
            await self._compensate(author_id, uploaded)
            raise PersistenceError("Failed to upload images.") from failures[0]
        return uploaded

    async def _compensate(self, owner: str, urls: Sequence[str]) -> None:
        for url in urls:
            await self._best_effort_delete(url, owner=owner, reason="rolling back failed write")

    async def _best_effort_delete(self, url: str, *, owner: str, reason: str) -> AdapterWarning | None:
        key = self._backends.blobs.key_of(url)
        if key is None:
            log.debug("image %s is not hosted by the blob store, nothing to delete (%s)", url, reason)
            return None
        if not key.startswith(image_prefix(owner)):
            # another user's upload referenced by this listing
            warning = AdapterWarning(f"refusing to delete image {url} not uploaded by {owner}")
            log.warning("%s (%s)", warning.message, reason)
            return warning
        try:
            await self._backends.blobs.delete(url)
        except BlobNotFoundError:
            log.debug("image %s already gone (%s)", url, reason)
            return None
        except Exception as e:
            warning = AdapterWarning(f"could not delete image {url}: {e}")
            log.warning("%s (%s)", warning.message, reason)
            return warning
        return None

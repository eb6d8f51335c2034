from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import timedelta
from typing import Any

from classifieds.adapters.base import (
    BlobStore,
    IdentityVerifier,
    ImageGenerator,
    ListingStore,
    ProfileStore,
    TagSuggester,
)
from classifieds.core.config import Settings
from classifieds.core.errors import ConfigurationError

log = logging.getLogger(__name__)


@dataclass
class Backends:
    """
    Explicitly constructed handles to the external collaborators.

    A field left as None is "not configured"; services call require() with the
    backends an operation needs and fail fast with ConfigurationError.
    """
    identity: IdentityVerifier | None = None
    accounts: Any | None = None  # SqlIdentityProvider (sign up / sign in / sign out)
    listings: ListingStore | None = None
    profiles: ProfileStore | None = None
    blobs: BlobStore | None = None
    tagger: TagSuggester | None = None
    images: ImageGenerator | None = None
    max_image_bytes: int = 5 * 1024 * 1024

    _closers: tuple = ()

    def require(self, *names: str) -> None:
        missing = [n for n in names if getattr(self, n) is None]
        if missing:
            raise ConfigurationError(
                "Server is not configured correctly.",
                details=[{"missing_backend": n} for n in missing],
            )

    def configured(self) -> dict[str, bool]:
        return {
            f.name: getattr(self, f.name) is not None
            for f in fields(self)
            if not f.name.startswith("_") and f.name != "max_image_bytes"
        }

    async def aclose(self) -> None:
        for closer in self._closers:
            await closer()


def build_backends(settings: Settings, *, sessions=None) -> Backends:
    """
    Build concrete adapters from settings.

    `sessions` is an async_sessionmaker; when None and no database_url is set,
    the identity/listing/profile backends stay unconfigured.
    """
    # imported here so the protocol module stays free of SQLAlchemy/httpx
    from classifieds.services.auth import SqlIdentityProvider
    from classifieds.services.http_client import GenerativeApiClient
    from classifieds.services.image_generation import GeminiImageGenerator
    from classifieds.services.listing_store import SqlListingStore
    from classifieds.services.profiles import SqlProfileStore
    from classifieds.services.storage import LocalBlobStore
    from classifieds.services.tagging import GeminiTagSuggester

    backends = Backends(max_image_bytes=settings.max_image_bytes)

    if sessions is None and settings.database_url:
        from classifieds.core.db import SessionLocal
        sessions = SessionLocal

    if sessions is not None:
        provider = SqlIdentityProvider(
            sessions,
            pepper=settings.token_pepper.get_secret_value(),
            token_ttl=timedelta(minutes=settings.access_token_ttl_minutes),
        )
        backends.identity = provider
        backends.accounts = provider
        backends.listings = SqlListingStore(sessions)
        backends.profiles = SqlProfileStore(sessions)
    else:
        log.warning("database_url not set: identity, listing and profile backends are not configured")

    if settings.media_root:
        backends.blobs = LocalBlobStore(settings.media_root, public_base_url=settings.media_url)

    if settings.gemini_api_key is not None and settings.gemini_api_key.get_secret_value():
        client = GenerativeApiClient(
            api_key=settings.gemini_api_key.get_secret_value(),
            base_url=settings.gemini_base_url,
            timeout_seconds=settings.ai_timeout_seconds,
        )
        backends.tagger = GeminiTagSuggester(client=client, model=settings.gemini_text_model)
        backends.images = GeminiImageGenerator(
            client=client,
            model=settings.gemini_image_model,
            placeholder_url=settings.placeholder_image_url,
        )
        backends._closers = (client.aclose,)
    else:
        log.info("gemini_api_key not set: tag suggestion and image generation are disabled")

    return backends

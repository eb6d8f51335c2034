import os
import tempfile
from datetime import timedelta

# Settings are read at import time; point them at throwaway resources first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TELEMETRY_ENABLED", "false")
os.environ.setdefault("MEDIA_ROOT", tempfile.mkdtemp(prefix="classifieds-media-"))
os.environ.setdefault("TOKEN_PEPPER", "test-pepper")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

import classifieds.models  # noqa: F401
from classifieds.adapters.registry import Backends
from classifieds.api.v1.deps import get_backends
from classifieds.core.db import make_sessionmaker
from classifieds.main import app
from classifieds.models.base import Base
from classifieds.services.auth import SqlIdentityProvider
from classifieds.services.listing_store import SqlListingStore
from classifieds.services.profiles import SqlProfileStore
from classifieds.services.storage import LocalBlobStore

from fakes import FakeBlobStore, FakeIdentity, FakeListingStore, FakeProfileStore

TEST_PEPPER = "test-pepper"


def _test_db_url() -> str:
    return os.getenv("DATABASE_URL_TEST", "sqlite+aiosqlite://")


@pytest_asyncio.fixture
async def async_engine():
    url = _test_db_url()
    if url.startswith("sqlite"):
        # one shared in-memory database for every session of the test
        engine = create_async_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
    else:
        engine = create_async_engine(url, pool_pre_ping=True)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def sessions(async_engine):
    return make_sessionmaker(async_engine)


@pytest.fixture
def identity_provider(sessions):
    return SqlIdentityProvider(sessions, pepper=TEST_PEPPER, token_ttl=timedelta(hours=1))


@pytest.fixture
def sql_backends(sessions, identity_provider, tmp_path):
    """Backends wired to the test database and a temp media dir; no AI backends."""
    return Backends(
        identity=identity_provider,
        accounts=identity_provider,
        listings=SqlListingStore(sessions),
        profiles=SqlProfileStore(sessions),
        blobs=LocalBlobStore(str(tmp_path / "media"), public_base_url="/media"),
    )


@pytest.fixture
def fake_backends():
    return Backends(
        identity=FakeIdentity(tokens={"tok-u1": "u1", "tok-u2": "u2"}),
        listings=FakeListingStore(),
        profiles=FakeProfileStore(),
        blobs=FakeBlobStore(),
    )


@pytest_asyncio.fixture
async def client(sql_backends):
    """
    HTTP client that uses the test backends via dependency override.
    """
    app.dependency_overrides[get_backends] = lambda: sql_backends

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def sign_up_and_in(identity_provider):
    """Create an account and return (uid, bearer token)."""
    async def _make(email: str, password: str = "secret123", display_name: str | None = None):
        identity = await identity_provider.sign_up(email=email, password=password, display_name=display_name)
        issued = await identity_provider.sign_in(email=email, password=password)
        return identity.uid, issued.token

    return _make

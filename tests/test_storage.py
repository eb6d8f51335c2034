import pytest

from classifieds.core.errors import BlobNotFoundError, BlobStoreError
from classifieds.services.storage import LocalBlobStore

FOREIGN_URLS = [
    "https://cdn.example.com/elsewhere.png",
    "/media/../../etc/passwd",
    "s3://bucket/key.png",
]


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStore(str(tmp_path / "media"), public_base_url="/media")


async def test_upload_returns_servable_url(blobs, tmp_path):
    url = await blobs.upload("listings/u1/1700000000000-0", b"png-bytes", "image/png")

    assert url.startswith("/media/listings/u1/1700000000000-0-")
    assert url.endswith(".png")
    assert await blobs.read(url) == b"png-bytes"
    assert blobs.resolve_path(url).is_relative_to((tmp_path / "media").resolve())


async def test_same_hint_gives_distinct_urls(blobs):
    a = await blobs.upload("listings/u1/x", b"1", "image/jpeg")
    b = await blobs.upload("listings/u1/x", b"2", "image/jpeg")
    assert a != b


async def test_delete_is_idempotent(blobs):
    url = await blobs.upload("listings/u1/x", b"1", "image/png")

    await blobs.delete(url)
    await blobs.delete(url)

    with pytest.raises(BlobNotFoundError):
        await blobs.read(url)


@pytest.mark.parametrize("url", FOREIGN_URLS)
async def test_foreign_urls_are_rejected(blobs, url):
    with pytest.raises(BlobStoreError):
        await blobs.delete(url)


async def test_key_of_own_urls(blobs):
    url = await blobs.upload("listings/u1/x", b"1", "image/png")

    assert blobs.key_of(url).startswith("listings/u1/x-")
    assert blobs.key_of(f"http://testserver{url}") == blobs.key_of(url)


@pytest.mark.parametrize("url", FOREIGN_URLS)
def test_key_of_foreign_urls_is_none(blobs, url):
    assert blobs.key_of(url) is None

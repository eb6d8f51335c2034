import base64

import pytest

from fakes import FakeTagger

PNG_URI = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\nfake image").decode("ascii")


def sofa_body(**overrides):
    body = {
        "title": "Vintage Leather Sofa",
        "description": "Brown three-seater leather sofa in good condition, pickup only.",
        "price": 250,
        "category": "For Sale",
        "location": "Springfield",
        "tags": ["furniture"],
        "new_images": [PNG_URI],
    }
    body.update(overrides)
    return body


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_create_browse_and_details(client, sign_up_and_in):
    uid, token = await sign_up_and_in("ann@example.com", display_name="Ann")

    r = await client.post("/v1/listings", json=sofa_body(authorId="someone-else"), headers=bearer(token))
    assert r.status_code == 201, r.text
    listing_id = r.json()["id"]

    r = await client.get("/v1/listings", params={"category": "For Sale", "q": "sofa"})
    assert r.status_code == 200
    page = r.json()
    assert [item["id"] for item in page["listings"]] == [listing_id]
    assert page["degraded_ordering"] is False

    # profile is created lazily on first read
    r = await client.get("/v1/me/profile", headers=bearer(token))
    assert r.json()["name"] == "Ann"

    r = await client.get(f"/v1/listings/{listing_id}")
    assert r.status_code == 200
    details = r.json()
    assert details["author_id"] == uid
    assert details["author"]["email"] == "ann@example.com"
    assert len(details["image_urls"]) == 1
    assert details["image_urls"][0].startswith(f"/media/listings/{uid}/")


@pytest.mark.asyncio
async def test_create_requires_bearer(client):
    r = await client.post("/v1/listings", json=sofa_body())
    assert r.status_code == 401
    assert r.json()["code"] == "authentication_failed"


@pytest.mark.asyncio
async def test_create_without_images_is_rejected(client, sign_up_and_in):
    _, token = await sign_up_and_in("ann@example.com")

    r = await client.post("/v1/listings", json=sofa_body(new_images=[]), headers=bearer(token))

    assert r.status_code == 422
    assert r.json()["code"] == "validation_failed"


@pytest.mark.asyncio
async def test_body_validation(client, sign_up_and_in):
    _, token = await sign_up_and_in("ann@example.com")

    r = await client.post("/v1/listings", json=sofa_body(category="Spaceships"), headers=bearer(token))
    assert r.status_code == 422
    body = r.json()
    assert body["code"] == "validation_failed"
    assert body["details"][0]["loc"] == ["body", "category"]

    r = await client.post("/v1/listings", json=sofa_body(new_images=["not-a-data-uri"]), headers=bearer(token))
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_non_owner_cannot_edit_update_or_delete(client, sign_up_and_in):
    _, owner = await sign_up_and_in("ann@example.com")
    _, intruder = await sign_up_and_in("bob@example.com")
    listing_id = (await client.post("/v1/listings", json=sofa_body(), headers=bearer(owner))).json()["id"]
    before = (await client.get(f"/v1/listings/{listing_id}")).json()

    r = await client.get(f"/v1/listings/{listing_id}/edit", headers=bearer(intruder))
    assert r.status_code == 403

    r = await client.put(
        f"/v1/listings/{listing_id}",
        json=sofa_body(title="Stolen Sofa Listing", image_urls=before["image_urls"], new_images=[]),
        headers=bearer(intruder),
    )
    assert r.status_code == 403
    assert r.json() == {
        "code": "not_authorized",
        "message": "You are not authorized to update this listing.",
        "details": [],
    }

    r = await client.delete(f"/v1/listings/{listing_id}", headers=bearer(intruder))
    assert r.status_code == 403

    after = (await client.get(f"/v1/listings/{listing_id}")).json()
    assert after == before


@pytest.mark.asyncio
async def test_owner_update_and_delete(client, sign_up_and_in, sql_backends):
    _, token = await sign_up_and_in("ann@example.com")
    listing_id = (await client.post(
        "/v1/listings", json=sofa_body(new_images=[PNG_URI, PNG_URI]), headers=bearer(token)
    )).json()["id"]
    current = (await client.get(f"/v1/listings/{listing_id}/edit", headers=bearer(token))).json()
    kept, dropped = current["image_urls"]

    r = await client.put(
        f"/v1/listings/{listing_id}",
        json=sofa_body(price=None, image_urls=[kept], new_images=[PNG_URI]),
        headers=bearer(token),
    )
    assert r.status_code == 200, r.text

    updated = (await client.get(f"/v1/listings/{listing_id}")).json()
    assert updated["price"] is None
    assert updated["image_urls"][0] == kept
    assert dropped not in updated["image_urls"]
    assert len(updated["image_urls"]) == 2
    assert updated["updated_at"] is not None
    assert not sql_backends.blobs.resolve_path(dropped).exists()

    r = await client.delete(f"/v1/listings/{listing_id}", headers=bearer(token))
    assert r.json() == {"status": "deleted", "listing_id": listing_id}
    assert (await client.get(f"/v1/listings/{listing_id}")).status_code == 404
    for url in updated["image_urls"]:
        assert not sql_backends.blobs.resolve_path(url).exists()


@pytest.mark.asyncio
async def test_my_listings(client, sign_up_and_in):
    _, ann = await sign_up_and_in("ann@example.com")
    _, bob = await sign_up_and_in("bob@example.com")
    await client.post("/v1/listings", json=sofa_body(), headers=bearer(ann))
    await client.post("/v1/listings", json=sofa_body(title="Mountain Bike for sale"), headers=bearer(bob))

    r = await client.get("/v1/me/listings", headers=bearer(ann))

    assert [item["title"] for item in r.json()] == ["Vintage Leather Sofa"]


@pytest.mark.asyncio
async def test_profile_update_merges(client, sign_up_and_in):
    _, token = await sign_up_and_in("ann@example.com", display_name="Ann")

    await client.put("/v1/me/profile", json={"location": "Springfield"}, headers=bearer(token))
    r = await client.put("/v1/me/profile", json={"phone_number": "555-0100"}, headers=bearer(token))

    profile = r.json()
    assert profile["location"] == "Springfield"
    assert profile["phone_number"] == "555-0100"
    assert profile["email"] == "ann@example.com"


@pytest.mark.asyncio
async def test_auth_routes(client):
    r = await client.post("/v1/auth/signup", json={"email": "ann@example.com", "password": "secret123"})
    assert r.status_code == 201

    r = await client.post("/v1/auth/signup", json={"email": "ann@example.com", "password": "secret123"})
    assert r.status_code == 409

    r = await client.post("/v1/auth/signin", json={"email": "ann@example.com", "password": "nope-nope"})
    assert r.status_code == 401

    r = await client.post("/v1/auth/signin", json={"email": "ann@example.com", "password": "secret123"})
    token = r.json()["access_token"]
    assert r.json()["token_type"] == "bearer"

    assert (await client.get("/v1/me/profile", headers=bearer(token))).status_code == 200
    assert (await client.post("/v1/auth/signout", headers=bearer(token))).status_code == 204
    assert (await client.get("/v1/me/profile", headers=bearer(token))).status_code == 401


@pytest.mark.asyncio
async def test_suggest_tags_route(client, sign_up_and_in, sql_backends):
    _, token = await sign_up_and_in("ann@example.com")
    body = {"title": "Vintage Leather Sofa", "description": "Brown leather sofa."}

    r = await client.post("/v1/ai/suggest-tags", json=body, headers=bearer(token))
    assert r.status_code == 503

    sql_backends.tagger = FakeTagger(tags=["furniture", "home"])
    r = await client.post("/v1/ai/suggest-tags", json=body, headers=bearer(token))
    assert r.json() == {"tags": ["furniture", "home"]}

    sql_backends.tagger = FakeTagger(error=RuntimeError("quota exceeded"))
    r = await client.post("/v1/ai/suggest-tags", json=body, headers=bearer(token))
    assert r.json() == {"tags": []}


class StubImages:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    async def generate(self, title):
        if self.error is not None:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_generate_image_route(client, sign_up_and_in, sql_backends):
    _, token = await sign_up_and_in("ann@example.com")
    body = {"title": "Vintage Leather Sofa"}

    r = await client.post("/v1/ai/generate-image", json=body)
    assert r.status_code == 503

    sql_backends.images = StubImages(result="data:image/png;base64,QUJD")
    assert (await client.post("/v1/ai/generate-image", json=body)).status_code == 401

    r = await client.post("/v1/ai/generate-image", json=body, headers=bearer(token))
    assert r.json() == {"image_url": "data:image/png;base64,QUJD"}

    sql_backends.images = StubImages(error=RuntimeError("quota exceeded"))
    r = await client.post("/v1/ai/generate-image", json=body, headers=bearer(token))
    assert r.json()["image_url"].startswith("https://placehold.co/")


@pytest.mark.asyncio
async def test_other_users_uploads_cannot_be_reused_or_deleted(client, sign_up_and_in, sql_backends):
    _, ann = await sign_up_and_in("ann@example.com")
    bob_uid, bob = await sign_up_and_in("bob@example.com")
    ann_listing = (await client.post("/v1/listings", json=sofa_body(), headers=bearer(ann))).json()["id"]
    ann_url = (await client.get(f"/v1/listings/{ann_listing}")).json()["image_urls"][0]

    r = await client.post(
        "/v1/listings", json=sofa_body(image_urls=[ann_url], new_images=[]), headers=bearer(bob)
    )
    assert r.status_code == 422
    assert r.json()["details"] == [{"image_url": ann_url}]

    # a row that points at ann's image without going through create
    bob_listing = (await client.post("/v1/listings", json=sofa_body(), headers=bearer(bob))).json()["id"]
    bob_urls = (await client.get(f"/v1/listings/{bob_listing}")).json()["image_urls"]
    await sql_backends.listings.update(bob_listing, {"image_urls": [ann_url, *bob_urls]})

    r = await client.delete(f"/v1/listings/{bob_listing}", headers=bearer(bob))
    assert r.status_code == 200

    assert sql_backends.blobs.resolve_path(ann_url).exists()
    assert not sql_backends.blobs.resolve_path(bob_urls[0]).exists()
    assert (await client.get(f"/v1/listings/{ann_listing}")).json()["image_urls"] == [ann_url]
    assert bob_uid in bob_urls[0]


@pytest.mark.asyncio
async def test_missing_bearer_wins_over_invalid_body(client):
    r = await client.post("/v1/listings", json={"title": "x"})
    assert r.status_code == 401
    assert r.json()["code"] == "authentication_failed"

    r = await client.put("/v1/listings/lst_any", json={"title": "x"})
    assert r.status_code == 401

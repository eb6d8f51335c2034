from fastapi import APIRouter, Depends, Query

from classifieds.api.v1.deps import get_lifecycle, get_listing_query
from classifieds.schemas.common import IdResponse
from classifieds.schemas.listing import ListingDetailsOut, ListingOut, ListingPageOut, ListingWrite
from classifieds.schemas.profile import ProfileOut
from classifieds.services.auth import get_credential, require_credential
from classifieds.services.listing_query import ListingQuery
from classifieds.services.listings import ListingLifecycle

router = APIRouter(prefix="/listings")


@router.get("", response_model=ListingPageOut)
async def browse_listings(
    category: str = Query(default="all"),
    location: str = Query(default=""),
    q: str = Query(default=""),
    query: ListingQuery = Depends(get_listing_query),
) -> ListingPageOut:
    page = await query.browse(category=category, location=location, search=q)
    return ListingPageOut(
        listings=[ListingOut.from_record(r) for r in page.listings],
        degraded_ordering=page.degraded_ordering,
    )


@router.get("/{listing_id}", response_model=ListingDetailsOut)
async def listing_details(listing_id: str, query: ListingQuery = Depends(get_listing_query)) -> ListingDetailsOut:
    details = await query.details(listing_id)
    out = ListingOut.from_record(details.listing).model_dump()
    author = ProfileOut.from_profile(details.author) if details.author else None
    return ListingDetailsOut(**out, author=author)


@router.post("", response_model=IdResponse, status_code=201)
async def create_listing(
    payload: ListingWrite,
    credential: str = Depends(require_credential),
    lifecycle: ListingLifecycle = Depends(get_lifecycle),
) -> IdResponse:
    listing_id = await lifecycle.create(payload.to_input(), credential, images=payload.payloads())
    return IdResponse(id=listing_id)


@router.get("/{listing_id}/edit", response_model=ListingOut)
async def listing_for_edit(
    listing_id: str,
    credential: str | None = Depends(get_credential),
    lifecycle: ListingLifecycle = Depends(get_lifecycle),
) -> ListingOut:
    return ListingOut.from_record(await lifecycle.get_for_edit(listing_id, credential))


@router.put("/{listing_id}", response_model=IdResponse)
async def update_listing(
    listing_id: str,
    payload: ListingWrite,
    credential: str = Depends(require_credential),
    lifecycle: ListingLifecycle = Depends(get_lifecycle),
) -> IdResponse:
    await lifecycle.update(listing_id, payload.to_input(), credential, new_images=payload.payloads())
    return IdResponse(id=listing_id)


@router.delete("/{listing_id}")
async def delete_listing(
    listing_id: str,
    credential: str | None = Depends(get_credential),
    lifecycle: ListingLifecycle = Depends(get_lifecycle),
) -> dict:
    await lifecycle.delete(listing_id, credential)
    return {"status": "deleted", "listing_id": listing_id}

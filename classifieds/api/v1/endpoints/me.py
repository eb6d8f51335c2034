from fastapi import APIRouter, Depends

from classifieds.api.v1.deps import get_listing_query, get_profile_service
from classifieds.schemas.listing import ListingOut
from classifieds.schemas.profile import ProfileOut, ProfileUpdate
from classifieds.services.auth import get_credential
from classifieds.services.listing_query import ListingQuery
from classifieds.services.profiles import ProfileService

router = APIRouter(prefix="/me")


@router.get("/listings", response_model=list[ListingOut])
async def my_listings(
    credential: str | None = Depends(get_credential),
    query: ListingQuery = Depends(get_listing_query),
) -> list[ListingOut]:
    return [ListingOut.from_record(r) for r in await query.mine(credential)]


@router.get("/profile", response_model=ProfileOut)
async def my_profile(
    credential: str | None = Depends(get_credential),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileOut:
    return ProfileOut.from_profile(await profiles.get_profile(credential))


@router.put("/profile", response_model=ProfileOut)
async def update_my_profile(
    payload: ProfileUpdate,
    credential: str | None = Depends(get_credential),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileOut:
    changes = payload.model_dump(exclude_unset=True)
    return ProfileOut.from_profile(await profiles.update_profile(credential, changes))

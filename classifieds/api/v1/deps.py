from fastapi import Depends, Request

from classifieds.adapters.registry import Backends
from classifieds.services.listing_query import ListingQuery
from classifieds.services.listings import ListingLifecycle
from classifieds.services.profiles import ProfileService


def get_backends(request: Request) -> Backends:
    return request.app.state.backends


def get_lifecycle(backends: Backends = Depends(get_backends)) -> ListingLifecycle:
    return ListingLifecycle(backends)


def get_listing_query(backends: Backends = Depends(get_backends)) -> ListingQuery:
    return ListingQuery(backends)


def get_profile_service(backends: Backends = Depends(get_backends)) -> ProfileService:
    return ProfileService(backends)

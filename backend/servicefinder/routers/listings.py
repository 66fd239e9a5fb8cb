from typing import Optional

from fastapi import APIRouter, Depends, Query

from servicefinder.auth import require_authenticated_user, require_provider
from servicefinder.http_errors import raise_store_http_error
from servicefinder.models import (
    Listing,
    ListingCreateResponse,
    ListingPayload,
    ProviderListingsResponse,
    SearchResponse,
    SeedResponse,
    UserPublic,
)
from servicefinder.services.database import StoreError
from servicefinder.services.listing_search import SearchParams
from servicefinder.services.listing_service import listing_service

router = APIRouter(prefix="/api", tags=["listings"])


@router.post("/listings", response_model=ListingCreateResponse, status_code=201)
async def create_listing(payload: ListingPayload, user: UserPublic = Depends(require_provider)):
    try:
        listing_id = await listing_service.create(payload.model_dump(), owner_id=user.id)
    except StoreError as exc:
        raise_store_http_error(exc)
    return ListingCreateResponse(listing_id=listing_id)


# Declared before /listings/{listing_id} so "search" is not read as an id.
@router.get("/listings/search", response_model=SearchResponse)
async def search_listings(
    q: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    city: Optional[str] = Query(default=None),
    zip: Optional[str] = Query(default=None),
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    sort: Optional[str] = Query(default=None),
    min_price: Optional[str] = Query(default=None),
    max_price: Optional[str] = Query(default=None),
):
    params = SearchParams.from_raw(
        q=q,
        category=category,
        city=city,
        zip=zip,
        page=page,
        limit=limit,
        sort=sort,
        min_price=min_price,
        max_price=max_price,
    )
    return await listing_service.search(params)


@router.get("/listings/provider/{provider_id}", response_model=ProviderListingsResponse)
async def provider_listings(provider_id: int, user: UserPublic = Depends(require_authenticated_user)):
    try:
        listings = await listing_service.list_by_provider(
            provider_id,
            caller_id=user.id,
            caller_role=user.role,
        )
    except StoreError as exc:
        raise_store_http_error(exc)
    return ProviderListingsResponse(listings=listings, count=len(listings))


@router.get("/listings/{listing_id}", response_model=Listing)
async def get_listing(listing_id: int):
    try:
        return await listing_service.get(listing_id)
    except StoreError as exc:
        raise_store_http_error(exc)


@router.put("/listings/{listing_id}", response_model=Listing)
async def update_listing(
    listing_id: int,
    payload: ListingPayload,
    user: UserPublic = Depends(require_provider),
):
    try:
        return await listing_service.update(
            listing_id,
            payload.model_dump(exclude_unset=True),
            owner_id=user.id,
        )
    except StoreError as exc:
        raise_store_http_error(exc)


@router.delete("/listings/{listing_id}")
async def delete_listing(listing_id: int, user: UserPublic = Depends(require_provider)):
    try:
        await listing_service.delete(listing_id, owner_id=user.id)
    except StoreError as exc:
        raise_store_http_error(exc)
    return {"status": "deleted", "listing_id": listing_id}


@router.post("/seed-services", response_model=SeedResponse, status_code=201)
async def seed_services(user: UserPublic = Depends(require_provider)):
    try:
        listing_ids = await listing_service.seed_samples(owner_id=user.id)
    except StoreError as exc:
        raise_store_http_error(exc)
    return SeedResponse(created=len(listing_ids), listing_ids=listing_ids)

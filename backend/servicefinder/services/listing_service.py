import logging
import math
from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from servicefinder.models import LISTING_CATEGORIES, Listing, SearchResponse
from servicefinder.services.availability import parse_availability
from servicefinder.services.database import (
    StoreNotFoundError,
    StorePermissionError,
    StoreValidationError,
)
from servicefinder.services.listing_search import ListingSearchEngine, SearchParams, search_engine
from servicefinder.services.listing_store import ListingDraft, ListingStore, listing_store
from servicefinder.services.realtime import RealtimeNotifier, realtime_notifier

logger = logging.getLogger(__name__)

MAX_SERVICE_NAME_LENGTH = 255

SAMPLE_LISTINGS: List[Dict[str, Any]] = [
    {
        "service_name": "Professional House Cleaning",
        "description": (
            "Deep cleaning service for your home. We clean every corner with eco-friendly "
            "products and attention to detail."
        ),
        "category": "Cleaning",
        "price": 85.0,
        "availability": {
            "days": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
            "hours": {"start": "08:00", "end": "17:00"},
        },
        "location_city": "New York",
        "location_zip": "10001",
        "image_url": "https://images.unsplash.com/photo-1558618047-3c8c76ca7d13?w=400",
    },
    {
        "service_name": "Emergency Plumbing Services",
        "description": (
            "24/7 emergency plumbing repairs including leak fixes, pipe installation, and drain "
            "cleaning by licensed professionals."
        ),
        "category": "Plumbing",
        "price": 120.0,
        "availability": {
            "days": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"],
            "hours": {"start": "00:00", "end": "23:59"},
        },
        "location_city": "New York",
        "location_zip": "10002",
        "image_url": "https://images.unsplash.com/photo-1607472586893-edb57bdc0e39?w=400",
    },
]


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def build_listing_draft(fields: Dict[str, Any]) -> ListingDraft:
    """Validate raw listing fields; shared by create and update."""
    service_name = _text(fields.get("service_name"))
    category = _text(fields.get("category"))
    location_city = _text(fields.get("location_city"))
    location_zip = _text(fields.get("location_zip"))
    raw_price = fields.get("price")
    if raw_price is None or (isinstance(raw_price, str) and not raw_price.strip()):
        raw_price = None

    if not service_name or not category or raw_price is None or not location_city or not location_zip:
        raise StoreValidationError("Service name, category, price, city, and ZIP code are required")

    try:
        price = float(raw_price)
    except (TypeError, ValueError):
        raise StoreValidationError("Price must be a valid non-negative number") from None
    if not math.isfinite(price) or price < 0:
        raise StoreValidationError("Price must be a valid non-negative number")

    if len(service_name) > MAX_SERVICE_NAME_LENGTH:
        raise StoreValidationError("Service name cannot exceed 255 characters")
    if category not in LISTING_CATEGORIES:
        raise StoreValidationError("Invalid category. Please select a valid category.")

    image_url = _text(fields.get("image_url")) or None
    return ListingDraft(
        service_name=service_name,
        category=category,
        price=price,
        location_city=location_city,
        location_zip=location_zip,
        description=_text(fields.get("description")),
        availability=parse_availability(fields.get("availability")),
        image_url=image_url,
    )


class ListingService:
    def __init__(
        self,
        store: ListingStore,
        engine: ListingSearchEngine,
        notifier: RealtimeNotifier,
    ) -> None:
        self._store = store
        self._engine = engine
        self._notifier = notifier

    async def create(self, fields: Dict[str, Any], owner_id: int) -> int:
        draft = build_listing_draft(fields)
        listing_id = await run_in_threadpool(self._store.insert, owner_id, draft)
        logger.info("Listing %s created by provider %s", listing_id, owner_id)

        # Separate read-back; the row may already be gone if the owner raced a delete.
        created = await run_in_threadpool(self._store.get, listing_id)
        if created is not None:
            await self._notifier.broadcast_new_listing(created)
        return listing_id

    async def _get_owned(self, listing_id: int, owner_id: int, action: str) -> Listing:
        listing = await run_in_threadpool(self._store.get, listing_id)
        if listing is None:
            raise StoreNotFoundError("Listing not found")
        if listing.provider_id != owner_id:
            raise StorePermissionError(f"You can only {action} your own listings")
        return listing

    async def update(self, listing_id: int, patch: Dict[str, Any], owner_id: int) -> Listing:
        existing = await self._get_owned(listing_id, owner_id, "edit")
        merged: Dict[str, Any] = {
            "service_name": existing.service_name,
            "description": existing.description,
            "category": existing.category,
            "price": existing.price,
            "availability": existing.availability,
            "location_city": existing.location_city,
            "location_zip": existing.location_zip,
            "image_url": existing.image_url,
        }
        merged.update(patch)
        draft = build_listing_draft(merged)
        await run_in_threadpool(self._store.update, listing_id, draft)
        logger.info("Listing %s updated by provider %s", listing_id, owner_id)

        updated = await run_in_threadpool(self._store.get, listing_id)
        if updated is None:
            raise StoreNotFoundError("Listing not found")
        return updated

    async def delete(self, listing_id: int, owner_id: int) -> None:
        await self._get_owned(listing_id, owner_id, "delete")
        deleted = await run_in_threadpool(self._store.delete, listing_id)
        if not deleted:
            raise StoreNotFoundError("Listing not found")
        logger.info("Listing %s deleted by provider %s", listing_id, owner_id)

    async def get(self, listing_id: int) -> Listing:
        listing = await run_in_threadpool(self._store.get, listing_id)
        if listing is None:
            raise StoreNotFoundError("Listing not found")
        return listing

    async def list_by_provider(
        self,
        provider_id: int,
        caller_id: int,
        caller_role: Optional[str],
    ) -> List[Listing]:
        if caller_id != provider_id and caller_role != "Admin":
            raise StorePermissionError("Access denied")
        return await run_in_threadpool(self._store.list_by_provider, provider_id)

    async def search(self, params: SearchParams) -> SearchResponse:
        return await run_in_threadpool(self._engine.search, params)

    async def seed_samples(self, owner_id: int) -> List[int]:
        return [await self.create(dict(sample), owner_id) for sample in SAMPLE_LISTINGS]


listing_service = ListingService(store=listing_store, engine=search_engine, notifier=realtime_notifier)

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


LISTING_CATEGORIES = (
    "Plumbing",
    "Electrical",
    "Cleaning",
    "Carpentry",
    "Painting",
    "Gardening",
    "Moving",
    "Tutoring",
    "Pet Care",
    "Beauty",
    "Other",
)

ALL_CATEGORIES_SENTINEL = "All Categories"

UserRole = Literal["Customer", "ServiceProvider", "Admin"]
SearchSort = Literal["relevance", "price_asc", "price_desc", "newest"]


class SignupRequest(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""
    role: str = ""


class SignupResponse(BaseModel):
    user_id: int
    message: str = "User registered successfully"


class LoginRequest(BaseModel):
    # Either the account email or the username.
    email: str = ""
    password: str = ""


class UserPublic(BaseModel):
    id: int
    username: str
    email: str
    role: UserRole
    created_at: Optional[str] = None


class LoginResponse(BaseModel):
    message: str = "Login successful"
    user: UserPublic


class AvailabilityHours(BaseModel):
    start: str
    end: str


class Availability(BaseModel):
    days: list[str] = Field(default_factory=list)
    hours: Optional[AvailabilityHours] = None
    notes: str = ""


class ListingPayload(BaseModel):
    service_name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    # Either a JSON object or a JSON-encoded string; parsed by the availability module.
    availability: Optional[Any] = None
    location_city: Optional[str] = None
    location_zip: Optional[str] = None
    image_url: Optional[str] = None


class Listing(BaseModel):
    listing_id: int
    provider_id: int
    provider_name: str
    service_name: str
    description: str = ""
    category: str
    price: float
    availability: Optional[Availability] = None
    location_city: str
    location_zip: str
    image_url: Optional[str] = None
    created_at: str
    updated_at: str
    rating_average: float = 4.5
    rating_count: int = 0


class ListingCreateResponse(BaseModel):
    listing_id: int
    message: str = "Listing created successfully"


class ProviderListingsResponse(BaseModel):
    listings: list[Listing]
    count: int


class SearchPagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


class SearchFilters(BaseModel):
    query: str = ""
    category: str = ""
    city: str = ""
    zip: str = ""
    sort: SearchSort = "relevance"
    min_price: Optional[float] = None
    max_price: Optional[float] = None


class SearchResponse(BaseModel):
    listings: list[Listing]
    pagination: SearchPagination
    filters: SearchFilters


class SeedResponse(BaseModel):
    created: int
    listing_ids: list[int]


class ListingEvent(BaseModel):
    event: Literal["new_service_listing"] = "new_service_listing"
    data: Listing

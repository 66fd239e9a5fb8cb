import os
import sys
from uuid import uuid4

from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from servicefinder.main import app
from servicefinder.services.listing_service import listing_service
from servicefinder.services.user_store import user_store

client = TestClient(app)


def _signup(role: str = "ServiceProvider") -> int:
    suffix = uuid4().hex[:8]
    response = client.post(
        "/signup",
        json={
            "username": f"user_{suffix}",
            "email": f"{suffix}@example.com",
            "password": "secret123",
            "role": role,
        },
    )
    assert response.status_code == 201
    return response.json()["user_id"]


def _headers(user_id: int) -> dict:
    return {"X-User-Id": str(user_id)}


def _listing_body(**overrides) -> dict:
    body = {
        "service_name": f"Window Washing {uuid4().hex[:6]}",
        "description": "Streak-free windows, inside and out.",
        "category": "Cleaning",
        "price": 40,
        "location_city": "Austin",
        "location_zip": "73301",
    }
    body.update(overrides)
    return body


def _create_listing(provider_id: int, **overrides) -> int:
    response = client.post("/api/listings", json=_listing_body(**overrides), headers=_headers(provider_id))
    assert response.status_code == 201
    return response.json()["listing_id"]


def test_health_ok():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_signup_and_login_by_email_or_username():
    suffix = uuid4().hex[:8]
    signup = client.post(
        "/signup",
        json={
            "username": f"casey_{suffix}",
            "email": f"Casey.{suffix}@Example.com",
            "password": "hunter22",
            "role": "Customer",
        },
    )
    assert signup.status_code == 201
    user_id = signup.json()["user_id"]

    by_email = client.post("/login", json={"email": f"casey.{suffix}@example.com", "password": "hunter22"})
    assert by_email.status_code == 200
    user = by_email.json()["user"]
    assert user["id"] == user_id
    assert user["role"] == "Customer"
    assert "password" not in user
    assert "password_hash" not in user

    by_username = client.post("/login", json={"email": f"casey_{suffix}", "password": "hunter22"})
    assert by_username.status_code == 200
    assert by_username.json()["user"]["id"] == user_id


def test_login_wrong_password_returns_401():
    user_id = _signup(role="Customer")
    user = user_store.get_user(user_id)
    response = client.post("/login", json={"email": user.email, "password": "not-it"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_login_missing_fields_returns_400():
    response = client.post("/login", json={"email": "", "password": ""})
    assert response.status_code == 400


def test_signup_validation_errors():
    missing = client.post("/signup", json={"username": "someone", "email": "someone@example.com"})
    assert missing.status_code == 400
    assert missing.json()["detail"] == "All fields are required"

    bad_email = client.post(
        "/signup",
        json={"username": "someone", "email": "nope", "password": "secret123", "role": "Customer"},
    )
    assert bad_email.status_code == 400

    short_password = client.post(
        "/signup",
        json={"username": "someone", "email": "short@example.com", "password": "123", "role": "Customer"},
    )
    assert short_password.status_code == 400

    admin_role = client.post(
        "/signup",
        json={"username": "someone", "email": "admin@example.com", "password": "secret123", "role": "Admin"},
    )
    assert admin_role.status_code == 400


def test_signup_duplicate_email_returns_400():
    suffix = uuid4().hex[:8]
    body = {"username": f"dup_{suffix}", "email": f"dup_{suffix}@example.com", "password": "secret123", "role": "Customer"}
    assert client.post("/signup", json=body).status_code == 201
    again = client.post("/signup", json={**body, "username": f"dup2_{suffix}"})
    assert again.status_code == 400
    assert "already exists" in again.json()["detail"]


def test_signup_accepts_legacy_provider_role_spelling():
    suffix = uuid4().hex[:8]
    response = client.post(
        "/signup",
        json={"username": f"pro_{suffix}", "email": f"pro_{suffix}@example.com", "password": "secret123", "role": "Service Provider"},
    )
    assert response.status_code == 201
    me = client.get("/auth/me", headers=_headers(response.json()["user_id"]))
    assert me.status_code == 200
    assert me.json()["role"] == "ServiceProvider"


def test_protected_routes_require_identity_header():
    assert client.post("/api/listings", json=_listing_body()).status_code == 401
    assert client.get("/auth/me").status_code == 401

    unknown = client.get("/auth/me", headers={"X-User-Id": "999999"})
    assert unknown.status_code == 401
    assert unknown.json()["detail"] == "Invalid user"

    garbage = client.get("/auth/me", headers={"X-User-Id": "abc"})
    assert garbage.status_code == 401


def test_customer_cannot_create_listing():
    customer_id = _signup(role="Customer")
    response = client.post("/api/listings", json=_listing_body(), headers=_headers(customer_id))
    assert response.status_code == 403


def test_create_and_get_listing():
    provider_id = _signup()
    listing_id = _create_listing(
        provider_id,
        service_name="Garden Makeover",
        category="Gardening",
        price="75.5",
        availability={"days": ["friday", "Monday"], "hours": {"start": "09:00", "end": "15:00"}, "notes": "No rain days"},
        image_url="https://example.com/garden.jpg",
    )

    response = client.get(f"/api/listings/{listing_id}")
    assert response.status_code == 200
    listing = response.json()
    assert listing["service_name"] == "Garden Makeover"
    assert listing["provider_id"] == provider_id
    assert listing["provider_name"] == user_store.get_user(provider_id).username
    assert listing["price"] == 75.5
    assert listing["availability"] == {
        "days": ["Monday", "Friday"],
        "hours": {"start": "09:00", "end": "15:00"},
        "notes": "No rain days",
    }
    assert listing["rating_average"] == 4.5
    assert listing["rating_count"] == 0


def test_get_unknown_listing_returns_404():
    response = client.get("/api/listings/987654321")
    assert response.status_code == 404
    assert response.json()["detail"] == "Listing not found"


def test_negative_price_rejected_and_nothing_persisted():
    provider_id = _signup()
    response = client.post("/api/listings", json=_listing_body(price=-5), headers=_headers(provider_id))
    assert response.status_code == 400
    assert "non-negative" in response.json()["detail"]

    mine = client.get(f"/api/listings/provider/{provider_id}", headers=_headers(provider_id))
    assert mine.status_code == 200
    assert mine.json()["count"] == 0


def test_zero_price_is_allowed():
    provider_id = _signup()
    listing_id = _create_listing(provider_id, price=0)
    assert client.get(f"/api/listings/{listing_id}").json()["price"] == 0


def test_create_listing_validation_errors():
    provider_id = _signup()
    headers = _headers(provider_id)

    missing = client.post("/api/listings", json={"service_name": "Only a name"}, headers=headers)
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Service name, category, price, city, and ZIP code are required"

    bad_category = client.post("/api/listings", json=_listing_body(category="Astrology"), headers=headers)
    assert bad_category.status_code == 400
    assert bad_category.json()["detail"] == "Invalid category. Please select a valid category."

    long_name = client.post("/api/listings", json=_listing_body(service_name="x" * 256), headers=headers)
    assert long_name.status_code == 400

    non_numeric_price = client.post("/api/listings", json=_listing_body(price="cheap"), headers=headers)
    assert non_numeric_price.status_code == 400
    assert non_numeric_price.json()["detail"] == "Invalid request payload"


def test_malformed_availability_returns_400():
    provider_id = _signup()
    headers = _headers(provider_id)

    bad_json = client.post("/api/listings", json=_listing_body(availability="{not json"), headers=headers)
    assert bad_json.status_code == 400
    assert bad_json.json()["detail"].startswith("Invalid availability format")

    bad_day = client.post(
        "/api/listings",
        json=_listing_body(availability={"days": ["Funday"]}),
        headers=headers,
    )
    assert bad_day.status_code == 400

    inverted_hours = client.post(
        "/api/listings",
        json=_listing_body(availability={"days": ["Monday"], "hours": {"start": "17:00", "end": "08:00"}}),
        headers=headers,
    )
    assert inverted_hours.status_code == 400


def test_owner_can_patch_listing():
    provider_id = _signup()
    listing_id = _create_listing(provider_id, service_name="Fence Painting", category="Painting", price=60)
    before = client.get(f"/api/listings/{listing_id}").json()

    response = client.put(
        f"/api/listings/{listing_id}",
        json={"price": 65, "availability": '{"days": ["Saturday"], "hours": {"start": "10:00", "end": "14:00"}}'},
        headers=_headers(provider_id),
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["price"] == 65
    assert updated["service_name"] == "Fence Painting"
    assert updated["category"] == "Painting"
    assert updated["availability"]["days"] == ["Saturday"]
    assert updated["created_at"] == before["created_at"]
    assert updated["updated_at"] >= before["updated_at"]


def test_update_revalidates_merged_listing():
    provider_id = _signup()
    listing_id = _create_listing(provider_id, price=30)

    response = client.put(f"/api/listings/{listing_id}", json={"price": -1}, headers=_headers(provider_id))
    assert response.status_code == 400
    assert client.get(f"/api/listings/{listing_id}").json()["price"] == 30

    cleared = client.put(f"/api/listings/{listing_id}", json={"location_city": "  "}, headers=_headers(provider_id))
    assert cleared.status_code == 400


def test_non_owner_cannot_update_or_delete():
    owner_id = _signup()
    intruder_id = _signup()
    listing_id = _create_listing(owner_id, service_name="Protected Listing", price=55)

    forbidden_update = client.put(
        f"/api/listings/{listing_id}",
        json={"service_name": "Hijacked"},
        headers=_headers(intruder_id),
    )
    assert forbidden_update.status_code == 403

    forbidden_delete = client.delete(f"/api/listings/{listing_id}", headers=_headers(intruder_id))
    assert forbidden_delete.status_code == 403

    unchanged = client.get(f"/api/listings/{listing_id}").json()
    assert unchanged["service_name"] == "Protected Listing"
    assert unchanged["price"] == 55


def test_update_unknown_listing_returns_404():
    provider_id = _signup()
    response = client.put("/api/listings/987654321", json={"price": 10}, headers=_headers(provider_id))
    assert response.status_code == 404


def test_delete_twice_returns_not_found_second_time():
    provider_id = _signup()
    listing_id = _create_listing(provider_id)

    first = client.delete(f"/api/listings/{listing_id}", headers=_headers(provider_id))
    assert first.status_code == 200
    assert first.json() == {"status": "deleted", "listing_id": listing_id}

    second = client.delete(f"/api/listings/{listing_id}", headers=_headers(provider_id))
    assert second.status_code == 404


def test_provider_listings_visible_to_self_and_admin_only():
    provider_id = _signup()
    other_provider_id = _signup()
    first = _create_listing(provider_id)
    second = _create_listing(provider_id)

    mine = client.get(f"/api/listings/provider/{provider_id}", headers=_headers(provider_id))
    assert mine.status_code == 200
    payload = mine.json()
    assert payload["count"] == 2
    assert [item["listing_id"] for item in payload["listings"]] == [second, first]

    other = client.get(f"/api/listings/provider/{provider_id}", headers=_headers(other_provider_id))
    assert other.status_code == 403

    suffix = uuid4().hex[:8]
    admin_id = user_store.create_user(
        username=f"admin_{suffix}",
        email=f"admin_{suffix}@example.com",
        password="secret123",
        role="Admin",
    )
    as_admin = client.get(f"/api/listings/provider/{provider_id}", headers=_headers(admin_id))
    assert as_admin.status_code == 200
    assert as_admin.json()["count"] == 2


def test_search_clamps_limit_and_page():
    too_big = client.get("/api/listings/search", params={"limit": "500"})
    assert too_big.status_code == 200
    assert too_big.json()["pagination"]["items_per_page"] == 50

    too_small = client.get("/api/listings/search", params={"limit": "0", "page": "-4"})
    assert too_small.status_code == 200
    pagination = too_small.json()["pagination"]
    assert pagination["items_per_page"] == 1
    assert pagination["current_page"] == 1

    garbage = client.get("/api/listings/search", params={"limit": "lots", "page": "first"})
    assert garbage.status_code == 200
    assert garbage.json()["pagination"]["items_per_page"] == 12
    assert garbage.json()["pagination"]["current_page"] == 1


def test_search_page_beyond_total_is_empty():
    city = f"Nowhere{uuid4().hex[:6]}"
    provider_id = _signup()
    _create_listing(provider_id, location_city=city)

    response = client.get("/api/listings/search", params={"city": city, "page": 5})
    assert response.status_code == 200
    payload = response.json()
    assert payload["listings"] == []
    assert payload["pagination"]["total_items"] == 1
    assert payload["pagination"]["total_pages"] == 1
    assert payload["pagination"]["current_page"] == 5
    assert payload["pagination"]["has_next_page"] is False
    assert payload["pagination"]["has_prev_page"] is True


def test_search_relevance_puts_exact_name_first():
    city = f"Relevance{uuid4().hex[:6]}"
    provider_id = _signup()
    exact_id = _create_listing(provider_id, service_name="Plumbing", category="Plumbing", location_city=city)
    description_id = _create_listing(
        provider_id,
        service_name="Handy Helper",
        description="General fixes, including Plumbing.",
        category="Other",
        location_city=city,
    )

    response = client.get("/api/listings/search", params={"q": "Plumbing", "city": city, "sort": "relevance"})
    assert response.status_code == 200
    ids = [item["listing_id"] for item in response.json()["listings"]]
    assert ids == [exact_id, description_id]


def test_search_echoes_filters():
    response = client.get(
        "/api/listings/search",
        params={"q": " paint ", "category": "All Categories", "city": "Pune", "zip": "411", "sort": "bogus"},
    )
    assert response.status_code == 200
    filters = response.json()["filters"]
    assert filters["query"] == "paint"
    assert filters["category"] == ""
    assert filters["city"] == "Pune"
    assert filters["zip"] == "411"
    assert filters["sort"] == "relevance"


def test_seed_services_creates_sample_listings():
    provider_id = _signup()
    response = client.post("/api/seed-services", headers=_headers(provider_id))
    assert response.status_code == 201
    payload = response.json()
    assert payload["created"] == 2

    mine = client.get(f"/api/listings/provider/{provider_id}", headers=_headers(provider_id)).json()
    names = {item["service_name"] for item in mine["listings"]}
    assert names == {"Professional House Cleaning", "Emergency Plumbing Services"}


def test_unexpected_errors_return_generic_500(monkeypatch):
    async def broken_search(params):
        raise RuntimeError("database is locked: /var/lib/secret.sqlite3")

    monkeypatch.setattr(listing_service, "search", broken_search)
    response = client.get("/api/listings/search", params={"q": "anything"})
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


def test_search_with_enormous_page_returns_empty_page():
    response = client.get("/api/listings/search", params={"page": "99999999999999999999"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["listings"] == []
    assert payload["pagination"]["current_page"] == 99999999999999999999
    assert payload["pagination"]["has_next_page"] is False

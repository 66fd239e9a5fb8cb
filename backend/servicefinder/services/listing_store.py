import sqlite3
from dataclasses import dataclass
from typing import List, Optional

from servicefinder.models import Availability, Listing
from servicefinder.services.availability import dump_availability, load_availability
from servicefinder.services.database import Database, database, utc_now_iso

LISTING_SELECT = """
    SELECT
        sl.id, sl.provider_id, u.username AS provider_name,
        sl.service_name, sl.description, sl.category, sl.price, sl.availability_json,
        sl.location_city, sl.location_zip, sl.image_url, sl.created_at, sl.updated_at
    FROM listings sl
    JOIN users u ON sl.provider_id = u.id
"""


@dataclass
class ListingDraft:
    """A validated set of listing fields ready to be written."""

    service_name: str
    category: str
    price: float
    location_city: str
    location_zip: str
    description: str = ""
    availability: Optional[Availability] = None
    image_url: Optional[str] = None


def row_to_listing(row: sqlite3.Row) -> Listing:
    return Listing(
        listing_id=int(row["id"]),
        provider_id=int(row["provider_id"]),
        provider_name=row["provider_name"],
        service_name=row["service_name"],
        description=row["description"] or "",
        category=row["category"],
        price=float(row["price"]),
        availability=load_availability(row["availability_json"]),
        location_city=row["location_city"],
        location_zip=row["location_zip"],
        image_url=row["image_url"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class ListingStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    def insert(self, provider_id: int, draft: ListingDraft) -> int:
        now = utc_now_iso()
        with self._db.session() as conn:
            cursor = conn.execute(
                """
                INSERT INTO listings (
                    provider_id, service_name, description, category, price, availability_json,
                    location_city, location_zip, image_url, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    provider_id,
                    draft.service_name,
                    draft.description,
                    draft.category,
                    draft.price,
                    dump_availability(draft.availability),
                    draft.location_city,
                    draft.location_zip,
                    draft.image_url,
                    now,
                    now,
                ),
            )
            return int(cursor.lastrowid)

    def get(self, listing_id: int) -> Optional[Listing]:
        with self._db.session() as conn:
            row = conn.execute(f"{LISTING_SELECT} WHERE sl.id = ?", (listing_id,)).fetchone()
        return row_to_listing(row) if row else None

    def update(self, listing_id: int, draft: ListingDraft) -> None:
        with self._db.session() as conn:
            conn.execute(
                """
                UPDATE listings
                SET service_name = ?, description = ?, category = ?, price = ?, availability_json = ?,
                    location_city = ?, location_zip = ?, image_url = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    draft.service_name,
                    draft.description,
                    draft.category,
                    draft.price,
                    dump_availability(draft.availability),
                    draft.location_city,
                    draft.location_zip,
                    draft.image_url,
                    utc_now_iso(),
                    listing_id,
                ),
            )

    def delete(self, listing_id: int) -> bool:
        with self._db.session() as conn:
            cursor = conn.execute("DELETE FROM listings WHERE id = ?", (listing_id,))
            return cursor.rowcount > 0

    def list_by_provider(self, provider_id: int) -> List[Listing]:
        with self._db.session() as conn:
            rows = conn.execute(
                f"{LISTING_SELECT} WHERE sl.provider_id = ? ORDER BY sl.created_at DESC, sl.id DESC",
                (provider_id,),
            ).fetchall()
        return [row_to_listing(row) for row in rows]


listing_store = ListingStore(database)

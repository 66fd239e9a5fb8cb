"""Listing search: filter composition, relevance ordering and pagination.

Everything is pushed down to SQL. The page query and the count query share
one WHERE clause so ``total_items`` always describes the same result set the
page was cut from.
"""
import math
import re
from dataclasses import asdict, dataclass
from typing import Any, List, Optional, Tuple

from servicefinder import config
from servicefinder.models import (
    ALL_CATEGORIES_SENTINEL,
    SearchFilters,
    SearchPagination,
    SearchResponse,
)
from servicefinder.services.database import Database, database
from servicefinder.services.listing_store import LISTING_SELECT, row_to_listing

SORT_MODES = ("relevance", "price_asc", "price_desc", "newest")

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")

# Final tie-breakers keep pagination stable when timestamps collide.
_NEWEST_FIRST = "sl.created_at DESC, sl.id DESC"


def coerce_int(value: Any, default: int) -> int:
    """Read the leading integer of ``value`` the way query strings are usually typed."""
    if value is None:
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    match = _LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else default


def coerce_price(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if math.isfinite(price) else None


def clamp_page(page: int) -> int:
    return max(1, page)


def clamp_limit(limit: int, max_limit: Optional[int] = None) -> int:
    cap = max_limit if max_limit is not None else config.SEARCH_MAX_LIMIT
    return max(1, min(cap, limit))


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class SearchParams:
    query: str = ""
    category: str = ""
    city: str = ""
    zip: str = ""
    page: int = 1
    limit: int = 12
    sort: str = "relevance"
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    @classmethod
    def from_raw(
        cls,
        *,
        q: Optional[str] = None,
        category: Optional[str] = None,
        city: Optional[str] = None,
        zip: Optional[str] = None,
        page: Any = None,
        limit: Any = None,
        sort: Optional[str] = None,
        min_price: Any = None,
        max_price: Any = None,
    ) -> "SearchParams":
        category_value = (category or "").strip()
        if category_value.lower() == ALL_CATEGORIES_SENTINEL.lower():
            category_value = ""
        sort_value = (sort or "relevance").strip().lower()
        if sort_value not in SORT_MODES:
            sort_value = "relevance"
        default_limit = config.SEARCH_DEFAULT_LIMIT
        return cls(
            query=(q or "").strip(),
            category=category_value,
            city=(city or "").strip(),
            zip=(zip or "").strip(),
            page=clamp_page(coerce_int(page, 1)),
            limit=clamp_limit(coerce_int(limit, default_limit)),
            sort=sort_value,
            min_price=coerce_price(min_price),
            max_price=coerce_price(max_price),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def build_where(params: SearchParams) -> Tuple[str, List[Any]]:
    clauses: List[str] = []
    args: List[Any] = []
    if params.query:
        pattern = f"%{escape_like(params.query.casefold())}%"
        clauses.append(
            "(casefold(sl.service_name) LIKE ? ESCAPE '\\' OR casefold(sl.description) LIKE ? ESCAPE '\\')"
        )
        args.extend([pattern, pattern])
    if params.category:
        clauses.append("sl.category = ?")
        args.append(params.category)
    if params.city:
        clauses.append("casefold(sl.location_city) LIKE ? ESCAPE '\\'")
        args.append(f"%{escape_like(params.city.casefold())}%")
    if params.zip:
        clauses.append("sl.location_zip LIKE ? ESCAPE '\\'")
        args.append(f"{escape_like(params.zip)}%")
    if params.min_price is not None:
        clauses.append("sl.price >= ?")
        args.append(params.min_price)
    if params.max_price is not None:
        clauses.append("sl.price <= ?")
        args.append(params.max_price)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, args


def build_order(params: SearchParams) -> Tuple[str, List[Any]]:
    if params.sort == "price_asc":
        return f"ORDER BY sl.price ASC, {_NEWEST_FIRST}", []
    if params.sort == "price_desc":
        return f"ORDER BY sl.price DESC, {_NEWEST_FIRST}", []
    if params.sort == "newest" or not params.query:
        return f"ORDER BY {_NEWEST_FIRST}", []

    term = params.query.casefold()
    pattern = f"%{escape_like(term)}%"
    order = f"""
        ORDER BY
            CASE
                WHEN casefold(sl.service_name) = ? THEN 1
                WHEN casefold(sl.service_name) LIKE ? ESCAPE '\\' THEN 2
                WHEN casefold(sl.description) LIKE ? ESCAPE '\\' THEN 3
                -- Unreachable while q is set: the WHERE clause already requires a text match.
                ELSE 4
            END,
            {_NEWEST_FIRST}
    """
    return order, [term, pattern, pattern]


def build_pagination(*, page: int, limit: int, total: int) -> SearchPagination:
    total_pages = math.ceil(total / limit) if total else 0
    return SearchPagination(
        current_page=page,
        total_pages=total_pages,
        total_items=total,
        items_per_page=limit,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )


class ListingSearchEngine:
    def __init__(self, db: Database) -> None:
        self._db = db

    def search(self, params: SearchParams) -> SearchResponse:
        where, where_args = build_where(params)
        order, order_args = build_order(params)
        with self._db.session() as conn:
            total = int(
                conn.execute(
                    f"SELECT COUNT(*) AS total FROM listings sl JOIN users u ON sl.provider_id = u.id {where}",
                    where_args,
                ).fetchone()["total"]
            )
            rows = []
            # A page past the end is empty; its offset may not even fit in a sqlite INTEGER.
            if params.offset < total:
                rows = conn.execute(
                    f"{LISTING_SELECT} {where} {order} LIMIT ? OFFSET ?",
                    [*where_args, *order_args, params.limit, params.offset],
                ).fetchall()

        filters = asdict(params)
        for key in ("page", "limit"):
            filters.pop(key)
        return SearchResponse(
            listings=[row_to_listing(row) for row in rows],
            pagination=build_pagination(page=params.page, limit=params.limit, total=total),
            filters=SearchFilters(**filters),
        )


search_engine = ListingSearchEngine(database)


from dataclasses import dataclass
from typing import List, Optional, Sequence

from catalog_service.coerce import to_bool, to_float, to_int
from catalog_service.models import Item

DEFAULT_LIMIT = 50
MAX_LIMIT = 200
DEFAULT_SORT = "title"
SORT_KEYS = ("id", "title", "image", "price", "stock")


@dataclass
class ItemQuery:
    text: str = ""
    in_stock: Optional[bool] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    sort: str = DEFAULT_SORT
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    @classmethod
    def from_params(
        cls,
        q: Optional[str] = None,
        in_stock: Optional[str] = None,
        min_price: Optional[str] = None,
        max_price: Optional[str] = None,
        limit: Optional[str] = None,
        offset: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> "ItemQuery":
        """Build a query from raw query-string values; never raises."""
        return cls(
            text=(q or "").strip().lower(),
            in_stock=to_bool(in_stock),
            min_price=to_float(min_price) if min_price else None,
            max_price=to_float(max_price) if max_price else None,
            sort=(sort or "").strip() or DEFAULT_SORT,
            limit=to_int(limit, DEFAULT_LIMIT) if limit else DEFAULT_LIMIT,
            offset=to_int(offset, 0) if offset else 0,
        )


@dataclass
class QueryResult:
    total: int
    offset: int
    limit: int
    page: List[Item]


def clamp_limit(limit: int) -> int:
    return min(max(limit, 1), MAX_LIMIT)


def matches(item: Item, query: ItemQuery) -> bool:
    if query.text:
        needle = query.text.lower()
        if needle not in item.title.lower() and needle not in item.image.lower():
            return False
    if query.in_stock is not None:
        if query.in_stock != (item.stock > 0):
            return False
    if query.min_price is not None and item.price < query.min_price:
        return False
    if query.max_price is not None and item.price > query.max_price:
        return False
    return True


def _sort_value(item: Item, key: str):
    value = getattr(item, key)
    return value.lower() if isinstance(value, str) else value


def sort_items(items: List[Item], sort: str) -> List[Item]:
    reverse = sort.startswith("-")
    key = sort[1:] if reverse else sort
    if key not in SORT_KEYS:
        return items
    # sorted() is stable, so ties keep source order
    return sorted(items, key=lambda item: _sort_value(item, key), reverse=reverse)


def run_query(items: Sequence[Item], query: ItemQuery) -> QueryResult:
    filtered = [item for item in items if matches(item, query)]
    ordered = sort_items(filtered, query.sort)
    limit = clamp_limit(query.limit)
    offset = max(query.offset, 0)
    return QueryResult(
        total=len(filtered),
        offset=offset,
        limit=limit,
        page=ordered[offset:offset + limit],
    )


import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from catalog_service.coerce import slugify, to_float, to_int

logger = logging.getLogger("catalog_models")

CSV_COLUMNS = ["id", "image", "title", "stock", "price"]


def utc_isoformat(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a Z suffix."""
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Item(BaseModel):
    id: str
    title: str
    image: str = ""
    price: float = 0.0
    stock: int = 0


class LineError(str, Enum):
    PRODUCT_NOT_FOUND = "Product not found"
    INSUFFICIENT_STOCK = "Quantity > stock"
    INVALID_QUANTITY = "Invalid quantity"
    INVALID_LINE = "Invalid line"


class ReservationLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Any = None
    quantity: Any = None
    title: Optional[str] = None
    price: Optional[float] = None
    error: Optional[LineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Reservation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    customer: str
    items: List[ReservationLine]
    date: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customer": self.customer,
            "items": [line.model_dump(mode="json", exclude_none=True) for line in self.items],
            "date": self.date,
        }


class ReserveRequest(BaseModel):
    # shape is checked by ReservationProcessor
    customer: Any = None
    items: Any = None


class ErrorResponse(BaseModel):
    error: str


def _image_value(raw: Any) -> str:
    if raw is None:
        return ""
    # attachment fields arrive as a list of {"url": ...}
    if isinstance(raw, list):
        if not raw:
            return ""
        first = raw[0]
        if isinstance(first, dict):
            return str(first.get("url", ""))
        return str(first)
    return str(raw)


def item_from_row(row: Dict[str, Any], position: int) -> Optional[Item]:
    """Map one raw row to an Item, or None when it has no title."""
    title = row.get("title")
    title = str(title).strip() if title is not None else ""
    if not title:
        return None

    item_id = row.get("id")
    item_id = str(item_id).strip() if item_id is not None else ""
    if not item_id:
        item_id = f"{position}-{slugify(title)}"

    return Item(
        id=item_id,
        title=title,
        image=_image_value(row.get("image")),
        price=max(to_float(row.get("price")), 0.0),
        stock=max(to_int(row.get("stock")), 0),
    )


def items_from_rows(rows: Iterable[Dict[str, Any]]) -> List[Item]:
    items: List[Item] = []
    seen = set()
    for position, row in enumerate(rows, start=1):
        item = item_from_row(row, position)
        if item is None:
            logger.debug(f"Dropping row {position} without title")
            continue
        if item.id in seen:
            logger.warning(f"Duplicate item id {item.id} at row {position}, keeping the first one")
            continue
        seen.add(item.id)
        items.append(item)
    return items


def item_to_row(item: Item) -> Dict[str, str]:
    return {
        "id": item.id,
        "image": item.image,
        "title": item.title,
        "stock": str(item.stock),
        "price": repr(item.price),
    }

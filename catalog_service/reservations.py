"""
Reservation processing.

Each line of a reservation succeeds or fails on its own: a missing product
or a short stock fails that line only. Successful decrements are persisted
once all lines are processed, then the reservation is logged and announced.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from catalog_service import ids
from catalog_service.cache import CatalogCache
from catalog_service.errors import InsufficientStock, InvalidRequest, ItemNotFound, PersistFailure
from catalog_service.models import LineError, Reservation, ReservationLine, utc_isoformat
from catalog_service.notifier import WebhookNotifier

logger = logging.getLogger("reservations")


def _valid_quantity(quantity: Any) -> bool:
    return isinstance(quantity, int) and not isinstance(quantity, bool) and quantity > 0


class ReservationProcessor:
    def __init__(self, cache: CatalogCache, notifier: Optional[WebhookNotifier] = None):
        self._cache = cache
        self._notifier = notifier
        self._log: List[Reservation] = []

    @property
    def log(self) -> List[Reservation]:
        return list(self._log)

    async def reserve(self, customer: Any, items: Any) -> Reservation:
        if not isinstance(customer, str) or not customer.strip():
            raise InvalidRequest("customer is required")
        if not isinstance(items, list):
            raise InvalidRequest("items must be a list")

        async with self._cache.lock:
            lines: List[ReservationLine] = []
            applied: Dict[str, int] = {}
            for raw in items:
                line = self._process_line(raw, applied)
                lines.append(line)

            if applied:
                changed = {item_id: self._cache.get(item_id).stock for item_id in applied}
                try:
                    await self._cache.store.save(self._cache.items, changed)
                except PersistFailure:
                    self._rollback(applied)
                    logger.error(f"Persist failed for customer {customer}, rolled back {len(applied)} item(s)")
                    raise

            reservation = Reservation(
                id=ids.next_reservation_id(),
                customer=customer,
                items=lines,
                date=utc_isoformat(datetime.now(timezone.utc)),
            )
            self._log.append(reservation)

        failed = sum(1 for line in lines if not line.ok)
        logger.info(f"Reservation {reservation.id} for {customer}: {len(lines) - failed} line(s) ok, {failed} failed")
        if self._notifier is not None:
            self._notifier.dispatch(reservation)
        return reservation

    def _process_line(self, raw: Any, applied: Dict[str, int]) -> ReservationLine:
        if not isinstance(raw, dict):
            logger.warning(f"Rejected reservation line that is not an object: {raw!r}")
            return ReservationLine(error=LineError.INVALID_LINE)

        item_id = raw.get("id")
        quantity = raw.get("quantity")

        try:
            item = self._cache.get(item_id)
        except ItemNotFound:
            logger.warning(f"Product {item_id!r} not found")
            return ReservationLine(id=item_id, quantity=quantity, error=LineError.PRODUCT_NOT_FOUND)

        if not _valid_quantity(quantity):
            logger.warning(f"Invalid quantity {quantity!r} for {item.id}")
            return ReservationLine(id=item_id, quantity=quantity, error=LineError.INVALID_QUANTITY)

        try:
            self._cache.apply_stock_delta(item.id, -quantity)
        except InsufficientStock as e:
            logger.warning(str(e))
            return ReservationLine(id=item_id, quantity=quantity, error=LineError.INSUFFICIENT_STOCK)

        applied[item.id] = applied.get(item.id, 0) + quantity
        return ReservationLine(id=item_id, quantity=quantity, title=item.title, price=item.price)

    def _rollback(self, applied: Dict[str, int]) -> None:
        for item_id, quantity in applied.items():
            self._cache.apply_stock_delta(item_id, quantity)

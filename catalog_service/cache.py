"""
In-memory catalog snapshot.

The snapshot is replaced wholesale on reload and mutated in place by
reservations. `lock` serializes every writer: reloads and whole reservations.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from catalog_service.errors import InsufficientStock, ItemNotFound, ReloadFailure, SourceUnavailable
from catalog_service.models import Item, items_from_rows
from catalog_service.store import RecordStore

logger = logging.getLogger("catalog_cache")


@dataclass
class CatalogSnapshot:
    items: List[Item]
    version_tag: str
    loaded_at: Optional[datetime] = None
    _index: Dict[str, Item] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self._index = {item.id: item for item in self.items}

    @classmethod
    def empty(cls) -> "CatalogSnapshot":
        return cls(items=[], version_tag="empty")

    def find(self, item_id) -> Optional[Item]:
        if not isinstance(item_id, str):
            return None
        return self._index.get(item_id)

    def __len__(self) -> int:
        return len(self.items)


class CatalogCache:
    def __init__(self, store: RecordStore):
        self._store = store
        self._snapshot = CatalogSnapshot.empty()
        self._generation = 0
        self.lock = asyncio.Lock()

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    @property
    def items(self) -> List[Item]:
        return self._snapshot.items

    async def reload(self) -> CatalogSnapshot:
        async with self.lock:
            try:
                rows = await self._store.fetch_all()
            except SourceUnavailable as e:
                logger.error(f"Reload failed, keeping {len(self._snapshot)} cached items: {e}")
                raise ReloadFailure(str(e)) from e

            items = items_from_rows(rows)
            loaded_at = datetime.now(timezone.utc)
            self._generation += 1
            snapshot = CatalogSnapshot(
                items=items,
                version_tag=self._make_version_tag(loaded_at, len(items)),
                loaded_at=loaded_at,
            )
            self._snapshot = snapshot
            logger.info(f"Loaded {len(items)} items (version {snapshot.version_tag})")
            return snapshot

    def _make_version_tag(self, loaded_at: datetime, count: int) -> str:
        millis = int(loaded_at.timestamp() * 1000)
        return f"{millis:x}-{count:x}-{self._generation:x}"

    def get(self, item_id) -> Item:
        item = self._snapshot.find(item_id)
        if item is None:
            raise ItemNotFound(item_id)
        return item

    def apply_stock_delta(self, item_id, delta: int) -> Item:
        """Change stock in place. Does not touch the version tag."""
        item = self.get(item_id)
        new_stock = item.stock + delta
        if new_stock < 0:
            raise InsufficientStock(item.id, requested=-delta, available=item.stock)
        item.stock = new_stock
        return item

    def current_version_tag(self) -> str:
        return self._snapshot.version_tag

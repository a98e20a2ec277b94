"""
Record stores: where catalog rows come from and where stock changes go.

Two backends share one interface. CsvRecordStore reads and rewrites a local
flat file; AirtableRecordStore talks to a remote table over its REST API and
updates stock one record at a time.
"""

import asyncio
import csv
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from catalog_service import config
from catalog_service.errors import SourceUnavailable, UpdateFailure, PersistFailure
from catalog_service.models import CSV_COLUMNS, Item, item_to_row

logger = logging.getLogger("catalog_store")


class RecordStore(ABC):
    # file to poll for external edits, if any
    watch_path: Optional[Path] = None
    # whether listings may be served with ETag / 304
    supports_etag: bool = False

    @abstractmethod
    async def fetch_all(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def save(self, items: Sequence[Item], changed: Mapping[str, int]) -> None:
        """Persist stock after a reservation. `changed` maps item id to new stock."""

    async def aclose(self) -> None:
        return None


class CsvRecordStore(RecordStore):
    supports_etag = True

    def __init__(self, path):
        self.path = Path(path)
        self.watch_path = self.path

    async def fetch_all(self) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._read)

    def _read(self) -> List[Dict[str, Any]]:
        try:
            with self.path.open(newline="", encoding="utf-8-sig") as f:
                reader = csv.DictReader(f)
                return [
                    {(key or "").strip(): value for key, value in row.items()}
                    for row in reader
                ]
        except FileNotFoundError as e:
            raise SourceUnavailable(f"Catalog file not found: {self.path}") from e
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            raise SourceUnavailable(f"Cannot read catalog file {self.path}: {e}") from e

    async def save(self, items: Sequence[Item], changed: Mapping[str, int]) -> None:
        rows = [item_to_row(item) for item in items]
        await asyncio.to_thread(self._write, rows)
        logger.info(f"Wrote {len(rows)} items to {self.path}")

    def _write(self, rows: List[Dict[str, str]]) -> None:
        directory = self.path.parent
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".items-", suffix=".csv", dir=directory)
            try:
                with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                    writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
                    writer.writeheader()
                    writer.writerows(rows)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise PersistFailure(f"Cannot write catalog file {self.path}: {e}") from e


class AirtableRecordStore(RecordStore):
    def __init__(
        self,
        api_key: str,
        base_id: str,
        table: str,
        view: Optional[str] = None,
        api_url: str = config.AIRTABLE_API_URL,
        timeout_ms: int = config.AIRTABLE_TIMEOUT_MS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.table = table
        self.view = view
        self._client = httpx.AsyncClient(
            base_url=f"{api_url.rstrip('/')}/{base_id}",
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout_ms / 1000.0,
            transport=transport,
        )

    async def fetch_all(self) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        params: Dict[str, str] = {}
        if self.view:
            params["view"] = self.view

        while True:
            try:
                response = await self._client.get(f"/{self.table}", params=params)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPError as e:
                raise SourceUnavailable(f"Remote table unavailable: {e}") from e
            except ValueError as e:
                raise SourceUnavailable(f"Remote table returned invalid JSON: {e}") from e

            records = data.get("records", []) if isinstance(data, dict) else None
            if not isinstance(records, list):
                raise SourceUnavailable("Remote table returned malformed payload")
            for record in records:
                if not isinstance(record, dict) or not isinstance(record.get("fields", {}), dict):
                    raise SourceUnavailable("Remote table returned malformed payload")
                rows.append({**record.get("fields", {}), "id": record.get("id")})

            offset = data.get("offset")
            if not offset:
                break
            params["offset"] = offset

        logger.info(f"Fetched {len(rows)} records from remote table {self.table}")
        return rows

    async def update_stock(self, item_id: str, new_stock: int) -> None:
        try:
            response = await self._client.patch(
                f"/{self.table}/{item_id}", json={"fields": {"stock": new_stock}}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise UpdateFailure(item_id, str(e)) from e

    async def save(self, items: Sequence[Item], changed: Mapping[str, int]) -> None:
        for item_id, new_stock in changed.items():
            await self.update_stock(item_id, new_stock)
            logger.info(f"Updated stock of {item_id} to {new_stock}")

    async def aclose(self) -> None:
        await self._client.aclose()


def build_store(backend: str = config.CATALOG_BACKEND) -> RecordStore:
    if backend == "csv":
        return CsvRecordStore(config.CATALOG_CSV_PATH)
    if backend == "airtable":
        if not config.AIRTABLE_PAT or not config.AIRTABLE_BASE_ID:
            raise ValueError("AIRTABLE_PAT and AIRTABLE_BASE_ID are required for the airtable backend")
        return AirtableRecordStore(
            api_key=config.AIRTABLE_PAT,
            base_id=config.AIRTABLE_BASE_ID,
            table=config.AIRTABLE_TABLE,
            view=config.AIRTABLE_VIEW,
        )
    raise ValueError(f"Unknown catalog backend: {backend}")

"""Error kinds raised by the catalog, its stores and the reservation flow."""


class CatalogError(Exception):
    pass


class SourceUnavailable(CatalogError):
    """Backing store unreachable, file missing or unreadable."""


class ReloadFailure(CatalogError):
    """A reload aborted; the previous snapshot is still being served."""


class PersistFailure(CatalogError):
    pass


class UpdateFailure(PersistFailure):
    """A per-record stock update on the remote store failed."""

    def __init__(self, item_id: str, message: str):
        super().__init__(f"Stock update failed for {item_id}: {message}")
        self.item_id = item_id


class ItemNotFound(CatalogError):
    def __init__(self, item_id):
        super().__init__(f"Item not found: {item_id}")
        self.item_id = item_id


class InsufficientStock(CatalogError):
    def __init__(self, item_id: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {item_id}: requested {requested}, available {available}"
        )
        self.item_id = item_id
        self.requested = requested
        self.available = available


class InvalidRequest(CatalogError):
    pass


class NotificationFailure(CatalogError):
    pass

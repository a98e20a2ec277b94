
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from catalog_service import config, ids
from catalog_service.cache import CatalogCache
from catalog_service.errors import InvalidRequest, ItemNotFound, PersistFailure, ReloadFailure
from catalog_service.models import ErrorResponse, ReserveRequest, utc_isoformat
from catalog_service.notifier import WebhookNotifier
from catalog_service.query import ItemQuery, run_query
from catalog_service.reservations import ReservationProcessor
from catalog_service.store import RecordStore, build_store
from catalog_service.watcher import FileWatcher

# Configure logging
logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("catalog_service")

router = APIRouter()


def etag_matches(if_none_match: str, etag: str) -> bool:
    if if_none_match.strip() == "*":
        return True
    candidates = [tag.strip() for tag in if_none_match.split(",")]
    return any(tag.removeprefix("W/") == etag for tag in candidates)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@router.get("/health")
def health(request: Request):
    snapshot = request.app.state.cache.snapshot
    return {
        "ok": True,
        "totalItems": len(snapshot),
        "lastLoaded": utc_isoformat(snapshot.loaded_at) if snapshot.loaded_at else None,
    }


@router.get("/items")
async def list_items(
    request: Request,
    q: Optional[str] = None,
    inStock: Optional[str] = None,
    minPrice: Optional[str] = None,
    maxPrice: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    sort: Optional[str] = None,
):
    cache: CatalogCache = request.app.state.cache

    etag = None
    if cache.store.supports_etag:
        etag = f'"{cache.current_version_tag()}"'
        if_none_match = request.headers.get("If-None-Match")
        if if_none_match and etag_matches(if_none_match, etag):
            return Response(status_code=304, headers={"ETag": etag})

    query = ItemQuery.from_params(
        q=q, in_stock=inStock, min_price=minPrice, max_price=maxPrice,
        limit=limit, offset=offset, sort=sort,
    )
    result = run_query(cache.items, query)
    response = JSONResponse(content={
        "total": result.total,
        "offset": result.offset,
        "limit": result.limit,
        "items": [item.model_dump() for item in result.page],
    })
    if etag:
        response.headers["ETag"] = etag
        response.headers["Cache-Control"] = "no-cache"
    return response


@router.get("/items/{item_id}")
async def get_item(request: Request, item_id: str):
    try:
        item = request.app.state.cache.get(item_id)
    except ItemNotFound:
        return error_response(404, "Item not found")
    return item.model_dump()


@router.post("/reserve")
async def reserve(request: Request, reserve_req: ReserveRequest):
    correlation_id = request.state.correlation_id
    processor: ReservationProcessor = request.app.state.processor
    logger.info(f"Reserve request from {reserve_req.customer!r}, correlation {correlation_id}")

    try:
        reservation = await processor.reserve(reserve_req.customer, reserve_req.items)
    except InvalidRequest as e:
        logger.warning(f"Invalid reservation request: {e}")
        return error_response(400, f"Invalid request: {e}")
    except PersistFailure as e:
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})

    return {"ok": True, "reservation": reservation.to_payload()}


@router.get("/reservations")
def list_reservations(request: Request):
    """Debug endpoint: reservations taken since startup"""
    return [r.to_payload() for r in request.app.state.processor.log]


@router.post("/admin/reload")
async def admin_reload(request: Request):
    try:
        snapshot = await request.app.state.cache.reload()
    except ReloadFailure as e:
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})
    return {"ok": True, "reloadedAt": utc_isoformat(snapshot.loaded_at), "count": len(snapshot)}


def create_app(
    store: Optional[RecordStore] = None,
    notifier: Optional[WebhookNotifier] = None,
    watch_interval_ms: int = config.WATCH_INTERVAL_MS,
    static_dir: Optional[str] = config.STATIC_DIR,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        record_store = store if store is not None else build_store()
        webhook = notifier if notifier is not None else WebhookNotifier()
        cache = CatalogCache(record_store)
        try:
            await cache.reload()
        except ReloadFailure as e:
            logger.error(f"Initial catalog load failed, starting empty: {e}")

        app.state.cache = cache
        app.state.notifier = webhook
        app.state.processor = ReservationProcessor(cache, webhook)

        watcher = None
        if record_store.watch_path is not None and watch_interval_ms > 0:
            watcher = FileWatcher(record_store.watch_path, cache.reload, watch_interval_ms)
            watcher.start()
        app.state.watcher = watcher

        yield

        if watcher is not None:
            await watcher.stop()
        await webhook.drain()
        await record_store.aclose()

    app = FastAPI(title="Catalog Reservation Service", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag", "X-Correlation-Id"],
    )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-Id")
        if not correlation_id:
            correlation_id = ids.generate_correlation_id()

        # Store in request state for access in endpoints
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-Id"] = correlation_id
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return error_response(400, "Invalid request: body must be a JSON object")

    app.include_router(router)

    if static_dir and Path(static_dir).is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")

    return app


app = create_app()

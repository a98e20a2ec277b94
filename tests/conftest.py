
import httpx
import pytest
import pytest_asyncio

from catalog_service.main import create_app
from catalog_service.notifier import WebhookNotifier
from catalog_service.errors import PersistFailure
from catalog_service.store import CsvRecordStore

CSV_HEADER = "id,image,title,stock,price\n"

SAMPLE_ROWS = [
    "a,widget.png,Widget,5,2.0",
    "b,gadget.jpg,Gadget,0,7.5",
    "c,gizmo.jpg,Gizmo,3,10.0",
    "d,doohickey.png,Doohickey,12,5.0",
]


def write_catalog(path, rows):
    path.write_text(CSV_HEADER + "".join(f"{row}\n" for row in rows), encoding="utf-8")


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "items.csv"
    write_catalog(path, SAMPLE_ROWS)
    return path


@pytest.fixture
def csv_store(catalog_file):
    return CsvRecordStore(catalog_file)


@pytest.fixture
def webhook_requests():
    return []


@pytest_asyncio.fixture
async def notifier(webhook_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        webhook_requests.append(request)
        return httpx.Response(204)

    notifier = WebhookNotifier(url="https://chat.example/webhook", transport=httpx.MockTransport(handler))
    yield notifier
    await notifier.drain()


@pytest_asyncio.fixture
async def app(csv_store, notifier):
    app = create_app(store=csv_store, notifier=notifier, watch_interval_ms=0, static_dir=None)
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def rewrite_catalog(catalog_file):
    def rewrite(rows):
        write_catalog(catalog_file, rows)

    return rewrite


class FailingStore:
    watch_path = None
    supports_etag = False

    def __init__(self, inner):
        self._inner = inner

    async def fetch_all(self):
        return await self._inner.fetch_all()

    async def save(self, items, changed):
        raise PersistFailure("disk full")

    async def aclose(self):
        return None


@pytest.fixture
def failing_store(csv_store):
    return FailingStore(csv_store)

import json

import httpx
import pytest

from catalog_service.models import LineError, Reservation, ReservationLine
from catalog_service.notifier import MAX_CONTENT_LENGTH, WebhookNotifier, format_reservation_message


def make_reservation(lines=None):
    return Reservation(
        id=1,
        customer="Bob",
        date="2026-10-19T10:00:00.000Z",
        items=lines if lines is not None else [
            ReservationLine(id="a", quantity=3, title="Widget", price=2.0),
            ReservationLine(id="zz", quantity=1, error=LineError.PRODUCT_NOT_FOUND),
        ],
    )


def test_format_message():
    message = format_reservation_message(make_reservation(), currency="CHF")
    lines = message.splitlines()
    assert "Bob" in lines[1]
    assert "2026-10-19T10:00:00.000Z" in lines[2]
    assert lines[3] == ""
    assert lines[4] == "• Widget x3 = 6.00CHF"
    assert lines[5] == "• zz x1 = 0.00CHF ⚠️ Product not found"


def test_format_message_truncates_long_content():
    lines = [ReservationLine(id=f"id-{n}", quantity=1, title="T" * 50, price=1.0) for n in range(100)]
    message = format_reservation_message(make_reservation(lines))
    assert len(message) == MAX_CONTENT_LENGTH


@pytest.mark.asyncio
async def test_send_posts_content():
    captured = []

    def handler(request):
        captured.append(request)
        return httpx.Response(204)

    notifier = WebhookNotifier(url="https://chat.example/hook", transport=httpx.MockTransport(handler))
    await notifier.send(make_reservation())

    assert captured[0].method == "POST"
    assert str(captured[0].url) == "https://chat.example/hook"
    assert "Widget" in json.loads(captured[0].content)["content"]


@pytest.mark.asyncio
async def test_dispatch_swallows_http_errors(caplog):
    notifier = WebhookNotifier(
        url="https://chat.example/hook",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    task = notifier.dispatch(make_reservation())
    await notifier.drain()

    assert task.done()
    assert task.exception() is None
    assert "Notification failed for reservation 1" in caplog.text


@pytest.mark.asyncio
async def test_dispatch_without_url_is_skipped():
    notifier = WebhookNotifier(url=None)
    assert notifier.dispatch(make_reservation()) is None
    await notifier.drain()

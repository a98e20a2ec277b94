
import asyncio
import logging
from typing import Optional, Set

import httpx

from catalog_service import config
from catalog_service.errors import NotificationFailure
from catalog_service.models import Reservation

logger = logging.getLogger("notifier")

# Discord rejects message content above this length
MAX_CONTENT_LENGTH = 2000


def format_reservation_message(reservation: Reservation, currency: str = config.NOTIFY_CURRENCY) -> str:
    lines = []
    for line in reservation.items:
        quantity = line.quantity if isinstance(line.quantity, (int, float)) else 0
        amount = quantity * (line.price or 0.0)
        label = line.title or line.id
        text = f"• {label} x{line.quantity} = {amount:.2f}{currency}"
        if line.error is not None:
            text += f" ⚠️ {line.error.value}"
        lines.append(text)

    content = (
        f"📢 New reservation\n"
        f"👤 {reservation.customer}\n"
        f"🕒 {reservation.date}\n\n" + "\n".join(lines)
    )
    if len(content) > MAX_CONTENT_LENGTH:
        content = content[:MAX_CONTENT_LENGTH - 1] + "…"
    return content


class WebhookNotifier:
    def __init__(
        self,
        url: Optional[str] = config.DISCORD_WEBHOOK_URL,
        timeout_ms: int = config.NOTIFY_TIMEOUT_MS,
        currency: str = config.NOTIFY_CURRENCY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout_ms = timeout_ms
        self.currency = currency
        self._transport = transport
        self._pending: Set[asyncio.Task] = set()

    async def send(self, reservation: Reservation) -> None:
        content = format_reservation_message(reservation, self.currency)
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                # Convert ms to seconds
                timeout_sec = self.timeout_ms / 1000.0
                response = await client.post(self.url, json={"content": content}, timeout=timeout_sec)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationFailure(str(e)) from e

    async def _deliver(self, reservation: Reservation) -> None:
        try:
            await self.send(reservation)
            logger.info(f"Notification sent for reservation {reservation.id}")
        except NotificationFailure as e:
            logger.error(f"Notification failed for reservation {reservation.id}: {e}")

    def dispatch(self, reservation: Reservation) -> Optional[asyncio.Task]:
        """Fire and forget. Returns the background task, or None when no webhook is configured."""
        if not self.url:
            logger.debug(f"No webhook configured, skipping notification for reservation {reservation.id}")
            return None
        task = asyncio.create_task(self._deliver(reservation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for in-flight notifications."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

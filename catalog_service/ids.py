"""Identifier helpers for reservations and request correlation."""

import time
import uuid

_last_reservation_id = 0


def next_reservation_id() -> int:
    """Millisecond timestamp, bumped when needed so ids strictly increase."""
    global _last_reservation_id
    candidate = int(time.time() * 1000)
    if candidate <= _last_reservation_id:
        candidate = _last_reservation_id + 1
    _last_reservation_id = candidate
    return candidate


def generate_correlation_id() -> str:
    return str(uuid.uuid4())

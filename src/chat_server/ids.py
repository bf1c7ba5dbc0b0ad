"""
Identifier and Timestamp Generation

Message ids, store-wide sequence numbers and creation timestamps.

Timestamps are ISO 8601 UTC strings with a fixed microsecond precision,
so comparing two of them as strings gives the same answer as comparing
the instants they describe. The generator never hands out the same
timestamp twice; when the wall clock stalls or steps backwards it moves
one microsecond past the last value it issued.
"""

import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .errors import InvalidInput

logger = logging.getLogger(__name__)

ONE_MICROSECOND = timedelta(microseconds=1)


def new_message_id() -> str:
    """Return a fresh unique message identifier."""
    return uuid.uuid4().hex


def format_timestamp(moment: datetime) -> str:
    """Render a datetime in the canonical stored form."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp.

    Accepts a trailing "Z" and naive values (taken as UTC).

    Raises:
        ValueError: If the value is not a valid timestamp
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")
    moment = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def normalize_timestamp(value: str) -> str:
    """Re-render any accepted timestamp in the canonical stored form."""
    return format_timestamp(parse_timestamp(value))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimestampGenerator:
    """
    Issues strictly increasing creation timestamps.

    Thread-safe. Call observe() with persisted timestamps at startup so a
    clock that went backwards across a restart cannot produce values that
    sort before existing messages.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utc_now
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def next(self) -> str:
        """Return a timestamp later than every one issued or observed."""
        with self._lock:
            now = self._clock()
            if now.tzinfo is None:
                now = now.replace(tzinfo=timezone.utc)
            if self._last is not None and now <= self._last:
                now = self._last + ONE_MICROSECOND
            self._last = now
            return format_timestamp(now)

    def observe(self, value: Optional[str]) -> None:
        """Move the floor up to an already stored timestamp."""
        if not value:
            return
        moment = parse_timestamp(value)
        with self._lock:
            if self._last is None or moment > self._last:
                self._last = moment
                logger.debug(f"Timestamp floor raised to {value}")


class SequenceGenerator:
    """Thread-safe, store-wide monotonically increasing counter."""

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    @property
    def current(self) -> int:
        return self._value

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def observe(self, value: int) -> None:
        """Make sure the next value is greater than an existing one."""
        with self._lock:
            if value > self._value:
                self._value = value


def normalize_cursor(value) -> Optional[str]:
    """
    Turn a client supplied cursor into the canonical timestamp form.

    Empty values mean "from the beginning" and return None.

    Raises:
        InvalidInput: If the cursor is not a valid timestamp
    """
    if value is None or value == "":
        return None
    try:
        return normalize_timestamp(value)
    except ValueError as e:
        raise InvalidInput(f"Invalid cursor: {value!r}") from e

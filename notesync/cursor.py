"""
NoteSync cursor codec.

Note ids sort lexicographically in creation order: the first eight
characters are the milliseconds elapsed since 2000-01-01T00:00:00Z in
base 36 and the last two disambiguate notes created within the same
millisecond.

Encoding an instant with a zero suffix gives the smallest possible id
for that millisecond, so the same ``id`` index serves both the
pagination cursor and the since/until time filters.

e.g
    encode(datetime(2000, 1, 1, tzinfo=timezone.utc)) -> "0000000000"
    encode(datetime(2023, 1, 1, tzinfo=timezone.utc)) -> "99g67eo000"
"""

import typing as t
from datetime import datetime, timezone

from .constants import (
    CURSOR_ALPHABET,
    CURSOR_BASE,
    CURSOR_EPOCH,
    CURSOR_MAX_ELAPSED,
    CURSOR_PATTERN,
    CURSOR_SUFFIX,
    CURSOR_TIME_WIDTH,
)
from .exc import CursorRangeError


def to_milliseconds(instant: t.Union[datetime, int]) -> int:
    """Milliseconds since the unix epoch, naive datetimes are UTC."""
    if isinstance(instant, bool):
        raise TypeError(f"Invalid instant: {instant!r}")
    if isinstance(instant, int):
        return instant
    if not isinstance(instant, datetime):
        raise TypeError(f"Invalid instant: {instant!r}")
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    delta = instant - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (
        delta.days * 86_400_000
        + delta.seconds * 1000
        + delta.microseconds // 1000
    )


def encode(instant: t.Union[datetime, int]) -> str:
    """
    Encode an instant as a cursor.

    Args:
        instant (Union[datetime, int]): a datetime or milliseconds since
            the unix epoch.

    Returns:
        str: a 10 character cursor which sorts like the instant.

    Raises:
        CursorRangeError: if the instant is before 2000-01-01T00:00:00Z or
            too far in the future for eight base 36 digits.
    """
    elapsed: int = to_milliseconds(instant) - CURSOR_EPOCH
    if elapsed < 0:
        raise CursorRangeError(
            f"Instant {instant} is before the cursor epoch"
        )
    if elapsed > CURSOR_MAX_ELAPSED:
        raise CursorRangeError(
            f"Instant {instant} is beyond the cursor range"
        )

    digits: str = ""
    while True:
        elapsed, remainder = divmod(elapsed, CURSOR_BASE)
        digits = CURSOR_ALPHABET[remainder] + digits
        if elapsed == 0:
            break

    return digits.rjust(CURSOR_TIME_WIDTH, "0") + CURSOR_SUFFIX


def decode(cursor: str) -> datetime:
    """Return the UTC instant of the millisecond a cursor falls in."""
    if not isinstance(cursor, str) or not CURSOR_PATTERN.match(cursor):
        raise CursorRangeError(f"Invalid cursor: {cursor!r}")
    elapsed: int = int(cursor[:CURSOR_TIME_WIDTH], CURSOR_BASE)
    milliseconds: int = CURSOR_EPOCH + elapsed
    seconds, milliseconds = divmod(milliseconds, 1000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(
        microsecond=milliseconds * 1000
    )


def is_cursor(value: str) -> bool:
    """True if value has the shape of a cursor."""
    return isinstance(value, str) and CURSOR_PATTERN.match(value) is not None

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import re

MONTHS = {
    'jan': 1,
    'feb': 2,
    'mar': 3,
    'apr': 4,
    'may': 5,
    'jun': 6,
    'jul': 7,
    'aug': 8,
    'sep': 9,
    'oct': 10,
    'nov': 11,
    'dec': 12,
}

ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
MONTH_DAY = re.compile(r"^(\w{3,})\.?\s+(\d{1,2})$")
AGO = re.compile(r"^(\d+|an?|one)\s*(minute|min|hour|hr|day|week|month)s?\s*ago$", re.I)
AGE_SHORT = re.compile(r"^(\d+)([hdw])$", re.I)
TODAY_WORDS = {"today", "just now", "just posted", "new"}

# Epoch values above this are milliseconds
_EPOCH_MS_THRESHOLD = 10_000_000_000


def utcnow() -> datetime:
    """Naive UTC "now"; all stored timestamps are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _from_epoch(value: float) -> datetime | None:
    if value > _EPOCH_MS_THRESHOLD:
        value = value / 1000.0
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError):
        return None


def parse_posted_at(value: object, *, now: datetime | None = None) -> datetime | None:
    """Parse the posting date shapes providers hand back.

    Accepts datetimes, epoch seconds/milliseconds, ISO-8601 strings,
    relative phrases ("3 days ago", "an hour ago", "2d") and "Sep 17".
    Returns a naive UTC datetime, or None when the value is not understood.
    """
    now = _naive_utc(now) if now else utcnow()

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, (int, float)):
        return _from_epoch(float(value))

    raw = str(value).strip()
    if not raw:
        return None
    if raw.isdigit():
        return _from_epoch(float(raw))

    lowered = raw.lower()
    if lowered in TODAY_WORDS:
        return now

    m = ISO_DATE.match(raw)
    if m:
        year, month, day = map(int, m.groups())
        try:
            return datetime(year, month, day)
        except ValueError:
            return None

    try:
        return _naive_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        pass

    m = AGO.match(lowered)
    if m:
        amount_raw, unit = m.group(1), m.group(2)
        amount = 1 if amount_raw in ("a", "an", "one") else int(amount_raw)
        if unit in ("minute", "min"):
            return now - timedelta(minutes=amount)
        if unit in ("hour", "hr"):
            return now - timedelta(hours=amount)
        if unit == "day":
            return now - timedelta(days=amount)
        if unit == "week":
            return now - timedelta(weeks=amount)
        return now - timedelta(days=30 * amount)

    m = AGE_SHORT.match(lowered)
    if m:
        amount = int(m.group(1))
        unit = m.group(2)
        if unit == 'h':
            return now - timedelta(hours=amount)
        if unit == 'd':
            return now - timedelta(days=amount)
        return now - timedelta(weeks=amount)

    m = MONTH_DAY.match(raw)
    if m:
        month = MONTHS.get(m.group(1).lower()[:3])
        day = int(m.group(2))
        if month is None:
            return None
        try:
            candidate = datetime(now.year, month, day)
        except ValueError:
            return None
        # "Dec 30" read in early January belongs to last year
        if candidate - now > timedelta(days=30):
            try:
                candidate = datetime(now.year - 1, month, day)
            except ValueError:
                return None
        return candidate

    return None

"""Date helpers: interval offsets, day differences, date parsing, humanized durations."""

import re
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from projreview.errors import ParseError

INTERVAL_RE = re.compile(r'^([+-]?\d+)([bdwmqy])$')
_ISO_DATE_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})')
_COMPACT_DATE_RE = re.compile(r'^(\d{4})(\d{2})(\d{2})$')
_SCHEDULED_DATE_RE = re.compile(r'>(\d{4}-\d{2}-\d{2})')
_SCHEDULED_WEEK_RE = re.compile(r'>(\d{4})-W(\d{2})\b')


def is_valid_interval(interval: str) -> bool:
    return bool(interval) and INTERVAL_RE.match(interval.strip()) is not None


def split_interval(interval: str) -> tuple[int, str]:
    """Split '3w' into (3, 'w'). Raises ParseError on anything else."""
    m = INTERVAL_RE.match((interval or "").strip())
    if not m:
        raise ParseError(f"Invalid date interval '{interval}'")
    return int(m.group(1)), m.group(2)


def offset(base: date, interval: str) -> date:
    """Return `base` moved on by `interval` (nn + one of b, d, w, m, q, y).

    'b' counts business days (Monday to Friday). Months, quarters and years
    clamp to the end of shorter months, so 2025-01-31 + 1m is 2025-02-28.
    """
    num, unit = split_interval(interval)
    if num == 0:
        return base
    if unit == "b":
        return _add_business_days(base, num)
    if unit == "d":
        return base + timedelta(days=num)
    if unit == "w":
        return base + timedelta(weeks=num)
    if unit == "m":
        return base + relativedelta(months=num)
    if unit == "q":
        return base + relativedelta(months=3 * num)
    return base + relativedelta(years=num)


def _add_business_days(base: date, num: int) -> date:
    step = 1 if num > 0 else -1
    remaining = abs(num)
    d = base
    while remaining:
        d += timedelta(days=step)
        if d.weekday() < 5:
            remaining -= 1
    return d


def days_between(start: date, end: date) -> int:
    """Whole calendar days from start to end (negative if end is earlier)."""
    return (end - start).days


def parse_date_str(text: str) -> date:
    """Parse YYYY-MM-DD or YYYYMMDD.

    Anything after a leading ISO date (a time of day, a timezone suffix) is
    ignored, which is how older index files stored their dates.
    """
    text = (text or "").strip()
    m = _ISO_DATE_RE.match(text) or _COMPACT_DATE_RE.match(text)
    if not m:
        raise ParseError(f"Invalid date '{text}'")
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError as e:
        raise ParseError(f"Invalid date '{text}': {e}") from e


def to_iso(d: date | datetime | None) -> str | None:
    if d is None:
        return None
    if isinstance(d, datetime):
        d = d.date()
    return d.isoformat()


def relative_duration(start: date, end: date) -> str:
    """Humanized length of the gap between two dates, e.g. '3 weeks', 'a year'."""
    days = abs(days_between(start, end))
    if days <= 1:
        return "a day"
    if days < 7:
        return f"{days} days"
    if days < 26:
        weeks = round(days / 7)
        return "a week" if weeks == 1 else f"{weeks} weeks"
    if days < 46:
        return "a month"
    if days < 320:
        return f"{max(2, round(days / 30.4375))} months"
    if days < 548:
        return "a year"
    return f"{round(days / 365.25)} years"


def includes_scheduled_future_date(line: str, today: date, lookahead_days: int = 0) -> bool:
    """Is the line scheduled (>YYYY-MM-DD or >YYYY-Wnn) beyond today plus the look-ahead window?"""
    horizon = today + timedelta(days=lookahead_days)
    m = _SCHEDULED_DATE_RE.search(line)
    if m:
        try:
            return parse_date_str(m.group(1)) > horizon
        except ParseError:
            return False
    m = _SCHEDULED_WEEK_RE.search(line)
    if m:
        year, week = horizon.isocalendar()[:2]
        return (int(m.group(1)), int(m.group(2))) > (year, week)
    return False


def remove_scheduled_dates(line: str) -> str:
    """Strip any >date / >week scheduling markers from a line."""
    line = _SCHEDULED_DATE_RE.sub("", line)
    line = _SCHEDULED_WEEK_RE.sub("", line)
    return re.sub(r'\s{2,}', ' ', line).rstrip()


def time_ago(d: date, today: date) -> str:
    """'today', or how long before `today` the date was ('3 weeks ago')."""
    if d >= today:
        return "today"
    return f"{relative_duration(d, today)} ago"

"""Progress lines: 'Progress: 60@2025-03-01: comment' annotations in project notes.

Accepted shapes of the value after 'Progress:':
    n@YYYYMMDD: comment
    n:YYYY-MM-DD: comment
    YYYY-MM-DD: comment      (no percent; percent stays NaN)
The percent is clamped into 0..100. Lines need not be in date order: the
one with the latest date wins.
"""

import math
import re
from dataclasses import dataclass
from datetime import date

from projreview.dates import parse_date_str, to_iso
from projreview.errors import ParseError

NO_COMMENT = "(no comment found)"

_FIELD_RE = re.compile(r'^\s*progress:\s*(.+)$', re.IGNORECASE)
_VALUE_RE = re.compile(
    r'^(?:(\d{1,3})?\s*[@:]\s*)?(\d{4}-\d{2}-\d{2}|\d{8})(?:\s*:\s*|\s+|$)(.*)$')


@dataclass
class Progress:
    line_index: int
    percent_complete: float
    date: date | None
    comment: str

    @property
    def is_sentinel(self) -> bool:
        return self.date is None and self.comment == NO_COMMENT


def sentinel() -> Progress:
    return Progress(line_index=1, percent_complete=math.nan, date=None, comment=NO_COMMENT)


def progress_field_value(text: str) -> str | None:
    """Return the text after 'Progress:' (any case), or None if this isn't a progress line."""
    m = _FIELD_RE.match(text)
    return m.group(1).strip() if m else None


def parse_progress_value(line_index: int, value: str) -> Progress:
    """Parse the value part of one progress field. Raises ParseError if it has no date."""
    m = _VALUE_RE.match(value.strip())
    if not m:
        raise ParseError(f"Cannot parse progress value '{value}'")
    percent_str, date_str, comment = m.groups()
    if percent_str is not None:
        percent = min(100, max(0, int(percent_str)))
    else:
        percent = math.nan
    return Progress(line_index=line_index, percent_complete=percent,
                    date=parse_date_str(date_str), comment=comment.strip())


def most_recent_progress(lines: list[tuple[int, str]]) -> Progress:
    """Pick the progress record with the latest date from (line_index, text) pairs.

    Text may be the whole line ('Progress: ...') or just the field value.
    Returns the sentinel record if nothing parses.
    """
    best: Progress | None = None
    for line_index, text in lines:
        value = progress_field_value(text)
        if value is None:
            value = text
        try:
            record = parse_progress_value(line_index, value)
        except ParseError:
            continue
        if best is None or record.date > best.date:
            best = record
    return best if best is not None else sentinel()


def format_progress_line(percent: int | None, comment: str, today: date) -> str:
    percent_str = "" if percent is None else str(min(100, max(0, int(percent))))
    return f"Progress: {percent_str}@{to_iso(today)}: {comment.strip()}"

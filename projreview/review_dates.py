"""Review date calculation: next review date/days, due days and finished durations.

These are pure: they take a Project and return an updated copy, so the same
code serves freshly built projects and ones loaded from the index on a
later day.
"""

import dataclasses
import math
import sys
from datetime import date

from projreview.dates import (days_between, offset, parse_date_str, relative_duration, time_ago,
                              to_iso)
from projreview.errors import ParseError


def calc_review_fields(project, today: date):
    """Return a copy of `project` with next_review_date_str / next_review_days recalculated.

    First match wins:
      1. finished (completed or cancelled): no next review.
      2. start date after today: review on the start date.
      3. explicit @nextReview date: keep it.
      4. review interval: last reviewed date + interval, or today if never
         reviewed (or if the interval can't be parsed).
      5. otherwise nothing.
    Paused projects keep their date but never count as due.
    """
    if project.is_completed or project.is_cancelled:
        return dataclasses.replace(project, next_review_date_str=None,
                                   next_review_days=math.nan)

    next_date = None
    if project.start_date is not None and project.start_date > today:
        next_date = project.start_date
    elif project.next_review_override:
        try:
            next_date = parse_date_str(project.next_review_override)
        except ParseError:
            print(f"Warning: ignoring bad next review date '{project.next_review_override}' "
                  f"in {project.filename}", file=sys.stderr)
    if next_date is None and project.review_interval:
        if project.reviewed_date is not None:
            try:
                next_date = offset(project.reviewed_date, project.review_interval)
            except ParseError:
                next_date = today
        else:
            next_date = today

    if next_date is None:
        return dataclasses.replace(project, next_review_date_str=None,
                                   next_review_days=math.nan)
    days = math.nan if project.is_paused else days_between(today, next_date)
    return dataclasses.replace(project, next_review_date_str=to_iso(next_date),
                               next_review_days=days)


def calc_durations(project, today: date):
    """Return a copy with due_days and the completed/cancelled duration strings refreshed."""
    due_days = days_between(today, project.due_date) if project.due_date is not None else math.nan
    completed_duration = None
    cancelled_duration = None
    if project.completed_date is not None:
        completed_duration = _finished_duration(project.start_date, project.completed_date, today)
    elif project.cancelled_date is not None:
        cancelled_duration = _finished_duration(project.start_date, project.cancelled_date, today)
    return dataclasses.replace(project, due_days=due_days,
                               completed_duration=completed_duration,
                               cancelled_duration=cancelled_duration)


def _finished_duration(start: date | None, finished: date, today: date) -> str:
    # 'after 3 months' when we know the start, else '2 weeks ago'
    if start is not None:
        return f"after {relative_duration(start, finished)}"
    return time_ago(finished, today)


def recompute(project, today: date | None = None):
    """Refresh every date-derived field of `project` against `today`."""
    if today is None:
        today = date.today()
    return calc_review_fields(calc_durations(project, today), today)


def is_ready_for_review(project) -> bool:
    days = project.next_review_days
    if project.is_paused or project.is_completed or project.is_cancelled:
        return False
    if days is None or (isinstance(days, float) and math.isnan(days)):
        return False
    return days <= 0

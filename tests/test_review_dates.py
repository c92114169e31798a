"""Tests for projreview.review_dates."""

import math
from datetime import date

from projreview.project import Project
from projreview.review_dates import calc_review_fields, is_ready_for_review, recompute

TODAY = date(2025, 3, 10)


def _project(**kwargs):
    return Project(filename="p.md", title="P", **kwargs)


def test_interval_from_last_review():
    p = recompute(_project(review_interval="2w", reviewed_date=date(2025, 3, 1)), TODAY)
    assert p.next_review_date_str == "2025-03-15"
    assert p.next_review_days == 5
    assert not is_ready_for_review(p)


def test_recompute_is_copy_on_write():
    original = _project(reviewed_date=date(2025, 3, 1))
    updated = recompute(original, TODAY)
    assert original.next_review_date_str is None
    assert updated.next_review_date_str == "2025-03-08"
    assert updated is not original


def test_recompute_moves_with_today():
    p = recompute(_project(reviewed_date=date(2025, 3, 1)), TODAY)
    later = recompute(p, date(2025, 3, 20))
    assert later.next_review_date_str == "2025-03-08"
    assert later.next_review_days == -12


def test_recompute_is_idempotent():
    p = recompute(_project(reviewed_date=date(2025, 3, 1),
                           next_review_override="2025-03-12"), TODAY)
    assert recompute(p, TODAY) == p
    assert p.next_review_days == 2


def test_finished_clears_review_but_keeps_override():
    p = recompute(_project(is_cancelled=True, cancelled_date=date(2025, 3, 1),
                           next_review_override="2025-03-12"), TODAY)
    assert p.next_review_date_str is None
    assert math.isnan(p.next_review_days)
    assert p.next_review_override == "2025-03-12"


def test_start_date_beats_override():
    p = recompute(_project(start_date=date(2025, 4, 1), next_review_override="2025-03-12"), TODAY)
    assert p.next_review_date_str == "2025-04-01"


def test_start_date_today_does_not_count_as_future():
    p = recompute(_project(start_date=TODAY, reviewed_date=date(2025, 3, 5)), TODAY)
    assert p.next_review_date_str == "2025-03-12"


def test_bad_override_falls_through_to_interval(capsys):
    p = calc_review_fields(_project(reviewed_date=date(2025, 3, 1),
                                    next_review_override="someday"), TODAY)
    assert p.next_review_date_str == "2025-03-08"
    assert "Warning" in capsys.readouterr().err


def test_no_interval_leaves_review_unset():
    p = recompute(_project(review_interval=""), TODAY)
    assert p.next_review_date_str is None
    assert math.isnan(p.next_review_days)
    assert not is_ready_for_review(p)


def test_due_days():
    p = recompute(_project(due_date=date(2025, 3, 7)), TODAY)
    assert p.due_days == -3
    assert math.isnan(recompute(_project(), TODAY).due_days)


def test_paused_keeps_date_but_not_ready():
    p = recompute(_project(is_paused=True, reviewed_date=date(2025, 1, 1)), TODAY)
    assert p.next_review_date_str == "2025-01-08"
    assert math.isnan(p.next_review_days)
    assert not is_ready_for_review(p)


def test_overdue_is_ready():
    p = recompute(_project(reviewed_date=date(2025, 2, 1)), TODAY)
    assert is_ready_for_review(p)
    assert p.is_ready_for_review

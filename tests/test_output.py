"""Tests for projreview.output."""

import pytest

from projreview.config import ReviewConfig
from projreview.project import Project
from projreview.output import (decorated_title, format_project_line, format_project_list,
                               progress_summary, relative_days)


def _p(**kwargs):
    kwargs.setdefault("filename", "Work/P.md")
    kwargs.setdefault("title", "P")
    return Project(**kwargs)


def test_relative_days():
    assert relative_days(0) == "today"
    assert relative_days(1) == "tomorrow"
    assert relative_days(-1) == "yesterday"
    assert relative_days(3) == "in 3 days"
    assert relative_days(-14) == "2 weeks ago"
    assert relative_days(60) == "in 2 months"


def test_decorated_title():
    assert decorated_title(_p(), "list") == "P"
    assert decorated_title(_p(), "markdown") == "[[P]]"
    assert decorated_title(_p(is_completed=True), "markdown") == "[x] [[P]]"
    assert decorated_title(_p(is_cancelled=True), "list") == "~~P~~"
    assert decorated_title(_p(is_paused=True), "list") == "Paused: P"


def test_progress_summary():
    assert progress_summary(_p(percent_complete=60, last_progress_comment="going")) == \
        "60% done: going"
    assert progress_summary(_p(percent_complete=33, num_total_items=3)) == "33% done (of 3 items)"
    assert progress_summary(_p(percent_complete=0, num_total_items=1)) == "0% done (of 1 item)"
    assert progress_summary(_p()) == "(0 items)"


def test_format_active_line():
    p = _p(percent_complete=50, num_total_items=2, due_days=3, next_review_days=-2,
           next_actions_raw_content=["* [ ] call Bob"])
    line = format_project_line(p, ReviewConfig(), "markdown")
    assert line == ("- [[P]]\t50% done (of 2 items)\tdue in 3 days\tReview due **2 days ago**"
                    "\n\t- Next action: call Bob")


def test_format_future_review_plain():
    p = _p(next_review_days=7)
    assert format_project_line(p, ReviewConfig()) == "- P\t(0 items)\tReview in a week"


def test_format_paused_hides_dates():
    p = _p(is_paused=True, due_days=3)
    assert format_project_line(p, ReviewConfig()) == "- Paused: P\t(0 items)"


def test_format_finished_line():
    p = _p(is_completed=True, completed_duration="after 2 months", next_actions_raw_content=["x"])
    assert format_project_line(p, ReviewConfig(), "markdown") == \
        "- [x] [[P]]\t(Completed after 2 months)"
    p = _p(is_cancelled=True)
    assert format_project_line(p, ReviewConfig()) == "- ~~P~~\t(Cancelled cancelled)"


def test_unknown_style():
    with pytest.raises(ValueError):
        format_project_line(_p(), ReviewConfig(), "html")


def test_format_list_with_folders():
    cfg = ReviewConfig(display_grouped_by_folder=True)
    projects = [_p(title="A", folder="Home"), _p(title="B", folder="Work"),
                _p(title="C", folder="Work")]
    assert format_project_list(projects, cfg) == \
        "Home:\n- A\t(0 items)\nWork:\n- B\t(0 items)\n- C\t(0 items)"

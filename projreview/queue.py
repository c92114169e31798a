"""Review queue: filtering and ordering projects, and picking the next ones to review."""

import dataclasses
import math
import sys

from projreview.config import ReviewConfig
from projreview.project import Project, simplify_raw_content

SORT_KEYS = {
    "review": "next_review_days",
    "due": "due_days",
    "title": "title",
}


def _number_key(value) -> tuple:
    # NaN (and None) after every real number
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return (1, 0)
    return (0, value)


def _tag_rank(project: Project, config: ReviewConfig) -> int:
    try:
        return config.project_type_tags.index(project.project_tag)
    except ValueError:
        return len(config.project_type_tags)


def sort_key(project: Project, config: ReviewConfig) -> tuple:
    order = SORT_KEYS.get(config.display_order, "next_review_days")
    if order == "title":
        last = (0, project.title.lower())
    else:
        last = _number_key(getattr(project, order))
    folder = project.folder if config.display_grouped_by_folder else ""
    return (_tag_rank(project, config), folder, project.is_cancelled,
            project.is_completed, project.is_paused, last)


def filter_and_sort(projects: list[Project], config: ReviewConfig,
                    project_tag: str = "") -> list[Project]:
    """Projects to show, in display order.

    Filters by tag (if given), drops finished projects unless
    display_finished, keeps only ready ones if display_only_due, then sorts
    by tag order, folder (when grouping), finished/paused state and the
    display_order key.
    """
    selected = list(projects)
    if project_tag:
        selected = [p for p in selected if p.project_tag == project_tag]
    if not config.display_finished:
        selected = [p for p in selected if p.is_active]
    if config.display_only_due:
        selected = [p for p in selected if p.is_ready_for_review]
    return sorted(selected, key=lambda p: sort_key(p, config))


def _ready_in_order(projects: list[Project], config: ReviewConfig) -> list[Project]:
    return [p for p in filter_and_sort(projects, config) if p.is_ready_for_review]


def next_ready(projects: list[Project], config: ReviewConfig, note_exists) -> Project | None:
    """The first ready project in display order, or None.

    A project whose note has gone gives None (and a warning) rather than
    falling through to the next one.
    """
    ready = _ready_in_order(projects, config)
    if not ready:
        return None
    first = ready[0]
    if not note_exists(first.filename):
        print(f"Warning: note {first.filename} no longer exists; run 'projreview scan'",
              file=sys.stderr)
        return None
    return first


def next_n_ready(projects: list[Project], config: ReviewConfig, n: int,
                 note_exists) -> list[Project]:
    """Up to n ready projects in display order (n=0 means all of them).

    Skips a project whose filename repeats the one before it (one note
    indexed under two tags) and projects whose notes have gone.
    """
    out = []
    last_filename = None
    for p in _ready_in_order(projects, config):
        if n and len(out) >= n:
            break
        if p.filename == last_filename:
            continue
        last_filename = p.filename
        if not note_exists(p.filename):
            print(f"Warning: note {p.filename} no longer exists; skipping", file=sys.stderr)
            continue
        out.append(p)
    return out


def dedupe_by_content(items: list, seen: set | None = None) -> list:
    """Drop items whose content repeats an earlier one, ignoring block IDs.

    Items may be strings or anything with a `content` attribute. Only the
    content is compared, so the same task in two different notes counts as
    one. Pass `seen` to carry the match across several calls.
    """
    seen = set() if seen is None else seen
    out = []
    for item in items:
        content = item if isinstance(item, str) else getattr(item, "content", "")
        key = simplify_raw_content(content)
        if key in seen:
            continue
        seen.add(key)
        out.append(item)
    return out


def unique_next_actions(projects: list[Project]) -> list[Project]:
    """Copies of `projects` where a next action already listed for an earlier one is dropped."""
    seen = set()
    out = []
    for p in projects:
        actions = dedupe_by_content(p.next_actions_raw_content, seen)
        out.append(dataclasses.replace(p, next_actions_raw_content=actions))
    return out

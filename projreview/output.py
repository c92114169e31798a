"""Text output for project lists: one line (plus next actions) per project."""

import math
from datetime import date, timedelta

from projreview.config import ReviewConfig
from projreview.dates import relative_duration
from projreview.project import Project

STYLES = ("list", "markdown")


def relative_days(num_days: int) -> str:
    """Describe a day offset from today: 'today', 'in 3 days', '2 weeks ago'."""
    if num_days == 0:
        return "today"
    if num_days == 1:
        return "tomorrow"
    if num_days == -1:
        return "yesterday"
    base = date(2000, 1, 1)
    span = relative_duration(base, base + timedelta(days=num_days))
    return f"in {span}" if num_days > 0 else f"{span} ago"


def _has_number(value) -> bool:
    return value is not None and not (isinstance(value, float) and math.isnan(value))


def decorated_title(project: Project, style: str) -> str:
    if style == "markdown":
        name = f"[[{project.title}]]"
        if project.is_completed:
            return f"[x] {name}"
        if project.is_cancelled:
            return f"[-] {name}"
    else:
        name = project.title
        if project.is_completed:
            return f"{name} (done)"
        if project.is_cancelled:
            return f"~~{name}~~"
    if project.is_paused:
        return f"Paused: {name}"
    return name


def progress_summary(project: Project) -> str:
    """'60% done: comment' if there's a progress comment, else item stats."""
    percent = f"{project.percent_complete}%" if _has_number(project.percent_complete) else "0%"
    if project.last_progress_comment:
        return f"{percent} done: {project.last_progress_comment}"
    if project.num_total_items == 0:
        return "(0 items)"
    noun = "item" if project.num_total_items == 1 else "items"
    return f"{percent} done (of {project.num_total_items} {noun})"


def format_project_line(project: Project, config: ReviewConfig, style: str = "list") -> str:
    """One project as a bullet line with tab-separated extras.

    Finished projects show when they finished; open ones show progress,
    due date, when the next review is and any next actions.
    """
    if style not in STYLES:
        raise ValueError(f"Unknown output style '{style}'")
    parts = ["- ", decorated_title(project, style)]
    if project.is_completed:
        parts.append(f"\t(Completed {project.completed_duration or 'completed'})")
    elif project.is_cancelled:
        parts.append(f"\t(Cancelled {project.cancelled_duration or 'cancelled'})")
    else:
        parts.append(f"\t{progress_summary(project)}")
        if not project.is_paused:
            if _has_number(project.due_days):
                parts.append(f"\tdue {relative_days(int(project.due_days))}")
            if _has_number(project.next_review_days):
                when = relative_days(int(project.next_review_days))
                if project.next_review_days > 0:
                    parts.append(f"\tReview {when}")
                elif style == "markdown":
                    parts.append(f"\tReview due **{when}**")
                else:
                    parts.append(f"\tReview due {when}")
        for action in project.next_actions_raw_content:
            parts.append(f"\n\t- Next action: {_main_content(action)}")
    return "".join(parts)


def _main_content(raw: str) -> str:
    # drop the task marker ('* [ ] ', '- ', '+ [ ] ')
    text = raw.lstrip()
    for marker in ("* [ ] ", "- [ ] ", "+ [ ] ", "* ", "- ", "+ "):
        if text.startswith(marker):
            return text[len(marker):]
    return text


def format_project_list(projects: list[Project], config: ReviewConfig,
                        style: str = "list") -> str:
    """Lines for a whole list, with folder headings when grouping by folder."""
    lines = []
    last_folder = None
    for p in projects:
        if config.display_grouped_by_folder and p.folder != last_folder:
            heading = f"### {p.folder}" if style == "markdown" else f"{p.folder}:"
            lines.append(heading)
            last_folder = p.folder
        lines.append(format_project_line(p, config, style))
    return "\n".join(lines)

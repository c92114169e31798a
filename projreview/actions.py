"""Review actions: edit a project's note, then refresh its entry in the index."""

from datetime import date

from projreview.dates import is_valid_interval, offset, parse_date_str, to_iso
from projreview.index import ProjectIndex
from projreview.project import Project, update_metadata, validate_interval


def _current_project(index: ProjectIndex, filename: str, today: date) -> Project:
    project = index.get_one(filename, today)
    if project is None:
        # not indexed (yet): build it straight from the note; NotFoundError if it has gone
        note = index.note_store.get_note(filename)
        project = Project.from_note(note, index.config, "", today)
    return project


def _refresh(index: ProjectIndex, project: Project, today: date) -> Project:
    projects = index.update_one(project.filename, project, today)
    for p in projects:
        if p.filename == project.filename and p.project_tag == project.project_tag:
            return p
    return project


def finish_review(index: ProjectIndex, filename: str, today: date | None = None) -> Project:
    """Mark the project reviewed today and drop any one-off @nextReview date."""
    today = today or date.today()
    config = index.config
    project = _current_project(index, filename, today)
    update_metadata(index.note_store.handle(filename), config,
                    base_line=project.generate_metadata_line(config),
                    set_mentions={config.reviewed_mention: to_iso(today)},
                    remove_mentions=[config.next_review_mention])
    return _refresh(index, project, today)


def skip_review(index: ProjectIndex, filename: str, when: str,
                today: date | None = None) -> Project:
    """Put the next review off until `when`: an interval from today ('3d') or a date.

    Raises ParseError if `when` is neither.
    """
    today = today or date.today()
    config = index.config
    when = when.strip()
    next_date = offset(today, when) if is_valid_interval(when) else parse_date_str(when)
    project = _current_project(index, filename, today)
    update_metadata(index.note_store.handle(filename), config,
                    base_line=project.generate_metadata_line(config),
                    set_mentions={config.next_review_mention: to_iso(next_date)})
    return _refresh(index, project, today)


def set_review_interval(index: ProjectIndex, filename: str, interval: str,
                        today: date | None = None) -> Project:
    today = today or date.today()
    config = index.config
    interval = validate_interval(interval)
    project = _current_project(index, filename, today)
    update_metadata(index.note_store.handle(filename), config,
                    base_line=project.generate_metadata_line(config),
                    set_mentions={config.review_interval_mention: interval})
    return _refresh(index, project, today)


def complete_project(index: ProjectIndex, filename: str, today: date | None = None) -> Project:
    today = today or date.today()
    project = _current_project(index, filename, today)
    project = project.complete(index.note_store.handle(filename), index.config, today)
    return _refresh(index, project, today)


def cancel_project(index: ProjectIndex, filename: str, today: date | None = None) -> Project:
    today = today or date.today()
    project = _current_project(index, filename, today)
    project = project.cancel(index.note_store.handle(filename), index.config, today)
    return _refresh(index, project, today)


def toggle_pause_project(index: ProjectIndex, filename: str, comment: str = "",
                         today: date | None = None) -> Project:
    """Pause an active project or resume a paused one, optionally noting why."""
    today = today or date.today()
    project = _current_project(index, filename, today)
    project = project.toggle_pause(index.note_store.handle(filename), index.config,
                                   today, comment)
    return _refresh(index, project, today)


def add_progress(index: ProjectIndex, filename: str, comment: str,
                 percent: int | None = None, today: date | None = None) -> Project:
    today = today or date.today()
    project = _current_project(index, filename, today)
    project = project.add_progress_line(index.note_store.handle(filename), index.config,
                                        percent, comment, today)
    return _refresh(index, project, today)

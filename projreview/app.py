"""App: central object that wires together the data dir, notes, index and preferences."""

import pathlib
import sqlite3
from datetime import date

from projreview import actions
from projreview.config import ReviewConfig, get_data_dir, load_settings
from projreview.index import ProjectIndex
from projreview.notes import FileNoteStore
from projreview.project import Project
from projreview.queue import filter_and_sort, next_n_ready, next_ready
from projreview.store import JsonCacheStore, Preferences, init_db


class App:
    """Holds all shared state for a projreview session.

    Usage:
        app = App(data_dir="/path/to/data")
        app.init_db()                    # uses data_dir/projreview.db
        project = app.next_project()
        app.finish_review(project.filename)
        app.close()

    For testing:
        app = App(data_dir=tmp_path, notes_dir=tmp_notes)
        app.init_db(":memory:")
    """

    def __init__(self, data_dir: pathlib.Path | str | None = None,
                 notes_dir: pathlib.Path | str | None = None):
        if data_dir is None:
            data_dir = get_data_dir()
        self.data_dir = pathlib.Path(data_dir)
        self.settings = load_settings(self.data_dir)
        self.config = ReviewConfig.from_settings(self.settings)
        if notes_dir is None:
            notes_dir = self.settings.get("notes_dir") or pathlib.Path.cwd()
        self.notes_dir = pathlib.Path(notes_dir).expanduser()
        self.note_store = FileNoteStore(self.notes_dir)
        self.cache_store = JsonCacheStore(self.data_dir / "projects.json")
        self.conn: sqlite3.Connection | None = None
        self._index: ProjectIndex | None = None

    def init_db(self, db_path: pathlib.Path | str | None = None) -> sqlite3.Connection:
        """Initialize (or connect to) the preferences database.

        Args:
            db_path: Path to the SQLite database file, or ":memory:" for
                     in-memory databases (useful for testing). Defaults to
                     data_dir/projreview.db.
        """
        if db_path is None:
            db_path = self.data_dir / "projreview.db"
        self.conn = init_db(db_path)
        self._index = None
        return self.conn

    @property
    def index(self) -> ProjectIndex:
        if self._index is None:
            if self.conn is None:
                self.init_db()
            self._index = ProjectIndex(self.note_store, self.cache_store,
                                       Preferences(self.conn), self.config)
        return self._index

    # ─── queries ─────────────────────────────────────────────────────────

    def scan(self, today: date | None = None) -> list[Project]:
        return self.index.regenerate_all(today)

    def list_projects(self, tag: str = "", today: date | None = None) -> list[Project]:
        return filter_and_sort(self.index.read_all(today), self.config, tag)

    def next_project(self, today: date | None = None) -> Project | None:
        return next_ready(self.index.read_all(today), self.config,
                          self.note_store.note_exists)

    def next_projects(self, n: int = 0, today: date | None = None) -> list[Project]:
        return next_n_ready(self.index.read_all(today), self.config, n,
                            self.note_store.note_exists)

    def status(self, today: date | None = None) -> dict:
        projects = self.index.read_all(today)
        return {
            "total": len(projects),
            "active": sum(1 for p in projects if p.is_active and not p.is_paused),
            "paused": sum(1 for p in projects if p.is_active and p.is_paused),
            "completed": sum(1 for p in projects if p.is_completed),
            "cancelled": sum(1 for p in projects if p.is_cancelled),
            "ready": sum(1 for p in projects if p.is_ready_for_review),
            "generated_at": self.index.generated_at(),
        }

    # ─── review actions ──────────────────────────────────────────────────

    def finish_review(self, filename: str, today: date | None = None) -> Project:
        return actions.finish_review(self.index, filename, today)

    def skip_review(self, filename: str, when: str, today: date | None = None) -> Project:
        return actions.skip_review(self.index, filename, when, today)

    def set_review_interval(self, filename: str, interval: str,
                            today: date | None = None) -> Project:
        return actions.set_review_interval(self.index, filename, interval, today)

    def complete_project(self, filename: str, today: date | None = None) -> Project:
        return actions.complete_project(self.index, filename, today)

    def cancel_project(self, filename: str, today: date | None = None) -> Project:
        return actions.cancel_project(self.index, filename, today)

    def toggle_pause_project(self, filename: str, comment: str = "",
                             today: date | None = None) -> Project:
        return actions.toggle_pause_project(self.index, filename, comment, today)

    def add_progress(self, filename: str, comment: str, percent: int | None = None,
                     today: date | None = None) -> Project:
        return actions.add_progress(self.index, filename, comment, percent, today)

    def close(self):
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            self._index = None

"""Shared test fixtures."""

import pytest

from projreview.app import App
from projreview.config import ReviewConfig
from projreview.index import ProjectIndex
from projreview.notes import FileNoteStore
from projreview.store import JsonCacheStore, Preferences, init_db


def write_note(root, filename, text):
    path = root / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


@pytest.fixture
def config():
    return ReviewConfig()


@pytest.fixture
def notes_dir(tmp_path):
    """A notes folder with a handful of projects in different states."""
    root = tmp_path / "notes"
    root.mkdir()
    write_note(root, "Work/Alpha.md",
               "# Alpha\n#project @review(1w) @reviewed(2025-03-01)\n"
               "* [x] first\n* [ ] second\n* [ ] third\n")
    write_note(root, "Work/Beta.md",
               "# Beta\n#project @review(2w) @reviewed(2025-03-05)\n"
               "Progress: 40@2025-03-06: halfway there\n* [ ] task\n")
    write_note(root, "Home/Garden.md",
               "# Garden\n#area @review(1m)\n* [ ] weed\n")
    write_note(root, "Work/Done.md",
               "# Done\n#project @completed(2025-02-01)\n* [x] all\n")
    write_note(root, "Archive/Old.md",
               "# Old\n#project @review(1w)\n")
    write_note(root, "Plain.md", "# Plain\nJust a note\n")
    return root


@pytest.fixture
def db_conn():
    """In-memory SQLite database with schema applied."""
    conn = init_db(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def index(tmp_path, notes_dir, db_conn, config):
    """ProjectIndex over the sample notes with a temporary cache file."""
    return ProjectIndex(FileNoteStore(notes_dir), JsonCacheStore(tmp_path / "data" / "projects.json"),
                        Preferences(db_conn), config)


@pytest.fixture
def app(tmp_path, notes_dir):
    """App instance with tmp data dir and in-memory DB."""
    data_dir = tmp_path / "data"
    data_dir.mkdir(exist_ok=True)
    a = App(data_dir=data_dir, notes_dir=notes_dir)
    a.init_db(":memory:")
    yield a
    a.close()

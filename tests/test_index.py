"""Tests for projreview.index: build, staleness, point updates."""

import json
import time
from datetime import date

import pytest

from projreview.config import ReviewConfig
from projreview.errors import PersistenceError
from projreview.index import GENERATED_AT_PREF, ProjectIndex, folder_matches
from projreview.notes import FileNoteStore
from projreview.store import JsonCacheStore, Preferences

TODAY = date(2025, 3, 10)


def write_note(root, filename, text):
    path = root / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def _index_with(tmp_path, notes_dir, db_conn, **config):
    return ProjectIndex(FileNoteStore(notes_dir), JsonCacheStore(tmp_path / "cache.json"),
                        Preferences(db_conn), ReviewConfig(**config))


def test_folder_matches():
    assert folder_matches("Work", "Work")
    assert folder_matches("Work/Sub", "Work")
    assert folder_matches("Work/Sub", "Work/")
    assert not folder_matches("Workshop", "Work")
    assert folder_matches("/", "/")
    assert not folder_matches("Work", "/")


def test_regenerate_all_builds_in_tag_order(index):
    projects = index.regenerate_all(TODAY)
    assert [p.filename for p in projects] == [
        "Archive/Old.md", "Work/Alpha.md", "Work/Beta.md", "Work/Done.md", "Home/Garden.md"]
    assert [p.project_tag for p in projects] == ["#project"] * 4 + ["#area"]
    assert index.cache_store.exists()
    assert index.generated_at() is not None


def test_regenerate_writes_json_document(index):
    index.regenerate_all(TODAY)
    items = json.loads(index.cache_store.path.read_text())
    assert len(items) == 5
    done = next(i for i in items if i["filename"] == "Work/Done.md")
    assert done["completed_date"] == "2025-02-01"
    assert done["next_review_days"] is None
    assert "id" not in done


def test_folders_to_ignore(tmp_path, notes_dir, db_conn):
    index = _index_with(tmp_path, notes_dir, db_conn, folders_to_ignore=["Archive"])
    filenames = [p.filename for p in index.regenerate_all(TODAY)]
    assert "Archive/Old.md" not in filenames
    assert len(filenames) == 4


def test_folders_to_include(tmp_path, notes_dir, db_conn):
    index = _index_with(tmp_path, notes_dir, db_conn, folders_to_include=["Work"])
    filenames = [p.filename for p in index.regenerate_all(TODAY)]
    assert filenames == ["Work/Alpha.md", "Work/Beta.md", "Work/Done.md"]


def test_ignored_folder_inside_included_folder(tmp_path, notes_dir, db_conn):
    write_note(notes_dir, "Work/Archive/Old.md", "# Old work\n#project\n")
    index = _index_with(tmp_path, notes_dir, db_conn,
                        folders_to_include=["Work"], folders_to_ignore=["Work/Archive"])
    filenames = [p.filename for p in index.regenerate_all(TODAY)]
    assert filenames == ["Work/Alpha.md", "Work/Beta.md", "Work/Done.md"]


def test_root_folder_rule(tmp_path, notes_dir, db_conn):
    write_note(notes_dir, "Top.md", "# Top\n#project\n")
    index = _index_with(tmp_path, notes_dir, db_conn, folders_to_include=["/"])
    assert [p.filename for p in index.regenerate_all(TODAY)] == ["Top.md"]


def test_special_folders_skipped(tmp_path, notes_dir, db_conn):
    write_note(notes_dir, "@Templates/T.md", "# T\n#project\n")
    index = _index_with(tmp_path, notes_dir, db_conn)
    assert "@Templates/T.md" not in [p.filename for p in index.regenerate_all(TODAY)]


def test_teamspace_exclusion(tmp_path, notes_dir, db_conn):
    write_note(notes_dir, "Shared/Team.md", "---\nteamspace: team1\n---\n# Team\n#project\n")
    index = _index_with(tmp_path, notes_dir, db_conn)
    assert "Shared/Team.md" in [p.filename for p in index.regenerate_all(TODAY)]
    index = _index_with(tmp_path, notes_dir, db_conn, teamspaces_to_exclude=["team1"])
    assert "Shared/Team.md" not in [p.filename for p in index.regenerate_all(TODAY)]


def test_note_with_two_tags_indexed_twice(tmp_path, notes_dir, db_conn):
    write_note(notes_dir, "Both.md", "# Both\n#project #area\n")
    index = _index_with(tmp_path, notes_dir, db_conn)
    both = [p for p in index.regenerate_all(TODAY) if p.filename == "Both.md"]
    assert [p.project_tag for p in both] == ["#project", "#area"]


def test_untitled_note_skipped_with_warning(tmp_path, notes_dir, db_conn, capsys):
    write_note(notes_dir, "Untitled.md", "#project @review(1w)\n")
    index = _index_with(tmp_path, notes_dir, db_conn)
    projects = index.regenerate_all(TODAY)
    assert "Untitled.md" not in [p.filename for p in projects]
    assert len(projects) == 5
    assert "Warning" in capsys.readouterr().err


def test_should_regenerate_staleness(index):
    assert index.should_regenerate()
    index.regenerate_all(TODAY)
    generated = index.generated_at()
    assert not index.should_regenerate(now=generated + 30 * 60)
    assert index.should_regenerate(now=generated + 2 * 3600)


def test_should_regenerate_without_timestamp(index):
    index.regenerate_all(TODAY)
    index.preferences.set(GENERATED_AT_PREF, None)
    assert index.should_regenerate()


def test_read_all_uses_fresh_cache(index, notes_dir):
    index.regenerate_all(TODAY)
    write_note(notes_dir, "Work/New.md", "# New\n#project\n")
    filenames = [p.filename for p in index.read_all(TODAY)]
    assert "Work/New.md" not in filenames
    assert len(filenames) == 5


def test_read_all_regenerates_when_stale(index, notes_dir):
    index.regenerate_all(TODAY)
    index.preferences.set(GENERATED_AT_PREF, index.generated_at() - 2 * 3600)
    write_note(notes_dir, "Work/New.md", "# New\n#project\n")
    assert "Work/New.md" in [p.filename for p in index.read_all(TODAY)]


def test_read_all_recomputes_against_today(index):
    index.regenerate_all(TODAY)
    later = {p.filename: p for p in index.read_all(date(2025, 3, 20))}
    assert later["Work/Beta.md"].next_review_days == -1
    assert later["Work/Beta.md"].is_ready_for_review


def test_read_all_normalises_legacy_datetimes(index):
    index.cache_store.replace_all([
        {"filename": "Work/Alpha.md", "title": "Alpha", "folder": "Work", "project_tag": "#project",
         "review_interval": "1w", "reviewed_date": "2025-03-01T00:00:00.000Z",
         "next_review_date_str": "2025-03-08T00:00:00.000Z"},
        {"filename": "Work/Beta.md", "title": "Beta", "folder": "Work", "project_tag": "#project",
         "review_interval": "2w", "reviewed_date": "2025-03-05"},
    ])
    index.preferences.set(GENERATED_AT_PREF, time.time())
    alpha = index.read_all(TODAY)[0]
    assert alpha.reviewed_date == date(2025, 3, 1)
    assert alpha.next_review_date_str == "2025-03-08"
    assert alpha.next_review_days == -2
    # any rewrite stores plain dates
    index.update_one("Work/Beta.md", True, TODAY)
    stored = index.cache_store.load_all()[0]
    assert stored["reviewed_date"] == "2025-03-01"
    assert stored["next_review_date_str"] == "2025-03-08"


def test_read_all_recovers_from_corrupt_cache(index, capsys):
    index.regenerate_all(TODAY)
    index.cache_store.path.write_text("[{broken")
    projects = index.read_all(TODAY)
    assert len(projects) == 5
    assert "regenerating" in capsys.readouterr().err


def test_update_one_replaces_entry_in_place(index, notes_dir):
    before = index.regenerate_all(TODAY)
    write_note(notes_dir, "Work/Beta.md",
               "# Beta\n#project @review(2w) @reviewed(2025-03-10)\n* [x] task\n")
    after = index.update_one("Work/Beta.md", True, TODAY)
    assert len(after) == len(before)
    beta = [p for p in after if p.filename == "Work/Beta.md"]
    assert len(beta) == 1
    assert beta[0].reviewed_date == TODAY
    assert beta[0].next_review_days == 14
    assert beta[0].percent_complete == 100
    # the rest are untouched
    others_before = [p.to_dict() for p in before if p.filename != "Work/Beta.md"]
    others_after = [p.to_dict() for p in after if p.filename != "Work/Beta.md"]
    assert others_after == others_before
    assert len(index.cache_store.load_all()) == len(before)


def test_update_one_keeps_project_tag(tmp_path, notes_dir, db_conn):
    write_note(notes_dir, "Both.md", "# Both\n#project #area\n")
    index = _index_with(tmp_path, notes_dir, db_conn)
    projects = index.regenerate_all(TODAY)
    area = next(p for p in projects if p.filename == "Both.md" and p.project_tag == "#area")
    after = index.update_one("Both.md", area, TODAY)
    both = [p for p in after if p.filename == "Both.md"]
    assert [p.project_tag for p in both] == ["#area"]


def test_update_one_unknown_file_regenerates(index, notes_dir, capsys):
    index.regenerate_all(TODAY)
    write_note(notes_dir, "Work/New.md", "# New\n#project\n")
    projects = index.update_one("Work/New.md", True, TODAY)
    assert "Work/New.md" in [p.filename for p in projects]
    assert "not in project index" in capsys.readouterr().err


def test_update_one_deleted_note_regenerates(index, notes_dir, capsys):
    index.regenerate_all(TODAY)
    (notes_dir / "Work" / "Beta.md").unlink()
    projects = index.update_one("Work/Beta.md", True, TODAY)
    assert "Work/Beta.md" not in [p.filename for p in projects]
    assert len(projects) == 4
    assert "Warning" in capsys.readouterr().err


def test_delete_one(index):
    index.regenerate_all(TODAY)
    projects = index.delete_one("Work/Alpha.md", TODAY)
    assert "Work/Alpha.md" not in [p.filename for p in projects]
    assert len(index.cache_store.load_all()) == 4


def test_get_one(index):
    index.regenerate_all(TODAY)
    assert index.get_one("Home/Garden.md", TODAY).project_tag == "#area"
    assert index.get_one("Plain.md", TODAY) is None


def test_write_failure_keeps_old_document_and_timestamp(index, monkeypatch):
    index.regenerate_all(TODAY)
    old_text = index.cache_store.path.read_text()
    old_generated = index.generated_at()

    def fail(items):
        raise PersistenceError("disk full")

    monkeypatch.setattr(index.cache_store, "replace_all", fail)
    with pytest.raises(PersistenceError):
        index.regenerate_all(TODAY)
    assert index.cache_store.path.read_text() == old_text
    assert index.generated_at() == old_generated


def test_missing_notes_root_raises(tmp_path, db_conn):
    from projreview.errors import NotFoundError
    index = _index_with(tmp_path, tmp_path / "nowhere", db_conn)
    with pytest.raises(NotFoundError):
        index.regenerate_all(TODAY)

"""ProjectIndex: the persisted list of every tracked project, with staleness and point updates."""

import sys
import time
from datetime import date

from projreview.config import ROOT_FOLDER, ReviewConfig
from projreview.errors import ConstructionError, NotFoundError
from projreview.notes import Note
from projreview.project import Project
from projreview.review_dates import recompute

GENERATED_AT_PREF = "projects_index_generated_at"


def folder_matches(folder: str, rule: str) -> bool:
    """True if `folder` is `rule` or inside it. '/' means the root folder only."""
    rule = rule.strip()
    if rule in ("", ROOT_FOLDER):
        return folder == ROOT_FOLDER
    rule = rule.rstrip("/")
    return folder == rule or folder.startswith(rule + "/")


def note_in_scope(note: Note, config: ReviewConfig) -> bool:
    """Apply teamspace exclusions, then folder include rules, then folder ignore rules.

    An ignored folder can sit inside an included one.
    """
    if note.teamspace_id and note.teamspace_id in config.teamspaces_to_exclude:
        return False
    if config.folders_to_include:
        if not any(folder_matches(note.folder, f) for f in config.folders_to_include):
            return False
    elif note.folder != ROOT_FOLDER and note.folder.split("/", 1)[0].startswith("@"):
        return False
    return not any(folder_matches(note.folder, f) for f in config.folders_to_ignore)


class ProjectIndex:
    """Builds, reads and updates the project index.

    Usage:
        index = ProjectIndex(note_store, cache_store, prefs, config)
        projects = index.read_all()          # regenerates if stale
        index.update_one("Work/Alpha.md")    # after changing that note
    """

    def __init__(self, note_store, cache_store, preferences, config: ReviewConfig):
        self.note_store = note_store
        self.cache_store = cache_store
        self.preferences = preferences
        self.config = config

    def generated_at(self) -> float | None:
        value = self.preferences.get(GENERATED_AT_PREF)
        return float(value) if value is not None else None

    def should_regenerate(self, now: float | None = None) -> bool:
        if not self.cache_store.exists():
            return True
        generated = self.generated_at()
        if generated is None:
            return True
        if now is None:
            now = time.time()
        return (now - generated) > self.config.max_age_hours * 3600

    def build_projects(self, today: date | None = None) -> list[Project]:
        """Scan the note store and construct one Project per matching note per matching tag."""
        today = today or date.today()
        notes = [n for n in self.note_store.list_notes() if note_in_scope(n, self.config)]
        projects = []
        for tag in self.config.project_type_tags:
            for note in notes:
                if tag not in note.hashtags:
                    continue
                try:
                    projects.append(Project.from_note(note, self.config, tag, today))
                except ConstructionError as e:
                    print(f"Warning: skipping {note.filename}: {e}", file=sys.stderr)
        return projects

    def regenerate_all(self, today: date | None = None) -> list[Project]:
        projects = self.build_projects(today)
        self.write_all(projects)
        return projects

    def write_all(self, projects: list[Project]) -> None:
        """Replace the whole document and stamp the generation time.

        A PersistenceError leaves the old document and timestamp as they were.
        """
        self.cache_store.replace_all([p.to_dict() for p in projects])
        self.preferences.set(GENERATED_AT_PREF, time.time())

    def _load(self, today: date) -> list[Project]:
        projects = []
        for item in self.cache_store.load_all():
            try:
                projects.append(recompute(Project.from_dict(item), today))
            except ConstructionError as e:
                print(f"Warning: dropping index entry: {e}", file=sys.stderr)
        return projects

    def read_all(self, today: date | None = None) -> list[Project]:
        today = today or date.today()
        if self.should_regenerate():
            return self.regenerate_all(today)
        try:
            return self._load(today)
        except (OSError, ValueError) as e:
            print(f"Warning: cannot read project index ({e}); regenerating", file=sys.stderr)
            return self.regenerate_all(today)

    def get_one(self, filename: str, today: date | None = None) -> Project | None:
        for p in self.read_all(today):
            if p.filename == filename:
                return p
        return None

    def update_one(self, filename: str, project: Project | bool | None = True,
                   today: date | None = None) -> list[Project]:
        """Replace the entries for `filename` with a fresh build from the live note.

        Pass project=None to just delete them. A Project argument supplies the
        tag to rebuild under; True rebuilds under the tag(s) already indexed.
        If the file isn't in the index, or its note has gone, the whole
        index is regenerated instead.
        """
        today = today or date.today()
        projects = self.read_all(today)
        existing = [p for p in projects if p.filename == filename]
        if not existing:
            print(f"Warning: {filename} not in project index; regenerating", file=sys.stderr)
            return self.regenerate_all(today)

        kept = [p for p in projects if p.filename != filename]
        if project is not None and project is not False:
            if isinstance(project, Project):
                tags = [project.project_tag]
            else:
                tags = [p.project_tag for p in existing]
            try:
                note = self.note_store.get_note(filename)
                for tag in tags:
                    kept.append(Project.from_note(note, self.config, tag, today))
            except (NotFoundError, ConstructionError) as e:
                print(f"Warning: cannot rebuild {filename} ({e}); regenerating", file=sys.stderr)
                return self.regenerate_all(today)
        self.write_all(kept)
        return kept

    def delete_one(self, filename: str, today: date | None = None) -> list[Project]:
        return self.update_one(filename, None, today)

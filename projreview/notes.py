"""Note store: markdown notes on disk, parsed into paragraphs, hashtags and @mentions.

Paragraph types follow the usual plain-text task conventions:
    * task / - [ ] task / * [ ] task   open task
    - [x] / * [x]                      done task
    - [-] / * [-]                      cancelled task
    - [>] / * [>]                      scheduled (moved) task
    + [ ] checklist / + [x] / + [-] / + [>]
    # Heading                          title (first line) or heading
Line indexes count from the first line after any YAML frontmatter.
"""

import pathlib
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime

from projreview.config import ROOT_FOLDER
from projreview.errors import NotFoundError

NOTE_SUFFIXES = (".md", ".txt")

_TASK_RE = re.compile(r'^(\s*)([*-]|\+)\s\[([ xX\->])\]\s?(.*)$')
_BARE_TASK_RE = re.compile(r'^(\s*)\*\s(.*)$')
_HEADING_RE = re.compile(r'^(#{1,6})\s+(.*)$')
_HASHTAG_RE = re.compile(r'(?<![\w#/])#[A-Za-z][\w/\-]*')
_MENTION_RE = re.compile(r'(?<![\w@])@[A-Za-z][\w/\-]*(?:\([^)]*\))?')

_TASK_TYPES = {" ": "open", "x": "done", "X": "done", "-": "cancelled", ">": "scheduled"}
_CHECKLIST_TYPES = {" ": "checklist", "x": "checklistDone", "X": "checklistDone",
                    "-": "checklistCancelled", ">": "checklistScheduled"}


@dataclass
class Paragraph:
    line_index: int
    type: str
    content: str
    raw_content: str
    heading_level: int = 0

    @property
    def is_open(self) -> bool:
        return self.type in ("open", "checklist")

    @property
    def is_done(self) -> bool:
        return self.type in ("done", "checklistDone")


@dataclass
class Note:
    filename: str
    folder: str
    title: str | None
    paragraphs: list[Paragraph]
    hashtags: list[str] = field(default_factory=list)
    mentions: list[str] = field(default_factory=list)
    frontmatter: dict = field(default_factory=dict)
    changed_date: datetime | None = None
    teamspace_id: str | None = None


def folder_from_filename(filename: str) -> str:
    if "/" not in filename:
        return ROOT_FOLDER
    return filename.rsplit("/", 1)[0]


def parse_paragraph(line_index: int, line: str) -> Paragraph:
    m = _TASK_RE.match(line)
    if m:
        marker, state, content = m.group(2), m.group(3), m.group(4)
        types = _CHECKLIST_TYPES if marker == "+" else _TASK_TYPES
        return Paragraph(line_index, types[state], content, line)
    m = _BARE_TASK_RE.match(line)
    if m:
        return Paragraph(line_index, "open", m.group(2), line)
    m = _HEADING_RE.match(line)
    if m:
        level = len(m.group(1))
        ptype = "title" if line_index == 0 and level == 1 else "heading"
        return Paragraph(line_index, ptype, m.group(2).strip(), line, heading_level=level)
    if not line.strip():
        return Paragraph(line_index, "empty", "", line)
    return Paragraph(line_index, "text", line, line)


def split_frontmatter(text: str) -> tuple[str, str]:
    """Return (frontmatter block including its --- fences and newline, body)."""
    if text.startswith("---"):
        end = text.find("\n---", 3)
        if end != -1:
            close = text.find("\n", end + 4)
            if close == -1:
                return text, ""
            return text[:close + 1], text[close + 1:]
    return "", text


def _frontmatter_value(v: str):
    if v.startswith("[") and v.endswith("]"):
        return [x.strip().strip('"').strip("'") for x in v[1:-1].split(",") if x.strip()]
    if len(v) >= 2 and v[0] == v[-1] and v[0] in "\"'":
        return v[1:-1]
    if v.lower() in ("true", "false"):
        return v.lower() == "true"
    if v.isdigit():
        return int(v)
    return v


def parse_frontmatter(text: str) -> tuple[dict, str]:
    """Flat `key: value` frontmatter as a dict, plus the body after it."""
    front, body = split_frontmatter(text)
    meta = {}
    # drop the two fence lines
    for line in front.splitlines()[1:-1]:
        k, sep, v = line.partition(":")
        if sep:
            meta[k.strip()] = _frontmatter_value(v.strip())
    return meta, body


def _unique_in_order(items: list[str]) -> list[str]:
    seen = set()
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def parse_note(filename: str, text: str, changed_date: datetime | None = None) -> Note:
    meta, body = parse_frontmatter(text)
    lines = body.split("\n")
    if lines and lines[-1] == "":
        lines = lines[:-1]
    paragraphs = [parse_paragraph(i, line) for i, line in enumerate(lines)]

    title = None
    if paragraphs and paragraphs[0].type == "title" and paragraphs[0].content:
        title = paragraphs[0].content
    elif meta.get("title"):
        title = str(meta["title"])

    hashtags = []
    mentions = []
    for p in paragraphs:
        if p.type in ("title", "heading"):
            continue
        hashtags.extend(_HASHTAG_RE.findall(p.raw_content))
        mentions.extend(_MENTION_RE.findall(p.raw_content))

    teamspace = meta.get("teamspace")
    return Note(filename=filename, folder=folder_from_filename(filename), title=title,
                paragraphs=paragraphs, hashtags=_unique_in_order(hashtags),
                mentions=_unique_in_order(mentions), frontmatter=meta,
                changed_date=changed_date,
                teamspace_id=str(teamspace) if teamspace else None)


class NoteHandle:
    """Read and write access to one stored note, by paragraph line index."""

    def __init__(self, path: pathlib.Path, filename: str):
        self.path = path
        self.filename = filename

    def read(self) -> Note:
        try:
            text = self.path.read_text()
        except FileNotFoundError as e:
            raise NotFoundError(f"Note not found: {self.filename}") from e
        changed = datetime.fromtimestamp(self.path.stat().st_mtime)
        return parse_note(self.filename, text, changed)

    def _edit_lines(self, edit) -> None:
        try:
            text = self.path.read_text()
        except FileNotFoundError as e:
            raise NotFoundError(f"Note not found: {self.filename}") from e
        front, body = split_frontmatter(text)
        lines = body.split("\n")
        trailing_newline = bool(lines) and lines[-1] == ""
        if trailing_newline:
            lines = lines[:-1]
        edit(lines)
        new_body = "\n".join(lines) + ("\n" if trailing_newline or not body else "")
        self.path.write_text(front + new_body)

    def write_paragraph(self, line_index: int, content: str) -> None:
        def edit(lines):
            if line_index >= len(lines):
                lines.extend([""] * (line_index - len(lines) + 1))
            lines[line_index] = content
        self._edit_lines(edit)

    def insert_paragraph(self, line_index: int, content: str) -> None:
        def edit(lines):
            lines.insert(min(line_index, len(lines)), content)
        self._edit_lines(edit)


class FileNoteStore:
    """Notes kept as markdown files under one root directory.

    Filenames are paths relative to the root, with '/' separators.
    """

    def __init__(self, root: pathlib.Path | str):
        self.root = pathlib.Path(root)

    def _path(self, filename: str) -> pathlib.Path:
        return self.root / filename

    def note_exists(self, filename: str) -> bool:
        return self._path(filename).is_file()

    def handle(self, filename: str) -> NoteHandle:
        return NoteHandle(self._path(filename), filename)

    def get_note(self, filename: str) -> Note:
        return self.handle(filename).read()

    def list_notes(self) -> list[Note]:
        """All notes under the root, in sorted path order. Hidden directories are skipped."""
        if not self.root.is_dir():
            raise NotFoundError(f"Notes folder not found: {self.root}")
        notes = []
        self._scan_directory(self.root, notes)
        return notes

    def _scan_directory(self, dirpath: pathlib.Path, notes: list):
        try:
            entries = sorted(dirpath.iterdir())
        except PermissionError:
            return
        for item in entries:
            if item.is_dir() and not item.name.startswith("."):
                self._scan_directory(item, notes)
            elif item.is_file() and item.suffix in NOTE_SUFFIXES:
                filename = item.relative_to(self.root).as_posix()
                try:
                    notes.append(self.get_note(filename))
                except (OSError, UnicodeDecodeError) as e:
                    print(f"Warning: cannot read {item}: {e}", file=sys.stderr)

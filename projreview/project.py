"""Project: one reviewable note, with its dates, counts, progress and lifecycle state."""

import dataclasses
import math
import re
import sys
import uuid
from dataclasses import dataclass, field
from datetime import date

from projreview.config import ReviewConfig
from projreview.dates import (includes_scheduled_future_date, is_valid_interval, parse_date_str,
                              remove_scheduled_dates, to_iso)
from projreview.errors import ConstructionError, ParseError
from projreview.notes import Note, NoteHandle, Paragraph
from projreview.progress import format_progress_line, most_recent_progress, progress_field_value
from projreview.review_dates import is_ready_for_review, recompute

DATE_FIELDS = ("start_date", "due_date", "reviewed_date", "completed_date", "cancelled_date")
NAN_FIELDS = ("due_days", "next_review_days", "percent_complete")
OPTIONAL_FIELDS = ("icon", "icon_color")
EPHEMERAL_FIELDS = ("id",)

_BLOCK_ID_RE = re.compile(r'\^[A-Za-z0-9]{6}(?=[^A-Za-z0-9]|$)')


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class Project:
    filename: str
    title: str
    folder: str = "/"
    project_tag: str = ""
    start_date: date | None = None
    due_date: date | None = None
    reviewed_date: date | None = None
    completed_date: date | None = None
    cancelled_date: date | None = None
    due_days: float = math.nan
    review_interval: str = "1w"
    next_review_override: str | None = None
    next_review_date_str: str | None = None
    next_review_days: float = math.nan
    completed_duration: str | None = None
    cancelled_duration: str | None = None
    percent_complete: float = math.nan
    last_progress_comment: str = ""
    most_recent_progress_line_index: int | None = None
    num_open_items: int = 0
    num_completed_items: int = 0
    num_waiting_items: int = 0
    num_future_items: int = 0
    num_total_items: int = 0
    is_completed: bool = False
    is_cancelled: bool = False
    is_paused: bool = False
    icon: str = ""
    icon_color: str = ""
    next_actions_raw_content: list[str] = field(default_factory=list)
    metadata_line_index: int | None = None
    id: str = field(default_factory=_new_id, compare=False)

    @property
    def is_active(self) -> bool:
        return not self.is_completed and not self.is_cancelled

    @property
    def is_ready_for_review(self) -> bool:
        return is_ready_for_review(self)

    # ─── construction ────────────────────────────────────────────────────

    @classmethod
    def from_note(cls, note: Note | None, config: ReviewConfig, project_tag: str = "",
                  today: date | None = None) -> "Project":
        """Build a Project from a note's current content.

        Raises ConstructionError if the note has no title; anything else that
        is missing or malformed just leaves the matching field unset.
        """
        if note is None or not note.title:
            name = note.filename if note is not None else "<none>"
            raise ConstructionError(f"Note {name} has no title")
        if today is None:
            today = date.today()
        paras = note.paragraphs

        metadata_index = find_metadata_line(paras, config)
        metadata_line = paras[metadata_index].content if metadata_index is not None else ""
        mentions = list(note.mentions)
        if not mentions:
            mentions = [w for w in f"{metadata_line} ".split(" ") if w.startswith("@")]
        hashtags = list(note.hashtags)
        if not hashtags:
            hashtags = [w for w in f"{metadata_line} ".split(" ") if w.startswith("#")]

        if not project_tag:
            if hashtags and hashtags[0] != config.paused_tag:
                project_tag = hashtags[0]
            elif len(hashtags) > 1:
                project_tag = hashtags[1]

        interval = content_from_brackets(get_param_mention(mentions, config.review_interval_mention))
        next_review = _mention_date(mentions, config.next_review_mention, note.filename)

        open_paras = [p for p in paras if p.is_open]
        num_completed = sum(1 for p in paras if p.is_done)
        num_future = sum(1 for p in open_paras
                         if includes_scheduled_future_date(p.content, today,
                                                           config.future_lookahead_days))
        total = num_completed + len(open_paras)
        if config.future_lookahead_days > 0:
            total -= num_future

        progress = most_recent_progress([(p.line_index, p.content) for p in paras
                                         if progress_field_value(p.content) is not None])
        if not progress.is_sentinel and progress.comment:
            percent = progress.percent_complete
            comment = progress.comment
        else:
            # floor, so 100% only when everything really is done
            percent = (100 * num_completed) // total if total > 0 else math.nan
            comment = ""

        next_actions = []
        if config.tracks_next_actions:
            next_actions = _find_next_actions(note, open_paras, metadata_line, config)

        completed_date = _mention_date(mentions, config.completed_mention, note.filename)
        cancelled_date = _mention_date(mentions, config.cancelled_mention, note.filename)
        project = cls(
            filename=note.filename,
            title=note.title,
            folder=note.folder,
            project_tag=project_tag,
            start_date=_mention_date(mentions, config.start_mention, note.filename),
            due_date=_mention_date(mentions, config.due_mention, note.filename),
            reviewed_date=_mention_date(mentions, config.reviewed_mention, note.filename),
            completed_date=completed_date,
            cancelled_date=cancelled_date,
            review_interval=interval or config.default_review_interval,
            next_review_override=to_iso(next_review),
            percent_complete=percent,
            last_progress_comment=comment,
            most_recent_progress_line_index=None if progress.is_sentinel else progress.line_index,
            num_open_items=len(open_paras),
            num_completed_items=num_completed,
            num_waiting_items=sum(1 for p in open_paras if config.waiting_marker in p.content),
            num_future_items=num_future,
            num_total_items=total,
            is_completed=completed_date is not None,
            is_cancelled=cancelled_date is not None,
            is_paused=config.paused_tag in hashtags,
            icon=str(note.frontmatter.get("icon", "") or ""),
            icon_color=str(note.frontmatter.get("icon-color", note.frontmatter.get("icon_color", "")) or ""),
            next_actions_raw_content=next_actions,
            metadata_line_index=metadata_index,
        )
        return recompute(project, today)

    # ─── serialization ───────────────────────────────────────────────────

    def to_dict(self) -> dict:
        """Index form: dates as YYYY-MM-DD, NaN as null, empty icon fields left out."""
        out = {}
        for f in dataclasses.fields(self):
            if f.name in EPHEMERAL_FIELDS:
                continue
            value = getattr(self, f.name)
            if f.name in DATE_FIELDS:
                value = to_iso(value)
            elif f.name in NAN_FIELDS:
                value = None if value is None or _is_nan(value) else value
            elif f.name in OPTIONAL_FIELDS and not value:
                continue
            elif isinstance(value, list):
                value = list(value)
            out[f.name] = value
        if out.get("next_review_date_str"):
            out["next_review_date_str"] = out["next_review_date_str"][:10]
        if out.get("next_review_override"):
            out["next_review_override"] = out["next_review_override"][:10]
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        """Rebuild a Project from its index form. Review fields still need recompute()."""
        known = {f.name for f in dataclasses.fields(cls)} - set(EPHEMERAL_FIELDS)
        kwargs = {}
        for k, v in data.items():
            if k not in known:
                continue
            if k in DATE_FIELDS:
                v = _load_date(v)
            elif k in NAN_FIELDS:
                v = math.nan if v is None else v
            elif k in ("next_review_date_str", "next_review_override") and v:
                v = str(v)[:10]
            elif k in OPTIONAL_FIELDS and v is None:
                v = ""
            kwargs[k] = v
        if "filename" not in kwargs or "title" not in kwargs:
            raise ConstructionError(f"Index entry is missing filename or title: {data!r}")
        return cls(**kwargs)

    # ─── metadata output ─────────────────────────────────────────────────

    def generate_metadata_line(self, config: ReviewConfig) -> str:
        parts = [self.project_tag] if self.project_tag else []
        if self.is_paused:
            parts.append(config.paused_tag)
        for token, value in ((config.start_mention, self.start_date),
                             (config.due_mention, self.due_date)):
            if value is not None:
                parts.append(f"{token}({to_iso(value)})")
        if self.review_interval:
            parts.append(f"{config.review_interval_mention}({self.review_interval})")
        for token, value in ((config.reviewed_mention, self.reviewed_date),
                             (config.completed_mention, self.completed_date),
                             (config.cancelled_mention, self.cancelled_date)):
            if value is not None:
                parts.append(f"{token}({to_iso(value)})")
        if self.next_review_override:
            parts.append(f"{config.next_review_mention}({self.next_review_override})")
        return " ".join(parts)

    # ─── mutations ───────────────────────────────────────────────────────
    # Each returns an updated copy and writes the change to the note.

    def complete(self, handle: NoteHandle, config: ReviewConfig,
                 today: date | None = None) -> "Project":
        today = today or date.today()
        updated = dataclasses.replace(self, is_completed=True, is_cancelled=False,
                                      is_paused=False, completed_date=today,
                                      cancelled_date=None, cancelled_duration=None)
        update_metadata(handle, config, base_line=updated.generate_metadata_line(config),
                        set_mentions={config.completed_mention: to_iso(today)},
                        remove_mentions=[config.cancelled_mention],
                        remove_tags=[config.paused_tag])
        return recompute(updated, today)

    def cancel(self, handle: NoteHandle, config: ReviewConfig,
               today: date | None = None) -> "Project":
        today = today or date.today()
        updated = dataclasses.replace(self, is_completed=False, is_cancelled=True,
                                      is_paused=False, cancelled_date=today,
                                      completed_date=None, completed_duration=None)
        update_metadata(handle, config, base_line=updated.generate_metadata_line(config),
                        set_mentions={config.cancelled_mention: to_iso(today)},
                        remove_mentions=[config.completed_mention],
                        remove_tags=[config.paused_tag])
        return recompute(updated, today)

    def toggle_pause(self, handle: NoteHandle, config: ReviewConfig,
                     today: date | None = None, comment: str = "") -> "Project":
        """Pause or unpause. Either way the project ends up active, so any
        completed/cancelled mention is removed from the note."""
        today = today or date.today()
        updated = self
        if comment:
            updated = updated.add_progress_line(handle, config, None, comment, today)
        updated = dataclasses.replace(updated, is_completed=False, is_cancelled=False,
                                      completed_date=None, cancelled_date=None,
                                      completed_duration=None, cancelled_duration=None,
                                      is_paused=not self.is_paused)
        finished = [config.completed_mention, config.cancelled_mention]
        if updated.is_paused:
            update_metadata(handle, config, base_line=updated.generate_metadata_line(config),
                            remove_mentions=finished, add_tags=[config.paused_tag])
            if config.remove_due_dates_on_pause:
                _remove_open_item_dates(handle)
        else:
            update_metadata(handle, config, base_line=updated.generate_metadata_line(config),
                            remove_mentions=finished, remove_tags=[config.paused_tag])
        return recompute(updated, today)

    def add_progress_line(self, handle: NoteHandle, config: ReviewConfig,
                          percent: int | None, comment: str,
                          today: date | None = None) -> "Project":
        """Insert 'Progress: n@date: comment' above the latest progress line (or after the metadata)."""
        today = today or date.today()
        insert_at = self.most_recent_progress_line_index
        if insert_at is None:
            note = handle.read()
            meta_index = find_metadata_line(note.paragraphs, config)
            insert_at = (meta_index + 1) if meta_index is not None else min(1, len(note.paragraphs))
        handle.insert_paragraph(insert_at, format_progress_line(percent, comment, today))
        new_percent = self.percent_complete if percent is None else min(100, max(0, int(percent)))
        return dataclasses.replace(self, percent_complete=new_percent,
                                   last_progress_comment=comment.strip(),
                                   most_recent_progress_line_index=insert_at)


# ─── helpers ─────────────────────────────────────────────────────────────

def _is_nan(value) -> bool:
    return isinstance(value, float) and math.isnan(value)


def _load_date(value) -> date | None:
    if value in (None, ""):
        return None
    try:
        return parse_date_str(str(value))
    except ParseError as e:
        print(f"Warning: {e}", file=sys.stderr)
        return None


def get_param_mention(mentions: list[str], token: str) -> str:
    """First mention of the form 'token(...)', matched case-sensitively, or ''."""
    for m in mentions:
        if m.startswith(f"{token}("):
            return m
    return ""


def content_from_brackets(text: str) -> str:
    m = re.search(r'\(([^)]*)\)', text or "")
    return m.group(1).strip() if m else ""


def _mention_date(mentions: list[str], token: str, filename: str) -> date | None:
    payload = content_from_brackets(get_param_mention(mentions, token))
    if not payload:
        return None
    try:
        return parse_date_str(payload)
    except ParseError:
        print(f"Warning: cannot read date in {token}({payload}) in {filename}", file=sys.stderr)
        return None


def find_metadata_line(paragraphs: list[Paragraph], config: ReviewConfig) -> int | None:
    """Index of the line holding the project's @mentions / tags, if there is one."""
    tokens = [f"{t}(" for t in (config.start_mention, config.due_mention,
                                 config.reviewed_mention, config.completed_mention,
                                 config.cancelled_mention, config.review_interval_mention,
                                 config.next_review_mention)]
    tags = list(config.project_type_tags) + [config.paused_tag]
    for p in paragraphs:
        if p.type != "text":
            continue
        if progress_field_value(p.content) is not None:
            continue
        if any(t in p.content for t in tokens):
            return p.line_index
        words = p.content.split()
        if any(tag in words for tag in tags):
            return p.line_index
    return None


def simplify_raw_content(raw: str) -> str:
    """Drop block IDs (^abc123) that differ between synced copies, and trim."""
    return _BLOCK_ID_RE.sub("", raw).strip()


def is_sequential(note: Note, metadata_line: str, config: ReviewConfig) -> bool:
    if not config.sequential_tag:
        return False
    flag = note.frontmatter.get("sequential")
    if flag in (True, "true", "yes"):
        return True
    words = metadata_line.split()
    if config.sequential_tag in words:
        return True
    return config.sequential_tag in metadata_line


def _find_next_actions(note: Note, open_paras: list[Paragraph], metadata_line: str,
                       config: ReviewConfig) -> list[str]:
    actions = []
    if open_paras and is_sequential(note, metadata_line, config):
        actions.append(simplify_raw_content(open_paras[0].raw_content))
    for tag in config.next_action_tags:
        for p in open_paras:
            if tag in p.content:
                actions.append(simplify_raw_content(p.raw_content))
                break
    seen = set()
    unique = []
    for a in actions:
        if a not in seen:
            seen.add(a)
            unique.append(a)
    return unique


# ─── metadata line editing ───────────────────────────────────────────────

def set_mention(line: str, token: str, payload: str) -> str:
    pattern = re.compile(re.escape(token) + r'\([^)]*\)')
    new = f"{token}({payload})"
    if pattern.search(line):
        return pattern.sub(lambda _: new, line, count=1)
    return f"{line.rstrip()} {new}".strip()


def remove_mention(line: str, token: str) -> str:
    pattern = re.compile(r'\s*' + re.escape(token) + r'\([^)]*\)')
    return pattern.sub("", line).strip()


def add_tag(line: str, tag: str) -> str:
    if tag in line.split():
        return line
    return f"{line.rstrip()} {tag}".strip()


def remove_tag(line: str, tag: str) -> str:
    return " ".join(w for w in line.split(" ") if w != tag).strip()


def update_metadata(handle: NoteHandle, config: ReviewConfig, base_line: str = "",
                    set_mentions: dict[str, str] | None = None,
                    remove_mentions: list[str] | tuple = (),
                    add_tags: list[str] | tuple = (),
                    remove_tags: list[str] | tuple = ()) -> int:
    """Edit the note's metadata line in place, creating it after the title if missing.

    Returns the line index written.
    """
    note = handle.read()
    index = find_metadata_line(note.paragraphs, config)
    if index is None:
        line = base_line
    else:
        line = note.paragraphs[index].content
    for token, payload in (set_mentions or {}).items():
        line = set_mention(line, token, payload)
    for token in remove_mentions:
        line = remove_mention(line, token)
    for tag in add_tags:
        line = add_tag(line, tag)
    for tag in remove_tags:
        line = remove_tag(line, tag)
    if index is None:
        index = 1 if note.paragraphs and note.paragraphs[0].type == "title" else 0
        handle.insert_paragraph(index, line)
    else:
        handle.write_paragraph(index, line)
    return index


def _remove_open_item_dates(handle: NoteHandle) -> None:
    note = handle.read()
    for p in note.paragraphs:
        if p.is_open:
            stripped = remove_scheduled_dates(p.raw_content)
            if stripped != p.raw_content:
                handle.write_paragraph(p.line_index, stripped)


def validate_interval(interval: str) -> str:
    interval = (interval or "").strip()
    if not is_valid_interval(interval):
        raise ParseError(f"Invalid review interval '{interval}'")
    return interval

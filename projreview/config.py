"""Configuration helpers: data directory discovery, settings, frontmatter parsing."""

import os
import pathlib
import sys
from dataclasses import dataclass, field, fields

ROOT_FOLDER = "/"

DEFAULT_SETTINGS = {
    "project_type_tags": ["#project", "#area"],
    "display_order": "review",
    "max_age_hours": 1,
}


@dataclass
class ReviewConfig:
    """Everything project construction, recalculation and listing need to know.

    Passed explicitly to every call that needs it; there is no global copy.
    """
    project_type_tags: list[str] = field(default_factory=lambda: ["#project", "#area"])
    folders_to_include: list[str] = field(default_factory=list)
    folders_to_ignore: list[str] = field(default_factory=list)
    teamspaces_to_exclude: list[str] = field(default_factory=list)
    display_order: str = "review"           # review | due | title
    display_grouped_by_folder: bool = False
    display_finished: bool = False
    display_only_due: bool = False
    next_action_tags: list[str] = field(default_factory=list)
    sequential_tag: str = "#sequential"
    waiting_marker: str = "#waiting"
    paused_tag: str = "#paused"
    future_lookahead_days: int = 0
    max_age_hours: float = 1
    remove_due_dates_on_pause: bool = False
    default_review_interval: str = "1w"
    start_mention: str = "@start"
    due_mention: str = "@due"
    reviewed_mention: str = "@reviewed"
    completed_mention: str = "@completed"
    cancelled_mention: str = "@cancelled"
    review_interval_mention: str = "@review"
    next_review_mention: str = "@nextReview"

    @classmethod
    def from_settings(cls, settings: dict) -> "ReviewConfig":
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for k, v in settings.items():
            if k not in known:
                continue
            if k in ("project_type_tags", "folders_to_include", "folders_to_ignore",
                     "teamspaces_to_exclude", "next_action_tags") and isinstance(v, str):
                v = [x.strip() for x in v.split(",") if x.strip()]
            kwargs[k] = v
        return cls(**kwargs)

    @property
    def tracks_next_actions(self) -> bool:
        return bool(self.next_action_tags) or bool(self.sequential_tag)


def get_data_dir() -> pathlib.Path:
    env_dir = os.environ.get("PROJREVIEW_DIR")
    if env_dir:
        return pathlib.Path(env_dir)
    config_path = pathlib.Path.home() / ".config" / "projreview" / "config"
    if config_path.exists():
        for line in config_path.read_text().splitlines():
            line = line.strip()
            if line.startswith("DIR="):
                return pathlib.Path(line[4:].strip())
    return pathlib.Path.home() / ".local" / "share" / "projreview"


def load_settings(data_dir: pathlib.Path) -> dict:
    settings_path = data_dir / "settings.toml"
    settings = dict(DEFAULT_SETTINGS)
    if settings_path.exists():
        try:
            settings.update(_parse_toml_simple(settings_path.read_text()))
        except OSError as e:
            print(f"Warning: cannot read {settings_path}: {e}", file=sys.stderr)
    return settings


def _parse_scalar(v: str):
    if v.startswith('"') and v.endswith('"'):
        return v[1:-1]
    if v.startswith("'") and v.endswith("'"):
        return v[1:-1]
    if v.isdigit():
        return int(v)
    if v == "true":
        return True
    if v == "false":
        return False
    try:
        return float(v)
    except ValueError:
        return v


def _parse_toml_simple(text: str) -> dict:
    """Minimal TOML parser for flat key=value files, with one-line string lists."""
    result = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" in line:
            k, v = line.split("=", 1)
            k = k.strip()
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                v = [_parse_scalar(x.strip()) for x in v[1:-1].split(",") if x.strip()]
            else:
                v = _parse_scalar(v)
            result[k] = v
    return result


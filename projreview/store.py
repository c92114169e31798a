"""Persistence: the JSON project index document and the preferences database."""

import json
import os
import pathlib
import sqlite3
import tempfile

from projreview.errors import PersistenceError

SCHEMA = """
CREATE TABLE IF NOT EXISTS preferences (
    key TEXT PRIMARY KEY,
    value TEXT,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


def init_db(db_path: pathlib.Path | str) -> sqlite3.Connection:
    db_path = pathlib.Path(db_path)
    if str(db_path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), timeout=5, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    if str(db_path) != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")
    conn.executescript(SCHEMA)
    conn.commit()
    return conn


class Preferences:
    """Small key/value store for values that outlive one run (e.g. index generation time)."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get(self, key: str, default=None):
        row = self.conn.execute(
            "SELECT value FROM preferences WHERE key=?", (key,)).fetchone()
        if row is None or row["value"] is None:
            return default
        return json.loads(row["value"])

    def set(self, key: str, value) -> None:
        try:
            self.conn.execute(
                "INSERT OR REPLACE INTO preferences (key, value, updated_at) "
                "VALUES (?, ?, datetime('now'))",
                (key, json.dumps(value)))
            self.conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"cannot save preference '{key}': {e}") from e


class JsonCacheStore:
    """The whole project index as one JSON array, keyed logically by 'filename'.

    Every write replaces the whole document. Writes go to a temporary file
    that is renamed over the old one, so a failed write leaves the previous
    document in place. There is no locking: two overlapping
    read-modify-write cycles can lose the first one's change.
    """

    def __init__(self, path: pathlib.Path | str):
        self.path = pathlib.Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load_all(self) -> list[dict]:
        with open(self.path) as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{self.path} does not hold a list of projects")
        return data

    def replace_all(self, items: list[dict]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".projects-", suffix=".json")
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(_dump_items(items))
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"cannot write {self.path}: {e}") from e


def _dump_items(items: list[dict]) -> str:
    # One project per line keeps the file diffable.
    lines = [json.dumps(item, sort_keys=True, allow_nan=False) for item in items]
    if not lines:
        return "[]\n"
    return "[\n" + ",\n".join(lines) + "\n]\n"

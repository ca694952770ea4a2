"""SQLite-backed record store for milestones and the singleton config row."""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .errors import MilestoneNotFoundError, StoreInitError
from .models import Milestone, to_storage, utcnow

logger = logging.getLogger(__name__)

DB_FILENAME = "milsto.db"

# Observers receive the change kind ("insert", "update", "delete") and the milestone id.
ChangeCallback = Callable[[str, str], None]

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS milestones (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    target TEXT NOT NULL,
    title TEXT NOT NULL,
    notes TEXT NOT NULL DEFAULT ''
);

CREATE INDEX IF NOT EXISTS idx_milestones_created_at ON milestones(created_at);

CREATE TABLE IF NOT EXISTS config (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    initialized_at TEXT NOT NULL
);
"""

_MUTABLE_FIELDS = ("target", "title", "notes")


def _ensure_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)


def db_path(state_dir: Path) -> Path:
    return state_dir / DB_FILENAME


class RecordStore:
    """Durable storage for milestones with change notification.

    Every mutation commits immediately and then notifies subscribers, so a
    view that re-pulls ``all()`` from its callback always sees the change.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._subscribers: Dict[int, ChangeCallback] = {}
        self._next_token = 0

    # -- lifecycle -----------------------------------------------------------

    def ensure_initialized(self) -> bool:
        """Create the config row if missing. Returns True when it was created."""
        row = self._conn.execute("SELECT COUNT(*) FROM config").fetchone()
        if row[0]:
            return False
        with self._conn:
            self._conn.execute(
                "INSERT INTO config (id, initialized_at) VALUES (1, ?)",
                (to_storage(utcnow()),),
            )
        logger.info("Created config record")
        return True

    def config_count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM config").fetchone()[0]

    def close(self) -> None:
        self._subscribers.clear()
        self._conn.close()

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- subscriptions -------------------------------------------------------

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register ``callback`` for change notifications; returns an unsubscribe function."""
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback

        def _unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return _unsubscribe

    def _notify(self, kind: str, milestone_id: str) -> None:
        # copy: callbacks may unsubscribe themselves
        for callback in list(self._subscribers.values()):
            callback(kind, milestone_id)

    # -- queries -------------------------------------------------------------

    def all(self) -> List[Milestone]:
        """Every milestone, newest ``created_at`` first."""
        rows = self._conn.execute(
            "SELECT id, created_at, target, title, notes FROM milestones ORDER BY created_at DESC, rowid DESC"
        ).fetchall()
        return [Milestone.from_row(row) for row in rows]

    def get(self, milestone_id: str) -> Optional[Milestone]:
        row = self._conn.execute(
            "SELECT id, created_at, target, title, notes FROM milestones WHERE id = ?",
            (milestone_id,),
        ).fetchone()
        return Milestone.from_row(row) if row else None

    def resolve(self, identifier: str) -> Milestone:
        """Look a milestone up by full id or unique id prefix."""
        identifier = (identifier or "").strip()
        if not identifier:
            raise MilestoneNotFoundError("Milestone id is required.")
        exact = self.get(identifier)
        if exact is not None:
            return exact
        rows = self._conn.execute(
            "SELECT id, created_at, target, title, notes FROM milestones WHERE id LIKE ? LIMIT 2",
            (identifier.replace("%", "").replace("_", "") + "%",),
        ).fetchall()
        if not rows:
            raise MilestoneNotFoundError(f"Milestone '{identifier}' not found.")
        if len(rows) > 1:
            raise MilestoneNotFoundError(f"Milestone id '{identifier}' is ambiguous; use more characters.")
        return Milestone.from_row(rows[0])

    def __len__(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM milestones").fetchone()[0]

    # -- mutations -----------------------------------------------------------

    def insert(self, milestone: Milestone) -> Milestone:
        row = milestone.to_row()
        with self._conn:
            self._conn.execute(
                "INSERT INTO milestones (id, created_at, target, title, notes) VALUES (?, ?, ?, ?, ?)",
                (row["id"], row["created_at"], row["target"], row["title"], row["notes"]),
            )
        logger.debug("Inserted milestone %s", milestone.id)
        self._notify("insert", milestone.id)
        return milestone

    def update(self, milestone_id: str, **fields: object) -> Milestone:
        """Apply field changes to a stored milestone and return the fresh record."""
        unknown = set(fields) - set(_MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        updates: Dict[str, object] = {}
        for name, value in fields.items():
            if value is None:
                continue
            updates[name] = to_storage(value) if name == "target" else value
        existing = self.get(milestone_id)
        if existing is None:
            raise MilestoneNotFoundError(f"Milestone '{milestone_id}' not found.")
        if not updates:
            return existing
        set_clause = ", ".join(f"{column} = ?" for column in updates)
        values = list(updates.values())
        values.append(milestone_id)
        with self._conn:
            self._conn.execute(f"UPDATE milestones SET {set_clause} WHERE id = ?", values)
        logger.debug("Updated milestone %s fields=%s", milestone_id, sorted(updates))
        self._notify("update", milestone_id)
        return self.get(milestone_id)

    def delete(self, milestone_id: str) -> bool:
        with self._conn:
            cursor = self._conn.execute("DELETE FROM milestones WHERE id = ?", (milestone_id,))
        if not cursor.rowcount:
            return False
        logger.debug("Deleted milestone %s", milestone_id)
        self._notify("delete", milestone_id)
        return True


def open_store(state_dir: Path) -> RecordStore:
    """Open (creating if needed) the store under ``state_dir``.

    Any failure here is fatal for the application and surfaces as
    :class:`StoreInitError`.
    """
    path = db_path(state_dir)
    try:
        state_dir.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(path)
    except (OSError, sqlite3.Error) as exc:
        raise StoreInitError(f"Could not open milestone store at {path}: {exc}") from exc
    conn.row_factory = sqlite3.Row
    try:
        _ensure_schema(conn)
        store = RecordStore(conn)
        store.ensure_initialized()
    except sqlite3.Error as exc:
        conn.close()
        raise StoreInitError(f"Could not initialize milestone store at {path}: {exc}") from exc
    logger.debug("Opened milestone store at %s", path)
    return store

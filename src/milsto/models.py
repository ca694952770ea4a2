"""Milestone record and the timestamp helpers shared by the store and CLI."""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import List, Optional

_RELATIVE_PATTERN = re.compile(r"^\+\s*(\d+)\s*([smhdw])$")
_RELATIVE_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def to_local(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert to ``tz``, or to the system zone using the offset in force at that instant."""
    if tz is not None:
        return value.astimezone(tz)
    return value.astimezone()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_storage(value: datetime) -> str:
    """Serialize a timestamp as UTC ISO-8601 text."""
    if value.tzinfo is None:
        value = value.astimezone()
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_storage(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_timestamp(value: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """Parse user input into an aware timestamp.

    Accepts ``now``, relative offsets such as ``+90m`` or ``+2d``, ISO dates
    (midnight is assumed) and ISO date-times. Naive values are read in the
    local timezone. Returns ``None`` when the value cannot be parsed.
    """
    if not value:
        return None
    value = value.strip()
    if not value:
        return None
    now = now or utcnow()
    if value.lower() == "now":
        return now
    match = _RELATIVE_PATTERN.match(value.lower())
    if match:
        amount, unit = match.groups()
        return now + timedelta(**{_RELATIVE_UNITS[unit]: int(amount)})
    if "T" not in value and " " not in value:
        value = f"{value}T00:00:00"
    else:
        value = value.replace(" ", "T")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.astimezone()
    return dt


@dataclass
class Milestone:
    title: str
    target: datetime
    notes: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "created_at": to_storage(self.created_at),
            "target": to_storage(self.target),
            "title": self.title,
            "notes": self.notes,
        }

    @classmethod
    def from_row(cls, row) -> "Milestone":
        return cls(
            id=row["id"],
            created_at=from_storage(row["created_at"]),
            target=from_storage(row["target"]),
            title=row["title"],
            notes=row["notes"] or "",
        )


def sample_milestones(now: Optional[datetime] = None) -> List[Milestone]:
    """The demo set shown on a fresh install."""
    now = now or utcnow()
    day = timedelta(days=1)
    return [
        Milestone(created_at=now, target=now + timedelta(hours=1), title="Leave for airport", notes="Passport + ticket"),
        Milestone(created_at=now, target=now + timedelta(hours=2), title="Project deadline", notes="Submit final report"),
        Milestone(created_at=now - day, target=now + day, title="Gym", notes="Leg day"),
        Milestone(created_at=now - 2 * day, target=now + 2 * day, title="Pay rent"),
        Milestone(created_at=now - 2 * day, target=now + 7 * day, title="Weekend trip", notes="Pack light"),
    ]

"""Add and edit forms: transient field state bound to the record store."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from .errors import FormClosedError, MilestoneNotFoundError, ValidationError
from .models import Milestone, utcnow
from .store import RecordStore

logger = logging.getLogger(__name__)

TARGET_ADVANCE = timedelta(minutes=3)


class Field(str, Enum):
    TITLE = "title"
    NOTES = "notes"


def next_focus(current: Optional[Field]) -> Optional[Field]:
    """Submitting the title moves on to notes; anything else clears focus."""
    if current is Field.TITLE:
        return Field.NOTES
    return None


class AddForm:
    def __init__(
        self,
        store: RecordStore,
        now: Optional[datetime] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._clock = clock
        self.target: datetime = now or clock()
        self.title = ""
        self.notes = ""
        self.focus: Optional[Field] = Field.TITLE

    @property
    def can_submit(self) -> bool:
        return bool(self.title)

    def submit_field(self) -> Optional[Field]:
        self.focus = next_focus(self.focus)
        return self.focus

    def submit(self) -> Milestone:
        if not self.can_submit:
            raise ValidationError("A title is required to add a milestone.")
        milestone = Milestone(
            title=self.title,
            notes=self.notes,
            target=self.target,
            created_at=self._clock(),
        )
        self._store.insert(milestone)
        logger.info("Added milestone %s", milestone.id)
        self.reset()
        return milestone

    def reset(self) -> None:
        # the next milestone is usually shortly after the last one
        self.target = self.target + TARGET_ADVANCE
        self.title = ""
        self.notes = ""
        self.focus = Field.TITLE


class EditForm:
    """Edits apply to the stored record immediately; ``done`` only closes.

    If the record is deleted while the form is open the form closes itself.
    """

    def __init__(self, store: RecordStore, milestone_id: str) -> None:
        milestone = store.get(milestone_id)
        if milestone is None:
            raise MilestoneNotFoundError(f"Milestone '{milestone_id}' not found.")
        self._store = store
        self.milestone = milestone
        self.focus: Optional[Field] = None
        self.closed = False
        self._unsubscribe = store.subscribe(self._on_store_change)

    def _on_store_change(self, kind: str, milestone_id: str) -> None:
        if milestone_id != self.milestone.id:
            return
        if kind == "delete":
            logger.info("Milestone %s deleted while editing; closing form", milestone_id)
            self.close()

    def _require_open(self) -> None:
        if self.closed:
            raise FormClosedError("This edit form has been closed.")

    def _write(self, **fields: object) -> Milestone:
        self._require_open()
        try:
            self.milestone = self._store.update(self.milestone.id, **fields)
        except MilestoneNotFoundError as exc:
            # removed behind our back, e.g. by another process
            self.close()
            raise FormClosedError("The milestone being edited no longer exists.") from exc
        return self.milestone

    @property
    def can_finish(self) -> bool:
        return bool(self.milestone.title)

    def set_title(self, title: str) -> Milestone:
        # an empty title is stored, as typing does, but blocks done()
        return self._write(title=title)

    def set_notes(self, notes: str) -> Milestone:
        return self._write(notes=notes)

    def set_target(self, target: datetime) -> Milestone:
        return self._write(target=target)

    def submit_field(self) -> Optional[Field]:
        self.focus = next_focus(self.focus)
        return self.focus

    def done(self) -> None:
        self._require_open()
        if not self.can_finish:
            raise ValidationError("A title is required before closing the editor.")
        self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._unsubscribe()

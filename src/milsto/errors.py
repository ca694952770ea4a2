"""Exception types shared by the milsto store, forms and CLI."""
from __future__ import annotations


class MilstoError(Exception):
    """Base class for every error raised by milsto."""


class StoreInitError(MilstoError):
    """The record store could not be opened. Nothing else can run."""


class MilestoneNotFoundError(MilstoError, KeyError):
    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Milestone not found"


class ValidationError(MilstoError, ValueError):
    """Raised when a form action is attempted while it is disabled."""


class FormClosedError(MilstoError):
    """Raised when an edit form is used after it has been closed."""

# neuroscroll/exceptions.py
"""Exception hierarchy.

The metrics engine, classifier and scheduler never let these escape to their
callers; they are raised at collaborator boundaries and recovered locally.
"""

from __future__ import annotations


class NeuroScrollError(Exception):
    """Base class for all neuroscroll errors."""


class ModelUnavailableError(NeuroScrollError):
    """The prediction model could not be loaded or built."""


class ClassificationError(NeuroScrollError):
    """The prediction model produced an unusable result."""


class StorageError(NeuroScrollError):
    """A storage backend operation failed."""


class InvalidInteractionError(NeuroScrollError):
    """An interaction record is missing required fields."""


class SessionNotFoundError(NeuroScrollError):
    """No active session exists with the given id."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id

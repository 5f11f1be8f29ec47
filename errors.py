"""Typed failures raised by the debate engine and its collaborators.

Every failure carries a stable ``kind`` string so outer layers can map it
to a caller-facing reason without inspecting the message text.
"""

from __future__ import annotations

from typing import Any


class DebateError(Exception):
    """Base class for all engine failures."""

    kind: str = "internal"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **self.details}


class NotFoundError(DebateError):
    """Unknown session or user."""

    kind = "not_found"


class InvalidStateError(DebateError):
    """The session's mode or status forbids the requested operation."""

    kind = "invalid_state"


class ValidationError(DebateError):
    """Malformed caller input."""

    kind = "validation_error"

    def __init__(self, message: str, issues: list[str] | None = None) -> None:
        super().__init__(message, issues=issues or [message])
        self.issues = issues or [message]


class ProviderError(DebateError):
    """The completion call failed or returned non-conforming output."""

    kind = "provider_error"


class PersistenceError(DebateError):
    """A store read or write failed."""

    kind = "persistence_error"

"""Exception hierarchy for the evaluation engine."""

from __future__ import annotations

from typing import Optional


class ScreenEvalError(Exception):
    """Base class for all engine errors."""


class UnknownCriterionError(ScreenEvalError, KeyError):
    """Raised when a session operation references a criterion id that does not exist."""

    def __init__(self, criterion_id: str) -> None:
        super().__init__(criterion_id)
        self.criterion_id = criterion_id

    def __str__(self) -> str:
        return f"Unknown criterion: {self.criterion_id!r}"


class MappingInvalidError(ScreenEvalError):
    """Raised when confirming a mapping that is not valid for scoring."""

    def __init__(self, validation) -> None:
        self.validation = validation
        summary = "; ".join(f"{i.criterion_id}: {i.message}" for i in validation.issues) or "no included criteria"
        super().__init__(f"Mapping is not valid for scoring ({summary})")


class MappingLockedError(ScreenEvalError):
    """Raised when editing a mapping that has been confirmed for the session."""


class IncompatibleConfigurationError(ScreenEvalError):
    """Raised when a persisted configuration cannot be restored onto a table."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TableLoadError(ScreenEvalError):
    """Raised when a delimited file cannot be ingested."""

    def __init__(self, path: Optional[str], reason: str) -> None:
        super().__init__(f"Could not load table {path}: {reason}")
        self.path = path
        self.reason = reason

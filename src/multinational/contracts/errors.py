"""
Typed exception hierarchy for ownership resolution.

    OwnershipError (base)
    |
    +-- MalformedFactError        load-time, rejects the whole load
    +-- UnknownEntityError        query references an absent id
    +-- CyclicOwnershipError      traversal met a node on its own path
    +-- AmbiguousOwnershipError   a company has more than one parent
    +-- ResolutionFailure         fact source or load gate failed

Every exception carries a machine-readable ``code`` and an ``ErrorCategory``
so callers catch by type and report by code, never by message text.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from multinational.domain.enums import ErrorCategory


class OwnershipError(Exception):
    """Base class for all ownership resolution errors."""

    code: str = "OWNERSHIP_ERROR"
    category: ErrorCategory = ErrorCategory.RESOLUTION

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MalformedFactError(OwnershipError):
    """The fact set violates a data-integrity rule; nothing was loaded."""

    code = "MALFORMED_FACT"
    category = ErrorCategory.DATA_QUALITY

    def __init__(self, problems: str | Iterable[str]) -> None:
        if isinstance(problems, str):
            problems = [problems]
        self.problems: tuple[str, ...] = tuple(problems)
        if len(self.problems) == 1:
            message = f"Malformed facts: {self.problems[0]}"
        else:
            message = f"Malformed facts ({len(self.problems)} problems): " + "; ".join(
                self.problems
            )
        super().__init__(message)


class UnknownEntityError(OwnershipError):
    """A query named an entity id that is not in the loaded snapshot."""

    code = "UNKNOWN_ENTITY"
    category = ErrorCategory.LOOKUP

    def __init__(self, entity_id: str, detail: str | None = None) -> None:
        self.entity_id = entity_id
        message = f"Unknown entity '{entity_id}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CyclicOwnershipError(OwnershipError):
    """The subsidiary graph contains a cycle reachable from the queried entity."""

    code = "CYCLIC_OWNERSHIP"
    category = ErrorCategory.HIERARCHY

    def __init__(self, path: Sequence[str], detail: str | None = None) -> None:
        self.path: tuple[str, ...] = tuple(path)
        message = "Cyclic ownership: " + " -> ".join(self.path)
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class AmbiguousOwnershipError(OwnershipError):
    """A company is named as the child of more than one parent."""

    code = "AMBIGUOUS_OWNERSHIP"
    category = ErrorCategory.HIERARCHY

    def __init__(self, entity_id: str, parents: Iterable[str]) -> None:
        self.entity_id = entity_id
        self.parents: tuple[str, ...] = tuple(sorted(parents))
        super().__init__(
            f"Ambiguous ownership: '{entity_id}' has parents {', '.join(self.parents)}"
        )


class ResolutionFailure(OwnershipError):
    """The underlying fact source failed (syntax error, no snapshot loaded)."""

    code = "RESOLUTION_FAILURE"
    category = ErrorCategory.RESOLUTION

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)

"""
Request/response models for the ownership query façade.

LoadResult: Outcome of publishing a fact set
ServiceStatus: Load gate state for the status panel
CompanyDetails: Selected company with display currency and tree
APIError: Error surfaced to the presentation layer as-is
QueryResult: ok/error wrapper for presentation code that must not raise
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from multinational.contracts.bundles import HierarchyNode
from multinational.contracts.errors import OwnershipError

T = TypeVar("T")


@dataclass(frozen=True)
class APIError:
    """
    Error in presentation-friendly form.

    Attributes:
        code: Machine-readable error code
        category: Error category value
        message: Human-readable message, shown unchanged
    """

    code: str
    category: str
    message: str

    @classmethod
    def from_exception(cls, error: OwnershipError) -> APIError:
        return cls(code=error.code, category=str(error.category), message=error.message)


@dataclass(frozen=True)
class QueryResult(Generic[T]):
    """Either a value or an error, never both."""

    ok: T | None = None
    error: APIError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class LoadResult:
    """
    Outcome of a load.

    Attributes:
        generation: Sequence number assigned to the load
        applied: False when a newer load was published first
        company_count: Companies in the loaded fact set
        store_count: Stores in the loaded fact set
    """

    generation: int
    applied: bool
    company_count: int
    store_count: int


@dataclass(frozen=True)
class ServiceStatus:
    """
    Load gate state.

    Attributes:
        loaded: Whether a snapshot has been published
        generation: Generation of the published snapshot (0 if none)
        company_count: Companies in the published snapshot
        store_count: Stores in the published snapshot
        last_error: Message of the most recent failed load, if any
    """

    loaded: bool
    generation: int
    company_count: int
    store_count: int
    last_error: str | None = None


@dataclass(frozen=True)
class CompanyDetails:
    """
    Selected company for the detail card.

    Attributes:
        id: Company id
        name: Company name
        currency_display: Resolved currency, or the configured placeholder
        tree: Ownership tree rooted at the company
    """

    id: str
    name: str
    currency_display: str
    tree: HierarchyNode

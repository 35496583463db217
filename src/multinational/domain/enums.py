"""
Domain enums for the ownership resolution engine.

Defines core enumerations used throughout the resolver stack:
- EntityKind: Company vs store entities in the shared id namespace
- CurrencySource: How an entity's accounting currency was obtained
- ErrorCategory: Categories for ownership errors
"""

from enum import StrEnum


class EntityKind(StrEnum):
    """
    Kind of entity held in the fact store.
    """

    COMPANY = "company"
    """Legal entity that may own subsidiaries and operate stores"""

    STORE = "store"
    """Retail store operated by exactly one company"""


class CurrencySource(StrEnum):
    """
    Provenance of a resolved accounting currency.
    """

    EXPLICIT = "explicit"
    """Currency recorded directly on the entity"""

    INHERITED = "inherited"
    """Currency taken from the nearest owner carrying one"""

    UNDEFINED = "undefined"
    """No entity on the ownership chain carries a currency"""


class ErrorCategory(StrEnum):
    """
    Categories for ownership errors.
    """

    DATA_QUALITY = "data_quality"
    """Missing, duplicated or dangling facts"""

    LOOKUP = "lookup"
    """Query referenced an id absent from the snapshot"""

    HIERARCHY = "hierarchy"
    """Ownership graph violates the forest invariant"""

    RESOLUTION = "resolution"
    """Underlying fact source or load gate failed"""

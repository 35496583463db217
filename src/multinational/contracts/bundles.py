"""
Data transfer bundles for the ownership resolution engine.

Defines immutable dataclass containers for passing data between
components. Each bundle represents the output of one component and
input to the next:

    Loader -> FactBundle
                  |
             FactStore -> OwnershipResolver -> CurrencyResolver
                                                     |
                                             HierarchyBuilder -> HierarchyNode
                                                     |
                                        OwnershipService -> CompanySummary / StoreListing

Fact relations travel as polars DataFrames; derived records are small
frozen dataclasses with no back-references into the fact store.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

import polars as pl

from multinational.data.schemas import (
    COMPANY_SCHEMA,
    EXPLICIT_CURRENCY_SCHEMA,
    OPERATES_SCHEMA,
    STORE_SCHEMA,
    SUBSIDIARY_SCHEMA,
)
from multinational.domain.enums import CurrencySource, EntityKind


@dataclass(frozen=True)
class FactBundle:
    """
    Output from the loaders.

    Contains the base relations as DataFrames, exactly as read from the
    fact source. No validation applied.

    Attributes:
        companies: Company(id, name, currency?) rows
        subsidiaries: Subsidiary(parent, child) edges
        stores: Store(id, location, currency?) rows
        operates: Operates(company, store) edges
        currencies: ExplicitCurrency(entity, currency) rows (optional)
    """

    companies: pl.DataFrame
    subsidiaries: pl.DataFrame
    stores: pl.DataFrame
    operates: pl.DataFrame
    currencies: pl.DataFrame | None = None

    @classmethod
    def from_records(
        cls,
        companies: Iterable[tuple] = (),
        subsidiaries: Iterable[tuple[str, str]] = (),
        stores: Iterable[tuple] = (),
        operates: Iterable[tuple[str, str]] = (),
        currencies: Iterable[tuple[str, str]] = (),
    ) -> FactBundle:
        """
        Build a bundle from plain tuples.

        Company and store tuples may omit the trailing currency.
        """
        return cls(
            companies=_frame(companies, COMPANY_SCHEMA),
            subsidiaries=_frame(subsidiaries, SUBSIDIARY_SCHEMA),
            stores=_frame(stores, STORE_SCHEMA),
            operates=_frame(operates, OPERATES_SCHEMA),
            currencies=_frame(currencies, EXPLICIT_CURRENCY_SCHEMA),
        )


def _frame(rows: Iterable[tuple], schema: dict) -> pl.DataFrame:
    width = len(schema)
    padded = [tuple(row) + (None,) * (width - len(row)) for row in rows]
    return pl.DataFrame(padded, schema=schema, orient="row")


@dataclass(frozen=True)
class CompanyRecord:
    """A validated company fact."""

    id: str
    name: str
    currency: str | None = None


@dataclass(frozen=True)
class StoreRecord:
    """A validated store fact."""

    id: str
    location: str
    currency: str | None = None


@dataclass(frozen=True)
class CurrencyResolution:
    """
    Result of walking the ownership chain for a currency.

    Attributes:
        entity_id: Entity the currency was resolved for
        currency: Upper-cased currency, or None when undefined
        source_entity_id: Entity carrying the explicit value (None if undefined)
        source: explicit, inherited or undefined
    """

    entity_id: str
    currency: str | None
    source_entity_id: str | None
    source: CurrencySource

    @property
    def inherited(self) -> bool:
        return self.source is CurrencySource.INHERITED


@dataclass(frozen=True)
class HierarchyNode:
    """
    One node of a materialised ownership tree.

    Children are subsidiary nodes followed by store leaves, each sorted by id.
    """

    id: str
    name: str
    kind: EntityKind
    currency: str | None = None
    children: tuple[HierarchyNode, ...] = field(default_factory=tuple)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def walk(self, depth: int = 0) -> Iterator[tuple[HierarchyNode, int]]:
        """Yield (node, depth) pairs in pre-order, starting at this node."""
        yield self, depth
        for child in self.children:
            yield from child.walk(depth + 1)

    def height(self) -> int:
        """Number of edges on the longest root-to-leaf path."""
        if not self.children:
            return 0
        return 1 + max(child.height() for child in self.children)


@dataclass(frozen=True)
class CompanySummary:
    """Row of the flat company listing."""

    id: str
    name: str
    currency: str | None


@dataclass(frozen=True)
class CompanyRef:
    id: str
    name: str


@dataclass(frozen=True)
class StoreRef:
    id: str
    location: str


@dataclass(frozen=True)
class StoreListing:
    """
    Row of the all-stores listing.

    Attributes:
        top_owner: Root of the operating company's ownership tree
        direct_owner: Company operating the store
        store: The store itself
        currency: Resolved, upper-cased accounting currency
    """

    top_owner: CompanyRef
    direct_owner: CompanyRef
    store: StoreRef
    currency: str | None

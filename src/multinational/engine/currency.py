"""
Accounting currency resolution with inheritance along the ownership chain.

An entity's currency is its own explicit value when recorded, otherwise
the currency of its owner (operating company for a store, direct parent
for a company), recursively. The nearest explicit value wins; a more
distant ancestor never overrides a local one. Currencies leave this
module upper-cased.

Classes:
    CurrencyResolver: Upward-walk currency resolution over a FactStore

Usage:
    from multinational.engine.currency import CurrencyResolver

    resolver = CurrencyResolver(fact_store, ownership)
    resolver.currency_of("reykjavik")  # "ISK"
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import polars as pl

from multinational.contracts.bundles import CurrencyResolution
from multinational.contracts.errors import CyclicOwnershipError
from multinational.data.schemas import CURRENCY_LOOKUP_SCHEMA
from multinational.domain.enums import CurrencySource
from multinational.engine.utils import normalise_currency

if TYPE_CHECKING:
    from multinational.engine.facts import FactStore
    from multinational.engine.ownership import OwnershipResolver

logger = logging.getLogger(__name__)


class CurrencyResolver:
    """
    Resolve effective accounting currencies.

    Uses the ownership resolver for the single-parent rule, so a walk that
    must climb above a company with two parents fails the same way a
    top-owner query would.
    """

    def __init__(self, facts: FactStore, ownership: OwnershipResolver) -> None:
        self._facts = facts
        self._ownership = ownership

    def currency_of(self, entity_id: str) -> str | None:
        """
        Effective currency of a company or store, upper-cased.

        Returns:
            Currency code, or None when no entity on the chain has one

        Raises:
            UnknownEntityError: If the entity is not in the snapshot
            CyclicOwnershipError: If the walk revisits an entity
            AmbiguousOwnershipError: If the walk must pass a company with two parents
        """
        return self.resolve(entity_id).currency

    def resolve(self, entity_id: str) -> CurrencyResolution:
        """
        Walk up from the entity to the first explicit currency.

        Returns:
            CurrencyResolution with the currency and the entity it came from
        """
        limit = self._ownership.depth_limit
        path: list[str] = []
        current: str | None = entity_id

        while current is not None:
            if current in path:
                raise CyclicOwnershipError([*path[path.index(current):], current])
            if len(path) > limit:
                raise CyclicOwnershipError(path, f"exceeded depth limit {limit}")
            path.append(current)

            explicit = self._facts.explicit_currency(current)
            if explicit is not None:
                source = CurrencySource.EXPLICIT if current == entity_id else CurrencySource.INHERITED
                return CurrencyResolution(
                    entity_id=entity_id,
                    currency=normalise_currency(explicit),
                    source_entity_id=current,
                    source=source,
                )
            current = self._ownership.owner_of(current)

        logger.debug("No currency on the ownership chain of %s", entity_id)
        return CurrencyResolution(
            entity_id=entity_id,
            currency=None,
            source_entity_id=None,
            source=CurrencySource.UNDEFINED,
        )

    def build_currency_lookup(self) -> pl.DataFrame:
        """
        Resolve the currency of every company and store.

        Returns DataFrame with columns:
        - entity_id, entity_kind: The entity
        - currency: Resolved currency (null if undefined)
        - inherited: Whether the currency came from an owner
        - source_entity_id: Entity carrying the explicit value
        - currency_source: explicit, inherited or undefined
        """
        rows = []
        for entity_id in (*self._facts.company_ids(), *self._facts.store_ids()):
            resolution = self.resolve(entity_id)
            rows.append({
                "entity_id": entity_id,
                "entity_kind": str(self._facts.kind_of(entity_id)),
                "currency": resolution.currency,
                "inherited": resolution.inherited,
                "source_entity_id": resolution.source_entity_id,
                "currency_source": str(resolution.source),
            })
        return pl.DataFrame(rows, schema=CURRENCY_LOOKUP_SCHEMA)

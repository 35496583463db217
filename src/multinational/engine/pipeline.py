"""
Snapshot assembly for the ownership resolution engine.

Wires the components in dependency order:
    FactBundle -> FactStore -> OwnershipResolver -> CurrencyResolver
        -> HierarchyBuilder

Pipeline position:
    Called by the query façade once per load; the resulting snapshot is
    published by reference swap and never mutated.

Usage:
    from multinational.engine.pipeline import build_snapshot

    snapshot = build_snapshot(bundle, ResolutionConfig.default(), generation=1)
    snapshot.currency.currency_of("reykjavik")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from multinational.engine.currency import CurrencyResolver
from multinational.engine.facts import FactStore
from multinational.engine.hierarchy import HierarchyBuilder
from multinational.engine.ownership import OwnershipResolver

if TYPE_CHECKING:
    from multinational.contracts.bundles import FactBundle
    from multinational.contracts.config import ResolutionConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnershipSnapshot:
    """
    One loaded fact set with the resolvers bound to it.

    Attributes:
        generation: Load sequence number that produced this snapshot
        facts: Validated base relations
        ownership: Reachability and top-owner queries
        currency: Currency inheritance queries
        hierarchy: Tree materialisation
    """

    generation: int
    facts: FactStore
    ownership: OwnershipResolver
    currency: CurrencyResolver
    hierarchy: HierarchyBuilder


def build_snapshot(
    bundle: FactBundle,
    config: ResolutionConfig,
    generation: int,
) -> OwnershipSnapshot:
    """
    Validate a bundle and bind resolvers to it.

    Raises:
        MalformedFactError: If the bundle fails validation
    """
    facts = FactStore.load(bundle)
    ownership = OwnershipResolver(facts, config)
    currency = CurrencyResolver(facts, ownership)
    hierarchy = HierarchyBuilder(facts, currency)
    logger.debug("Snapshot %d assembled", generation)
    return OwnershipSnapshot(
        generation=generation,
        facts=facts,
        ownership=ownership,
        currency=currency,
        hierarchy=hierarchy,
    )

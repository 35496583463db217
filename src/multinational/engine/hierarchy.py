"""
Hierarchy building for the ownership resolution engine.

Materialises the ownership tree below a company, enabling:
- Recursive subsidiary display (direct subsidiary edges, one level at a time)
- Store leaves under their operating company
- Resolved currency on every node

Trees are built eagerly per request and hold no reference back to the
fact store, so the view layer can keep them after the snapshot changes.

Classes:
    HierarchyBuilder: Builds HierarchyNode trees from a FactStore

Usage:
    from multinational.engine.hierarchy import HierarchyBuilder

    builder = HierarchyBuilder(fact_store, currency_resolver)
    tree = builder.build_tree("intl")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from multinational.contracts.bundles import HierarchyNode
from multinational.contracts.errors import AmbiguousOwnershipError, CyclicOwnershipError
from multinational.domain.enums import EntityKind

if TYPE_CHECKING:
    from multinational.engine.currency import CurrencyResolver
    from multinational.engine.facts import FactStore

logger = logging.getLogger(__name__)


class HierarchyBuilder:
    """
    Assemble ownership trees with resolved currencies.

    Children of a company are its direct subsidiaries (sorted by id)
    followed by the stores it operates (sorted by id).
    """

    def __init__(self, facts: FactStore, currency: CurrencyResolver) -> None:
        self._facts = facts
        self._currency = currency

    def build_tree(self, root_id: str) -> HierarchyNode:
        """
        Build the tree rooted at a company.

        A company without subsidiaries or stores yields a leaf node. A store
        id yields a single store leaf.

        Args:
            root_id: Company (or store) id to root the tree at

        Returns:
            HierarchyNode for the root with all descendants attached

        Raises:
            UnknownEntityError: If root_id is not in the snapshot
            CyclicOwnershipError: If the subsidiary edges below root_id loop
            AmbiguousOwnershipError: If a company below root_id is reached
                through more than one parent
        """
        if self._facts.kind_of(root_id) is EntityKind.STORE:
            return self._store_node(root_id)

        tree = self._company_node(root_id, path=[], visited=set())
        logger.debug("Built hierarchy for %s with height %d", root_id, tree.height())
        return tree

    def _company_node(self, company_id: str, path: list[str], visited: set[str]) -> HierarchyNode:
        if company_id in path:
            raise CyclicOwnershipError([*path[path.index(company_id):], company_id])
        if company_id in visited:
            raise AmbiguousOwnershipError(company_id, self._facts.parents_of(company_id))
        path.append(company_id)
        visited.add(company_id)

        record = self._facts.company(company_id)
        subsidiaries = [
            self._company_node(child_id, path, visited)
            for child_id in self._facts.children_of(company_id)
        ]
        stores = [self._store_node(store_id) for store_id in self._facts.stores_of(company_id)]

        path.pop()
        return HierarchyNode(
            id=record.id,
            name=record.name,
            kind=EntityKind.COMPANY,
            currency=self._currency.currency_of(company_id),
            children=(*subsidiaries, *stores),
        )

    def _store_node(self, store_id: str) -> HierarchyNode:
        record = self._facts.store(store_id)
        return HierarchyNode(
            id=record.id,
            name=record.location,
            kind=EntityKind.STORE,
            currency=self._currency.currency_of(store_id),
        )

"""
Ownership resolution over the subsidiary graph.

Resolves the company ownership forest, enabling:
- Reachability (is one entity owned, directly or not, by another)
- Descendant sets with the entity itself included (reflexive ownership)
- Top-level owner of any company or store
- A top-owner lookup frame for joining onto store listings

The subsidiary graph must be a forest. Cycles raise CyclicOwnershipError
and companies with two parents raise AmbiguousOwnershipError, each only
when a query actually reaches the offending part of the graph.

Classes:
    OwnershipResolver: Traversal queries over a FactStore

Usage:
    from multinational.engine.ownership import OwnershipResolver

    resolver = OwnershipResolver(fact_store, config)
    resolver.top_owner_of("reykjavik")
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

import polars as pl

from multinational.contracts.errors import AmbiguousOwnershipError, CyclicOwnershipError
from multinational.data.schemas import TOP_OWNER_SCHEMA
from multinational.domain.enums import EntityKind

if TYPE_CHECKING:
    from multinational.contracts.config import ResolutionConfig
    from multinational.engine.facts import FactStore

logger = logging.getLogger(__name__)


class OwnershipResolver:
    """
    Answer ownership queries against one fact store.

    All methods are pure reads; the resolver keeps no state besides its
    references to the fact store and configuration.
    """

    def __init__(self, facts: FactStore, config: ResolutionConfig) -> None:
        self._facts = facts
        self._config = config

    @property
    def depth_limit(self) -> int:
        return self._config.depth_limit(self._facts.company_count)

    def parent_of(self, company_id: str) -> str | None:
        """
        Single direct parent of a company.

        Raises:
            AmbiguousOwnershipError: If the company has several parents
        """
        parents = self._facts.parents_of(company_id)
        if len(parents) > 1:
            raise AmbiguousOwnershipError(company_id, parents)
        return parents[0] if parents else None

    def owner_of(self, entity_id: str) -> str | None:
        """Next entity up the chain: operator for stores, parent for companies."""
        if self._facts.kind_of(entity_id) is EntityKind.STORE:
            return self._facts.operator_of(entity_id)
        return self.parent_of(entity_id)

    def descendants_of(self, entity_id: str) -> set[str]:
        """
        Entity itself plus every company reachable through child edges.

        Depth-first with an explicit stack. A node met again while still on
        the current path closes a cycle; a node met again after it has been
        finished was reached through a second parent.

        Raises:
            UnknownEntityError: If the entity is not in the snapshot
            CyclicOwnershipError: If a cycle is reachable from the entity
            AmbiguousOwnershipError: If a descendant has two parents in the subtree
        """
        if self._facts.kind_of(entity_id) is EntityKind.STORE:
            return {entity_id}

        visited: set[str] = {entity_id}
        path: list[str] = [entity_id]
        on_path: set[str] = {entity_id}
        stack: list[tuple[str, Iterator[str]]] = [
            (entity_id, iter(self._facts.children_of(entity_id)))
        ]

        while stack:
            node, pending = stack[-1]
            child = next(pending, None)
            if child is None:
                stack.pop()
                path.pop()
                on_path.discard(node)
                continue
            if child in on_path:
                raise CyclicOwnershipError([*path[path.index(child):], child])
            if child in visited:
                raise AmbiguousOwnershipError(child, self._facts.parents_of(child))
            visited.add(child)
            path.append(child)
            on_path.add(child)
            stack.append((child, iter(self._facts.children_of(child))))

        logger.debug("descendants_of(%s): %d companies", entity_id, len(visited))
        return visited

    def sorted_descendants_of(self, entity_id: str) -> list[str]:
        return sorted(self.descendants_of(entity_id))

    def is_descendant(self, ancestor_id: str, entity_id: str) -> bool:
        """
        True iff a nonzero-length ownership path leads from ancestor to entity.

        For stores the last hop is the operates edge. Walks upward from the
        entity, so it costs one chain rather than a subtree.
        """
        self._facts.kind_of(ancestor_id)
        for owner in self._iter_chain(entity_id):
            if owner == ancestor_id:
                return True
        return False

    def top_owner_of(self, entity_id: str) -> str:
        """
        Top-level owner: the company with no parent at the end of the chain.

        A root company is its own top owner. Stores resolve through their
        operating company.

        Raises:
            UnknownEntityError: If the entity is not in the snapshot
            AmbiguousOwnershipError: If a company on the chain has two parents
            CyclicOwnershipError: If the chain revisits a company or exceeds
                the depth limit
        """
        top, _ = self._walk_to_top(entity_id)
        return top

    def build_top_owner_lookup(self) -> pl.DataFrame:
        """
        Resolve the top owner of every company.

        Returns DataFrame with columns:
        - company_id: The company
        - top_owner_id: Its top-level owner
        - hierarchy_depth: Number of parent edges traversed
        """
        company_ids: list[str] = []
        tops: list[str] = []
        depths: list[int] = []

        for company_id in self._facts.company_ids():
            top, depth = self._walk_to_top(company_id)
            company_ids.append(company_id)
            tops.append(top)
            depths.append(depth)

        return pl.DataFrame(
            {"company_id": company_ids, "top_owner_id": tops, "hierarchy_depth": depths},
            schema=TOP_OWNER_SCHEMA,
        )

    def _walk_to_top(self, entity_id: str) -> tuple[str, int]:
        current = entity_id
        if self._facts.kind_of(entity_id) is EntityKind.STORE:
            current = self._facts.operator_of(entity_id)

        depth = 0
        for owner in self._iter_chain(current):
            current = owner
            depth += 1
        return current, depth

    def _iter_chain(self, entity_id: str) -> Iterator[str]:
        """
        Yield each owner above an entity, nearest first.

        Bounded by the depth limit and guarded by a visited set.
        """
        limit = self.depth_limit
        path = [entity_id]
        seen = {entity_id}
        owner = self.owner_of(entity_id)
        while owner is not None:
            if owner in seen:
                raise CyclicOwnershipError([*path[path.index(owner):], owner])
            if len(path) > limit:
                raise CyclicOwnershipError(path, f"exceeded depth limit {limit}")
            yield owner
            path.append(owner)
            seen.add(owner)
            owner = self.parent_of(owner)

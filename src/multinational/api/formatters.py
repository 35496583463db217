"""
Result formatting utilities for the ownership query façade.

Converts query results into shapes the view layer consumes directly:
- Tree items (nested dicts) for expandable tree widgets
- polars DataFrames for data tables

No resolution happens here; every function is a pure reshaping of
already-resolved records.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import polars as pl

from multinational.contracts.bundles import CompanySummary, HierarchyNode, StoreListing
from multinational.data.schemas import COMPANY_LISTING_SCHEMA, STORE_LISTING_SCHEMA


def tree_to_items(node: HierarchyNode) -> dict[str, Any]:
    """
    Convert a hierarchy node into a nested tree item.

    Returns:
        Dict with id, name, kind, currency and, for non-leaf nodes, children
    """
    item: dict[str, Any] = {
        "id": node.id,
        "name": node.name,
        "kind": str(node.kind),
        "currency": node.currency,
    }
    if node.children:
        item["children"] = [tree_to_items(child) for child in node.children]
    return item


def companies_to_frame(companies: Sequence[CompanySummary]) -> pl.DataFrame:
    """Company listing as a DataFrame, preserving input order."""
    return pl.DataFrame(
        {
            "company_id": [c.id for c in companies],
            "name": [c.name for c in companies],
            "currency": [c.currency for c in companies],
        },
        schema=COMPANY_LISTING_SCHEMA,
    )


def stores_to_frame(stores: Sequence[StoreListing]) -> pl.DataFrame:
    """Store listing as a DataFrame, preserving input order."""
    return pl.DataFrame(
        {
            "top_owner_id": [s.top_owner.id for s in stores],
            "top_owner_name": [s.top_owner.name for s in stores],
            "owner_id": [s.direct_owner.id for s in stores],
            "owner_name": [s.direct_owner.name for s in stores],
            "store_id": [s.store.id for s in stores],
            "location": [s.store.location for s in stores],
            "currency": [s.currency for s in stores],
        },
        schema=STORE_LISTING_SCHEMA,
    )

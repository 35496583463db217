"""
Ownership API Module.

Public API for the presentation layer providing:
- OwnershipService: Query façade (load, listings, hierarchy)
- Response models: LoadResult, ServiceStatus, CompanyDetails, APIError
- Formatters: Tree items and DataFrames for display widgets

Usage:
    from multinational.api import create_service

    service = create_service()
    service.load(program_text)

    for row in service.list_all_stores():
        print(row.top_owner.name, row.store.location, row.currency)
"""

from multinational.api.formatters import (
    companies_to_frame,
    stores_to_frame,
    tree_to_items,
)
from multinational.api.models import (
    APIError,
    CompanyDetails,
    LoadResult,
    QueryResult,
    ServiceStatus,
)
from multinational.api.service import OwnershipService, create_service

__all__ = [
    # Service
    "OwnershipService",
    "create_service",
    # Response models
    "LoadResult",
    "ServiceStatus",
    "CompanyDetails",
    "QueryResult",
    "APIError",
    # Formatters
    "tree_to_items",
    "companies_to_frame",
    "stores_to_frame",
]

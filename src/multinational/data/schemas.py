"""
This module contains all the schemas for the fact relations and derived outputs.

Key Data Inputs:
- Company                   # Legal entities (id, name, optional currency)
- Store                     # Retail stores (id, location, optional currency)

Mappings:
- Subsidiary                # Direct ownership between companies (parent to child)
- Operates                  # Company operating a store (exactly one per store)
- Explicit_currency         # Accounting currency recorded on a company or store

Derived Outputs:
- Top_owner                 # Company to its top-level owner with hierarchy depth
- Currency_lookup           # Entity to resolved currency with inheritance metadata
- Company_listing           # Flat company listing for display
- Store_listing             # One row per store joined with owners and currency

"""

import polars as pl

COMPANY_SCHEMA = {
    "company_id": pl.String,
    "name": pl.String,
    "currency": pl.String,  # Optional explicit accounting currency
}

SUBSIDIARY_SCHEMA = {
    "parent_company_id": pl.String,
    "child_company_id": pl.String,
}

STORE_SCHEMA = {
    "store_id": pl.String,
    "location": pl.String,
    "currency": pl.String,  # Optional explicit accounting currency
}

OPERATES_SCHEMA = {
    "company_id": pl.String,
    "store_id": pl.String,
}

EXPLICIT_CURRENCY_SCHEMA = {
    "entity_id": pl.String,
    "currency": pl.String,
}

TOP_OWNER_SCHEMA = {
    "company_id": pl.String,
    "top_owner_id": pl.String,
    "hierarchy_depth": pl.Int32,
}

CURRENCY_LOOKUP_SCHEMA = {
    "entity_id": pl.String,
    "entity_kind": pl.String,
    "currency": pl.String,
    "inherited": pl.Boolean,
    "source_entity_id": pl.String,
    "currency_source": pl.String,
}

COMPANY_LISTING_SCHEMA = {
    "company_id": pl.String,
    "name": pl.String,
    "currency": pl.String,
}

STORE_LISTING_SCHEMA = {
    "top_owner_id": pl.String,
    "top_owner_name": pl.String,
    "owner_id": pl.String,
    "owner_name": pl.String,
    "store_id": pl.String,
    "location": pl.String,
    "currency": pl.String,
}

# Required (non-null) columns per fact relation
REQUIRED_COLUMNS = {
    "companies": {"company_id", "name"},
    "subsidiaries": {"parent_company_id", "child_company_id"},
    "stores": {"store_id", "location"},
    "operates": {"company_id", "store_id"},
    "currencies": {"entity_id", "currency"},
}

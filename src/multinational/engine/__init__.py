"""
Ownership resolution engine components.

This package contains the resolver stack, wired in dependency order:

    Loader -> FactStore -> OwnershipResolver -> CurrencyResolver
        -> HierarchyBuilder

Modules:
    loader: Fact program parsing and CSV/Parquet table loading
    facts: Validated, immutable fact store
    ownership: Reachability, descendants and top-level owners
    currency: Currency inheritance along the ownership chain
    hierarchy: Ownership tree materialisation
    pipeline: Snapshot assembly
"""

from .currency import CurrencyResolver
from .facts import FactStore
from .hierarchy import HierarchyBuilder
from .loader import CSVLoader, FactProgramParser, ParquetLoader
from .ownership import OwnershipResolver
from .pipeline import OwnershipSnapshot, build_snapshot

__all__ = [
    "FactProgramParser",
    "CSVLoader",
    "ParquetLoader",
    "FactStore",
    "OwnershipResolver",
    "CurrencyResolver",
    "HierarchyBuilder",
    "OwnershipSnapshot",
    "build_snapshot",
]

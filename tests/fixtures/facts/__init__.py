"""
Fact set fixtures.

Builders for fact programs, FactBundles and relation files used by unit
and acceptance tests.
"""

from tests.fixtures.facts.multinationals import (
    BIGCO_PROGRAM,
    CYCLIC_PROGRAM,
    ICELAND_PROGRAM,
    create_bigco_bundle,
    expected_store_rows,
    snapshot_of,
    write_bigco_csv,
    write_bigco_parquet,
)

__all__ = [
    "BIGCO_PROGRAM",
    "CYCLIC_PROGRAM",
    "ICELAND_PROGRAM",
    "create_bigco_bundle",
    "expected_store_rows",
    "snapshot_of",
    "write_bigco_csv",
    "write_bigco_parquet",
]

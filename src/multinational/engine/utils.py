"""
Shared utility functions for the ownership resolution engine.

Provides DataFrame validation helpers used across the loaders and the
fact store, plus currency code normalisation.
"""

from __future__ import annotations

import re

import polars as pl

_CURRENCY_CODE = re.compile(r"[A-Za-z]{3}")


def has_required_columns(
    data: pl.DataFrame | None,
    required_columns: set[str] | None = None,
) -> bool:
    """
    Check if a DataFrame is not None and has the required columns.

    Args:
        data: Optional DataFrame to validate
        required_columns: Column names that must be present (optional)

    Returns:
        True if data is not None and contains all required columns
    """
    if data is None:
        return False
    if required_columns is None:
        return True
    return required_columns.issubset(set(data.columns))


def null_counts(data: pl.DataFrame, columns: set[str]) -> dict[str, int]:
    """
    Count null or blank values per column.

    Returns:
        Mapping of column name to offending row count, for columns with any
    """
    if data.height == 0:
        return {}
    counts = data.select([
        (pl.col(c).is_null() | (pl.col(c).cast(pl.String).str.strip_chars() == ""))
        .sum()
        .alias(c)
        for c in sorted(columns)
    ]).row(0, named=True)
    return {column: count for column, count in counts.items() if count}


def is_valid_currency(code: str | None) -> bool:
    """True for three-letter alphabetic codes in any case."""
    return code is not None and bool(_CURRENCY_CODE.fullmatch(code))


def normalise_currency(code: str | None) -> str | None:
    """Upper-case a currency code at the resolution boundary."""
    if code is None:
        return None
    return code.upper()

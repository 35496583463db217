"""
Query façade for the ownership resolution engine.

OwnershipService: Loads fact sets and answers presentation queries

The service is the only boundary the presentation layer talks to. It owns
the load gate and the published snapshot:
- Queries before the first load wait up to config.load_wait_seconds, then fail
- Each load builds a complete snapshot off to the side, then publishes it
  with a single reference swap
- Every query captures one snapshot at entry and runs against it only

Usage:
    from multinational.api.service import create_service

    service = create_service()
    service.load(program_text)
    rows = service.list_all_stores()
    tree = service.get_hierarchy("intl")
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import polars as pl

from multinational.api.formatters import companies_to_frame, stores_to_frame
from multinational.api.models import (
    APIError,
    CompanyDetails,
    LoadResult,
    QueryResult,
    ServiceStatus,
)
from multinational.contracts.bundles import (
    CompanyRef,
    CompanySummary,
    FactBundle,
    HierarchyNode,
    StoreListing,
    StoreRef,
)
from multinational.contracts.config import ResolutionConfig
from multinational.contracts.errors import OwnershipError, ResolutionFailure
from multinational.engine.loader import CSVLoader, FactProgramParser, ParquetLoader
from multinational.engine.pipeline import OwnershipSnapshot, build_snapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OwnershipService:
    """
    Load fact sets and serve ownership queries.

    Reads take no lock: snapshots are immutable and the published reference
    is replaced atomically. The lock only orders publication.

    Usage:
        service = OwnershipService(ResolutionConfig.default())
        service.load(text)
        service.list_companies()
    """

    def __init__(self, config: ResolutionConfig | None = None) -> None:
        self._config = config or ResolutionConfig.default()
        self._lock = threading.Lock()
        self._loaded = threading.Event()
        self._snapshot: OwnershipSnapshot | None = None
        self._issued = 0
        self._last_error: str | None = None

    @property
    def config(self) -> ResolutionConfig:
        return self._config

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, program_text: str) -> LoadResult:
        """
        Parse a fact program and publish it.

        Raises:
            ResolutionFailure: On syntax errors in the program
            MalformedFactError: If the facts fail validation
        """
        parser = FactProgramParser(self._config)
        return self._load(lambda: parser.parse(program_text), "program text")

    def load_bundle(self, bundle: FactBundle) -> LoadResult:
        """Validate and publish an already-built bundle."""
        return self._load(lambda: bundle, "bundle")

    def load_directory(self, path: Path | str, file_format: str = "csv") -> LoadResult:
        """
        Load relation tables from a directory.

        Args:
            path: Directory holding companies, subsidiaries, stores, operates
                (and optionally currencies) files
            file_format: "csv" or "parquet"
        """
        loaders = {"csv": CSVLoader, "parquet": ParquetLoader}
        if file_format not in loaders:
            raise ValueError(f"Unsupported file format '{file_format}', expected csv or parquet")
        loader = loaders[file_format](path)
        return self._load(loader.load, str(path))

    def _load(self, read: Callable[[], FactBundle], source: str) -> LoadResult:
        generation = self._next_generation()
        try:
            try:
                snapshot = build_snapshot(read(), self._config, generation)
            except (OSError, pl.exceptions.PolarsError) as error:
                raise ResolutionFailure(f"could not read facts from {source}: {error}") from error
        except OwnershipError as error:
            with self._lock:
                current = self._snapshot
                if current is None or current.generation < generation:
                    self._last_error = error.message
            logger.error("Load %d from %s failed: %s", generation, source, error.message)
            raise

        facts = snapshot.facts
        with self._lock:
            current = self._snapshot
            if current is not None and current.generation > generation:
                logger.warning(
                    "Load %d abandoned: generation %d already published",
                    generation,
                    current.generation,
                )
                return LoadResult(generation, False, facts.company_count, facts.store_count)
            self._snapshot = snapshot
            self._last_error = None
        self._loaded.set()

        logger.info(
            "Published snapshot %d from %s: %d companies, %d stores",
            generation,
            source,
            facts.company_count,
            facts.store_count,
        )
        return LoadResult(generation, True, facts.company_count, facts.store_count)

    def _next_generation(self) -> int:
        with self._lock:
            self._issued += 1
            return self._issued

    def _current(self) -> OwnershipSnapshot:
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        if not self._loaded.wait(self._config.load_wait_seconds):
            raise ResolutionFailure("no fact set has been loaded")
        return self._snapshot

    # =========================================================================
    # Queries
    # =========================================================================

    def list_companies(self) -> list[CompanySummary]:
        """All companies sorted by id, with resolved currency."""
        snapshot = self._current()
        facts = snapshot.facts
        return [
            CompanySummary(
                id=company_id,
                name=facts.company(company_id).name,
                currency=snapshot.currency.currency_of(company_id),
            )
            for company_id in facts.company_ids()
        ]

    def list_all_stores(self) -> list[StoreListing]:
        """
        One row per store with its top owner, direct owner and currency.

        Rows are sorted by top owner id, owner id, then store id.
        """
        snapshot = self._current()
        facts = snapshot.facts
        rows: list[StoreListing] = []
        for store_id in facts.store_ids():
            store = facts.store(store_id)
            owner = facts.company(facts.operator_of(store_id))
            top = facts.company(snapshot.ownership.top_owner_of(owner.id))
            rows.append(
                StoreListing(
                    top_owner=CompanyRef(top.id, top.name),
                    direct_owner=CompanyRef(owner.id, owner.name),
                    store=StoreRef(store.id, store.location),
                    currency=snapshot.currency.currency_of(store_id),
                )
            )
        rows.sort(key=lambda r: (r.top_owner.id, r.direct_owner.id, r.store.id))
        return rows

    def get_hierarchy(self, root_id: str) -> HierarchyNode:
        """Ownership tree below root_id with resolved currencies."""
        return self._current().hierarchy.build_tree(root_id)

    def get_company_details(self, company_id: str) -> CompanyDetails:
        """
        Company card contents: name, display currency and ownership tree.

        Raises:
            UnknownEntityError: If company_id is not a company
        """
        snapshot = self._current()
        record = snapshot.facts.company(company_id)
        currency = snapshot.currency.currency_of(company_id)
        return CompanyDetails(
            id=record.id,
            name=record.name,
            currency_display=currency or self._config.undefined_currency_display,
            tree=snapshot.hierarchy.build_tree(company_id),
        )

    def companies_frame(self) -> pl.DataFrame:
        return companies_to_frame(self.list_companies())

    def stores_frame(self) -> pl.DataFrame:
        return stores_to_frame(self.list_all_stores())

    def resolution_frames(self) -> dict[str, pl.DataFrame]:
        """
        Whole-graph resolution tables for auditing.

        Returns:
            Dict with "top_owners" (company -> top owner, depth) and
            "currencies" (entity -> currency with inheritance metadata)
        """
        snapshot = self._current()
        return {
            "top_owners": snapshot.ownership.build_top_owner_lookup(),
            "currencies": snapshot.currency.build_currency_lookup(),
        }

    def status(self) -> ServiceStatus:
        with self._lock:
            snapshot = self._snapshot
            last_error = self._last_error
        if snapshot is None:
            return ServiceStatus(False, 0, 0, 0, last_error)
        return ServiceStatus(
            loaded=True,
            generation=snapshot.generation,
            company_count=snapshot.facts.company_count,
            store_count=snapshot.facts.store_count,
            last_error=last_error,
        )

    def run_query(self, query: Callable[[], T]) -> QueryResult[T]:
        """
        Run a query and report ownership errors as data instead of raising.

        Usage:
            result = service.run_query(lambda: service.get_hierarchy("intl"))
            if not result.success:
                show(result.error.message)
        """
        try:
            return QueryResult(ok=query())
        except OwnershipError as error:
            logger.info("Query failed: %s", error.message)
            return QueryResult(error=APIError.from_exception(error))


def create_service(config: ResolutionConfig | None = None) -> OwnershipService:
    """
    Create an ownership service instance.

    Returns:
        OwnershipService with no fact set loaded
    """
    return OwnershipService(config)

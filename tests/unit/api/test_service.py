"""Unit tests for the OwnershipService query façade.

Tests cover:
- Loading: program text, bundles, directories, failed loads
- Load gate: queries before the first load
- Snapshot isolation: reloads swap atomically, stale loads are abandoned
- Queries: list_companies, list_all_stores, get_hierarchy, company details
- Error surfacing: run_query and status
"""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from multinational.api.models import QueryResult
from multinational.api.service import OwnershipService, create_service
from multinational.contracts.bundles import CompanyRef, StoreListing, StoreRef
from multinational.contracts.config import ResolutionConfig
from multinational.contracts.errors import (
    CyclicOwnershipError,
    MalformedFactError,
    ResolutionFailure,
    UnknownEntityError,
)
from multinational.engine.pipeline import build_snapshot
from tests.fixtures.facts import (
    BIGCO_PROGRAM,
    CYCLIC_PROGRAM,
    ICELAND_PROGRAM,
    create_bigco_bundle,
    write_bigco_csv,
)


# =============================================================================
# Loading Tests
# =============================================================================


class TestLoading:
    """Tests for load, load_bundle and load_directory."""

    def test_load_program(self) -> None:
        service = create_service()

        result = service.load(BIGCO_PROGRAM)

        assert result.applied
        assert result.generation == 1
        assert (result.company_count, result.store_count) == (6, 5)

    def test_load_bundle(self) -> None:
        service = create_service()

        result = service.load_bundle(create_bigco_bundle())

        assert result.applied
        assert service.status().company_count == 6

    def test_load_directory(self, tmp_path: Path) -> None:
        service = create_service()

        service.load_directory(write_bigco_csv(tmp_path))

        assert [c.id for c in service.list_companies()][:2] == ["iceland", "intl"]

    def test_load_directory_rejects_unknown_format(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Unsupported file format"):
            create_service().load_directory(tmp_path, file_format="xlsx")

    def test_generations_increase(self) -> None:
        service = create_service()

        service.load(ICELAND_PROGRAM)
        result = service.load(BIGCO_PROGRAM)

        assert result.generation == 2
        assert service.status().generation == 2

    def test_failed_load_keeps_previous_snapshot(self, service: OwnershipService) -> None:
        with pytest.raises(MalformedFactError):
            service.load('company(a, "A").\nsubsidiary(a, ghost).\n')

        status = service.status()
        assert status.loaded
        assert status.company_count == 6
        assert "ghost" in status.last_error
        assert len(service.list_companies()) == 6

    def test_syntax_error_is_resolution_failure(self, service: OwnershipService) -> None:
        with pytest.raises(ResolutionFailure):
            service.load("invalid syntax")

        assert service.status().last_error is not None

    def test_successful_load_clears_last_error(self, service: OwnershipService) -> None:
        with pytest.raises(ResolutionFailure):
            service.load("invalid syntax")

        service.load(ICELAND_PROGRAM)

        assert service.status().last_error is None

    def test_missing_directory_is_reported_as_malformed(self, tmp_path: Path) -> None:
        with pytest.raises(MalformedFactError, match="missing required file"):
            create_service().load_directory(tmp_path / "nowhere")


# =============================================================================
# Load Gate Tests
# =============================================================================


class TestLoadGate:
    """Tests for queries issued before any load completes."""

    def test_query_before_load_fails(self) -> None:
        with pytest.raises(ResolutionFailure, match="no fact set has been loaded"):
            create_service().list_companies()

    def test_status_before_load(self) -> None:
        status = create_service().status()

        assert not status.loaded
        assert status.generation == 0

    def test_query_waits_for_first_load(self) -> None:
        service = create_service(ResolutionConfig(load_wait_seconds=5.0))
        loader = threading.Timer(0.05, service.load, args=(BIGCO_PROGRAM,))
        loader.start()
        try:
            companies = service.list_companies()
        finally:
            loader.join()

        assert len(companies) == 6


# =============================================================================
# Snapshot Isolation Tests
# =============================================================================


class TestSnapshotSwap:
    """Tests for atomic publication and abandoned loads."""

    def test_trees_from_old_snapshot_survive_reload(self, service: OwnershipService) -> None:
        before = service.get_hierarchy("intl")

        service.load(ICELAND_PROGRAM)
        after = service.get_hierarchy("intl")

        assert [c.id for c in before.children] == ["iceland", "norway", "us"]
        assert [c.id for c in after.children] == ["iceland"]

    def test_superseded_load_is_abandoned(self, monkeypatch: pytest.MonkeyPatch) -> None:
        service = create_service()
        newer_published = threading.Event()

        def slow_build(bundle, cfg, generation):
            if generation == 1:
                newer_published.wait(timeout=5)
            return build_snapshot(bundle, cfg, generation)

        monkeypatch.setattr("multinational.api.service.build_snapshot", slow_build)

        results = {}
        older = threading.Thread(target=lambda: results.setdefault("old", service.load(BIGCO_PROGRAM)))
        older.start()
        while service._issued < 1:
            pass
        results["new"] = service.load(ICELAND_PROGRAM)
        newer_published.set()
        older.join()

        assert results["new"].applied
        assert not results["old"].applied
        assert service.status().generation == 2
        assert service.status().company_count == 2

    def test_superseded_failure_does_not_mark_status(self, monkeypatch: pytest.MonkeyPatch) -> None:
        service = create_service()
        newer_published = threading.Event()

        def slow_failing_build(bundle, cfg, generation):
            if generation == 1:
                newer_published.wait(timeout=5)
                raise MalformedFactError("stale facts")
            return build_snapshot(bundle, cfg, generation)

        monkeypatch.setattr("multinational.api.service.build_snapshot", slow_failing_build)

        errors = []

        def load_older() -> None:
            try:
                service.load(BIGCO_PROGRAM)
            except MalformedFactError as error:
                errors.append(error)

        older = threading.Thread(target=load_older)
        older.start()
        while service._issued < 1:
            pass
        service.load(ICELAND_PROGRAM)
        newer_published.set()
        older.join()

        assert len(errors) == 1
        status = service.status()
        assert status.generation == 2
        assert status.last_error is None


# =============================================================================
# Query Tests
# =============================================================================


class TestQueries:
    """Tests for the read operations."""

    def test_list_companies_sorted_with_currency(self, service: OwnershipService) -> None:
        companies = service.list_companies()

        assert [(c.id, c.currency) for c in companies] == [
            ("iceland", "ISK"),
            ("intl", None),
            ("norway", None),
            ("solo", "GBP"),
            ("us", "USD"),
            ("us_east", "USD"),
        ]

    def test_list_all_stores(self, service: OwnershipService) -> None:
        rows = service.list_all_stores()

        assert rows[0] == StoreListing(
            top_owner=CompanyRef("intl", "BigCo Intl"),
            direct_owner=CompanyRef("iceland", "BigCo Iceland"),
            store=StoreRef("akureyri", "Akureyri"),
            currency="EUR",
        )
        assert [(r.direct_owner.id, r.store.id, r.currency) for r in rows] == [
            ("iceland", "akureyri", "EUR"),
            ("iceland", "reykjavik", "ISK"),
            ("norway", "oslo", None),
            ("us", "boston", "USD"),
            ("us_east", "nyc", "USD"),
        ]

    def test_get_hierarchy_delegates(self, service: OwnershipService) -> None:
        tree = service.get_hierarchy("us")

        assert [c.id for c in tree.children] == ["us_east", "boston"]

    def test_get_hierarchy_unknown_root(self, service: OwnershipService) -> None:
        with pytest.raises(UnknownEntityError):
            service.get_hierarchy("atlantis")

    def test_company_details(self, service: OwnershipService) -> None:
        details = service.get_company_details("iceland")

        assert details.name == "BigCo Iceland"
        assert details.currency_display == "ISK"
        assert len(details.tree.children) == 2

    def test_company_details_placeholder_currency(self, service: OwnershipService) -> None:
        assert service.get_company_details("intl").currency_display == "-"

    def test_company_details_custom_placeholder(self) -> None:
        service = create_service(ResolutionConfig(undefined_currency_display="n/a"))
        service.load(BIGCO_PROGRAM)

        assert service.get_company_details("norway").currency_display == "n/a"

    def test_company_details_rejects_store(self, service: OwnershipService) -> None:
        with pytest.raises(UnknownEntityError, match="not a company"):
            service.get_company_details("oslo")

    def test_resolution_frames(self, service: OwnershipService) -> None:
        frames = service.resolution_frames()

        assert frames["top_owners"].height == 6
        assert frames["currencies"].height == 11

    def test_cyclic_facts_fail_the_query_not_the_load(self) -> None:
        service = create_service()
        service.load(CYCLIC_PROGRAM)

        with pytest.raises(CyclicOwnershipError):
            service.get_hierarchy("a")
        assert service.status().loaded


# =============================================================================
# Error Surfacing Tests
# =============================================================================


class TestRunQuery:
    """Tests for run_query."""

    def test_success(self, service: OwnershipService) -> None:
        result = service.run_query(lambda: service.get_hierarchy("solo"))

        assert isinstance(result, QueryResult)
        assert result.success
        assert result.ok.id == "solo"

    def test_error_message_is_surfaced_as_is(self) -> None:
        service = create_service()
        service.load(CYCLIC_PROGRAM)

        result = service.run_query(lambda: service.get_hierarchy("a"))

        assert not result.success
        assert result.ok is None
        assert result.error.code == "CYCLIC_OWNERSHIP"
        assert result.error.category == "hierarchy"
        assert result.error.message == "Cyclic ownership: a -> b -> a"

    def test_retry_after_fix(self) -> None:
        service = create_service()
        service.load(CYCLIC_PROGRAM)
        assert not service.run_query(lambda: service.get_hierarchy("a")).success

        service.load('company(a, "Alpha").\ncompany(b, "Beta").\nsubsidiary(a, b).\n')

        assert service.run_query(lambda: service.get_hierarchy("a")).success

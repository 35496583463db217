"""
Unit tests for currency resolution.

Tests explicit currencies, inheritance through operators and parents,
nearest-value precedence, undefined chains and the lookup frame.
"""

import pytest

from multinational.contracts.errors import (
    AmbiguousOwnershipError,
    CyclicOwnershipError,
    UnknownEntityError,
)
from multinational.domain.enums import CurrencySource
from multinational.engine.pipeline import OwnershipSnapshot
from tests.fixtures.facts import snapshot_of


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def iceland() -> OwnershipSnapshot:
    """Minimal two-level example with an ISK subsidiary."""
    return snapshot_of(
        companies=[("intl", "BigCo Intl"), ("iceland", "BigCo Iceland")],
        subsidiaries=[("intl", "iceland")],
        stores=[("reykjavik", "Reykjavik")],
        operates=[("iceland", "reykjavik")],
        currencies=[("iceland", "isk")],
    )


# =============================================================================
# RESOLUTION
# =============================================================================


class TestCurrencyOf:
    """Tests for currency_of."""

    def test_store_inherits_from_operator_upper_cased(self, iceland: OwnershipSnapshot) -> None:
        assert iceland.currency.currency_of("reykjavik") == "ISK"

    def test_explicit_company_currency(self, bigco: OwnershipSnapshot) -> None:
        assert bigco.currency.currency_of("us") == "USD"

    def test_company_inherits_from_parent(self, bigco: OwnershipSnapshot) -> None:
        assert bigco.currency.currency_of("us_east") == "USD"

    def test_store_inherits_across_two_levels(self, bigco: OwnershipSnapshot) -> None:
        assert bigco.currency.currency_of("nyc") == "USD"

    def test_store_override_beats_operator_currency(self, bigco: OwnershipSnapshot) -> None:
        assert bigco.currency.currency_of("iceland") == "ISK"
        assert bigco.currency.currency_of("akureyri") == "EUR"

    def test_undefined_when_no_ancestor_has_currency(self, bigco: OwnershipSnapshot) -> None:
        assert bigco.currency.currency_of("intl") is None
        assert bigco.currency.currency_of("norway") is None
        assert bigco.currency.currency_of("oslo") is None

    def test_nearest_value_wins_over_distant_ancestor(self) -> None:
        snapshot = snapshot_of(
            companies=[("top", "Top", "usd"), ("mid", "Mid", "chf"), ("low", "Low")],
            subsidiaries=[("top", "mid"), ("mid", "low")],
            stores=[("shop", "Zurich")],
            operates=[("low", "shop")],
        )

        assert snapshot.currency.currency_of("shop") == "CHF"
        assert snapshot.currency.currency_of("low") == "CHF"

    def test_stores_follow_operator_unless_explicit(self, bigco: OwnershipSnapshot) -> None:
        facts = bigco.facts
        for store_id in facts.store_ids():
            explicit = facts.explicit_currency(store_id)
            resolved = bigco.currency.currency_of(store_id)
            if explicit is None:
                assert resolved == bigco.currency.currency_of(facts.operator_of(store_id))
            else:
                assert resolved == explicit.upper()

    def test_unknown_entity(self, bigco: OwnershipSnapshot) -> None:
        with pytest.raises(UnknownEntityError):
            bigco.currency.currency_of("atlantis")

    def test_cycle_is_rejected(self) -> None:
        snapshot = snapshot_of(
            companies=[("a", "Alpha"), ("b", "Beta")],
            subsidiaries=[("a", "b"), ("b", "a")],
        )

        with pytest.raises(CyclicOwnershipError):
            snapshot.currency.currency_of("a")

    def test_cycle_above_explicit_currency_is_not_reached(self) -> None:
        snapshot = snapshot_of(
            companies=[("a", "Alpha", "nok"), ("b", "Beta")],
            subsidiaries=[("a", "b"), ("b", "a")],
        )

        assert snapshot.currency.currency_of("a") == "NOK"
        assert snapshot.currency.currency_of("b") == "NOK"

    def test_second_parent_is_ambiguous_when_walk_needs_it(self) -> None:
        snapshot = snapshot_of(
            companies=[("p1", "P1", "usd"), ("p2", "P2", "eur"), ("child", "Child")],
            subsidiaries=[("p1", "child"), ("p2", "child")],
        )

        with pytest.raises(AmbiguousOwnershipError):
            snapshot.currency.currency_of("child")

    def test_second_parent_irrelevant_when_explicit(self) -> None:
        snapshot = snapshot_of(
            companies=[("p1", "P1"), ("p2", "P2"), ("child", "Child", "sek")],
            subsidiaries=[("p1", "child"), ("p2", "child")],
        )

        assert snapshot.currency.currency_of("child") == "SEK"


# =============================================================================
# PROVENANCE
# =============================================================================


class TestCurrencyResolution:
    """Tests for resolve metadata."""

    def test_explicit(self, bigco: OwnershipSnapshot) -> None:
        resolution = bigco.currency.resolve("akureyri")

        assert resolution.source is CurrencySource.EXPLICIT
        assert resolution.source_entity_id == "akureyri"
        assert not resolution.inherited

    def test_inherited(self, bigco: OwnershipSnapshot) -> None:
        resolution = bigco.currency.resolve("nyc")

        assert resolution.source is CurrencySource.INHERITED
        assert resolution.source_entity_id == "us"
        assert resolution.inherited

    def test_undefined(self, bigco: OwnershipSnapshot) -> None:
        resolution = bigco.currency.resolve("oslo")

        assert resolution.source is CurrencySource.UNDEFINED
        assert resolution.currency is None
        assert resolution.source_entity_id is None


class TestCurrencyLookup:
    """Tests for build_currency_lookup."""

    def test_lookup_covers_companies_and_stores(self, bigco: OwnershipSnapshot) -> None:
        lookup = bigco.currency.build_currency_lookup()

        assert lookup.height == 11
        assert set(lookup["entity_kind"].unique().to_list()) == {"company", "store"}

    def test_lookup_values(self, bigco: OwnershipSnapshot) -> None:
        lookup = bigco.currency.build_currency_lookup()
        row = lookup.filter(lookup["entity_id"] == "reykjavik").row(0, named=True)

        assert row == {
            "entity_id": "reykjavik",
            "entity_kind": "store",
            "currency": "ISK",
            "inherited": True,
            "source_entity_id": "iceland",
            "currency_source": "inherited",
        }

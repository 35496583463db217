"""
Fact store for the ownership resolution engine.

Validates a FactBundle and indexes it into read-only lookups:
- Companies and stores by id (one shared id namespace)
- Parent and child adjacency from subsidiary edges
- Store operator and per-company store lists from operates edges
- Explicit currencies merged from entity columns and currency facts

Loading is all-or-nothing: every problem found is collected and reported
in a single MalformedFactError, and no FactStore is produced.

Classes:
    FactStore: Immutable, validated snapshot of the base relations

Usage:
    from multinational.engine.facts import FactStore

    store = FactStore.load(bundle)
    store.children_of("intl")
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from collections.abc import Mapping
from types import MappingProxyType

import polars as pl

from multinational.contracts.bundles import CompanyRecord, FactBundle, StoreRecord
from multinational.contracts.errors import MalformedFactError, UnknownEntityError
from multinational.data.schemas import REQUIRED_COLUMNS
from multinational.domain.enums import EntityKind
from multinational.engine.utils import has_required_columns, is_valid_currency, null_counts

logger = logging.getLogger(__name__)


class FactStore:
    """
    Validated, immutable snapshot of companies, stores and their edges.

    Construct with FactStore.load(); instances are never mutated afterwards.
    Subsidiary cycles and multiple parents are accepted here and reported
    by the resolvers at query time.
    """

    def __init__(
        self,
        companies: Mapping[str, CompanyRecord],
        stores: Mapping[str, StoreRecord],
        parents: Mapping[str, tuple[str, ...]],
        children: Mapping[str, tuple[str, ...]],
        stores_by_company: Mapping[str, tuple[str, ...]],
        operator: Mapping[str, str],
        currencies: Mapping[str, str],
    ) -> None:
        self._companies = MappingProxyType(dict(companies))
        self._stores = MappingProxyType(dict(stores))
        self._parents = MappingProxyType(dict(parents))
        self._children = MappingProxyType(dict(children))
        self._stores_by_company = MappingProxyType(dict(stores_by_company))
        self._operator = MappingProxyType(dict(operator))
        self._currencies = MappingProxyType(dict(currencies))

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def load(cls, bundle: FactBundle) -> FactStore:
        """
        Validate a bundle and build a fact store from it.

        Args:
            bundle: Raw relations from a loader

        Returns:
            FactStore holding the whole bundle

        Raises:
            MalformedFactError: If any integrity rule is violated
        """
        problems: list[str] = []

        relations = {
            "companies": bundle.companies,
            "subsidiaries": bundle.subsidiaries,
            "stores": bundle.stores,
            "operates": bundle.operates,
        }
        if bundle.currencies is not None:
            relations["currencies"] = bundle.currencies

        for relation, frame in relations.items():
            required = REQUIRED_COLUMNS[relation]
            if not has_required_columns(frame, required):
                missing = sorted(required - set(frame.columns))
                problems.append(f"{relation}: missing columns {', '.join(missing)}")
                continue
            for column, count in null_counts(frame, required).items():
                problems.append(f"{relation}: {count} row(s) with empty {column}")

        if problems:
            raise MalformedFactError(problems)

        companies = _records(bundle.companies, "company_id", "name", CompanyRecord, problems)
        stores = _records(bundle.stores, "store_id", "location", StoreRecord, problems)

        for entity_id in sorted(companies.keys() & stores.keys()):
            problems.append(f"id '{entity_id}' is used by both a company and a store")

        parents: dict[str, list[str]] = defaultdict(list)
        children: dict[str, list[str]] = defaultdict(list)
        for parent, child in _pairs(bundle.subsidiaries, "parent_company_id", "child_company_id"):
            for role, company_id in (("parent", parent), ("child", child)):
                if company_id not in companies:
                    problems.append(
                        f"subsidiary({parent}, {child}) references unknown {role} company '{company_id}'"
                    )
            if child not in parents or parent not in parents[child]:
                parents[child].append(parent)
                children[parent].append(child)

        operators: dict[str, list[str]] = defaultdict(list)
        stores_by_company: dict[str, list[str]] = defaultdict(list)
        for company_id, store_id in _pairs(bundle.operates, "company_id", "store_id"):
            if company_id not in companies:
                problems.append(f"operates({company_id}, {store_id}) references unknown company '{company_id}'")
            if store_id not in stores:
                problems.append(f"operates({company_id}, {store_id}) references unknown store '{store_id}'")
            if company_id not in operators[store_id]:
                operators[store_id].append(company_id)
                stores_by_company[company_id].append(store_id)

        for store_id in sorted(stores):
            ops = operators.get(store_id, [])
            if not ops:
                problems.append(f"store '{store_id}' has no operating company")
            elif len(ops) > 1:
                problems.append(
                    f"store '{store_id}' is operated by several companies: {', '.join(sorted(ops))}"
                )

        currencies = _merge_currencies(companies, stores, bundle.currencies, problems)

        if problems:
            raise MalformedFactError(problems)

        fact_store = cls(
            companies=companies,
            stores=stores,
            parents={k: tuple(sorted(v)) for k, v in parents.items()},
            children={k: tuple(sorted(v)) for k, v in children.items()},
            stores_by_company={k: tuple(sorted(v)) for k, v in stores_by_company.items()},
            operator={k: v[0] for k, v in operators.items()},
            currencies=currencies,
        )
        logger.debug(
            "Fact store built: %d companies, %d stores, %d subsidiary edges",
            fact_store.company_count,
            fact_store.store_count,
            sum(len(v) for v in children.values()),
        )
        return fact_store

    # =========================================================================
    # Lookups
    # =========================================================================

    @property
    def company_count(self) -> int:
        return len(self._companies)

    @property
    def store_count(self) -> int:
        return len(self._stores)

    def company_ids(self) -> list[str]:
        return sorted(self._companies)

    def store_ids(self) -> list[str]:
        return sorted(self._stores)

    def has_entity(self, entity_id: str) -> bool:
        return entity_id in self._companies or entity_id in self._stores

    def kind_of(self, entity_id: str) -> EntityKind:
        if entity_id in self._companies:
            return EntityKind.COMPANY
        if entity_id in self._stores:
            return EntityKind.STORE
        raise UnknownEntityError(entity_id)

    def company(self, company_id: str) -> CompanyRecord:
        try:
            return self._companies[company_id]
        except KeyError:
            raise UnknownEntityError(company_id, "not a company") from None

    def store(self, store_id: str) -> StoreRecord:
        try:
            return self._stores[store_id]
        except KeyError:
            raise UnknownEntityError(store_id, "not a store") from None

    def parents_of(self, company_id: str) -> tuple[str, ...]:
        """Direct parents of a company, sorted by id (empty for roots)."""
        self.company(company_id)
        return self._parents.get(company_id, ())

    def children_of(self, company_id: str) -> tuple[str, ...]:
        """Direct subsidiaries of a company, sorted by id."""
        self.company(company_id)
        return self._children.get(company_id, ())

    def stores_of(self, company_id: str) -> tuple[str, ...]:
        """Stores directly operated by a company, sorted by id."""
        self.company(company_id)
        return self._stores_by_company.get(company_id, ())

    def operator_of(self, store_id: str) -> str:
        self.store(store_id)
        return self._operator[store_id]

    def explicit_currency(self, entity_id: str) -> str | None:
        """Currency recorded on the entity itself, as stored (case preserved)."""
        self.kind_of(entity_id)
        return self._currencies.get(entity_id)


def _records(
    frame: pl.DataFrame,
    id_col: str,
    label_col: str,
    record_type: type[CompanyRecord] | type[StoreRecord],
    problems: list[str],
) -> dict[str, CompanyRecord] | dict[str, StoreRecord]:
    records: dict = {}
    has_currency = "currency" in frame.columns
    duplicates = Counter(frame[id_col].to_list())
    for entity_id, count in sorted(duplicates.items()):
        if count > 1:
            problems.append(f"duplicate id '{entity_id}' ({count} rows)")
    for row in frame.iter_rows(named=True):
        currency = row.get("currency") if has_currency else None
        if currency is not None and not currency.strip():
            currency = None
        records.setdefault(row[id_col], record_type(row[id_col], row[label_col], currency))
    return records


def _pairs(frame: pl.DataFrame, left: str, right: str) -> list[tuple[str, str]]:
    return list(zip(frame[left].to_list(), frame[right].to_list(), strict=True))


def _merge_currencies(
    companies: dict[str, CompanyRecord],
    stores: dict[str, StoreRecord],
    currency_facts: pl.DataFrame | None,
    problems: list[str],
) -> dict[str, str]:
    merged: dict[str, str] = {}

    def add(entity_id: str, code: str) -> None:
        if not is_valid_currency(code):
            problems.append(f"'{code}' for '{entity_id}' is not a 3-letter currency code")
            return
        existing = merged.get(entity_id)
        if existing is None:
            merged[entity_id] = code
        elif existing.upper() != code.upper():
            problems.append(f"'{entity_id}' has conflicting currencies {existing} and {code}")

    for record in (*companies.values(), *stores.values()):
        if record.currency is not None:
            add(record.id, record.currency)

    if currency_facts is not None:
        for entity_id, code in _pairs(currency_facts, "entity_id", "currency"):
            if entity_id not in companies and entity_id not in stores:
                problems.append(f"currency fact references unknown entity '{entity_id}'")
                continue
            add(entity_id, code)

    return merged

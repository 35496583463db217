"""
Fact loading for the ownership resolution engine.

Turns a fact source into a FactBundle:
- FactProgramParser: Prolog-style ground facts in text form
- CSVLoader / ParquetLoader: One table file per relation in a directory

Program text grammar (one clause per terminating '.'):

    % comment
    company(intl, "BigCo Intl").
    company(us, "BigCo US", usd).
    subsidiary(intl, iceland).          % alias: has_subsidiary
    store(reykjavik, "Reykjavik").
    operates(iceland, reykjavik).       % alias: has_store
    explicit_currency(iceland, isk).    % alias: accounting_currency

Rules (``Head :- Body.``) and directives (``:- ...``, ``[user].``) are
skipped: the derivations they encode are computed natively by the
resolvers. Syntax errors raise ResolutionFailure; facts that break the
relation shapes raise MalformedFactError.

Usage:
    from multinational.engine.loader import FactProgramParser, CSVLoader

    bundle = FactProgramParser().parse(program_text)
    bundle = CSVLoader(Path("data/")).load()
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import polars as pl

from multinational.contracts.bundles import FactBundle
from multinational.contracts.errors import MalformedFactError, ResolutionFailure
from multinational.data.schemas import (
    COMPANY_SCHEMA,
    EXPLICIT_CURRENCY_SCHEMA,
    OPERATES_SCHEMA,
    STORE_SCHEMA,
    SUBSIDIARY_SCHEMA,
)

if TYPE_CHECKING:
    from multinational.contracts.config import ResolutionConfig

logger = logging.getLogger(__name__)


# =============================================================================
# Predicate Table
# =============================================================================

# predicate name -> (relation, allowed arities)
PREDICATES: dict[str, tuple[str, frozenset[int]]] = {
    "company": ("companies", frozenset({2, 3})),
    "subsidiary": ("subsidiaries", frozenset({2})),
    "has_subsidiary": ("subsidiaries", frozenset({2})),
    "store": ("stores", frozenset({2, 3})),
    "operates": ("operates", frozenset({2})),
    "has_store": ("operates", frozenset({2})),
    "explicit_currency": ("currencies", frozenset({2})),
    "accounting_currency": ("currencies", frozenset({2})),
}

RELATION_SCHEMAS: dict[str, dict] = {
    "companies": COMPANY_SCHEMA,
    "subsidiaries": SUBSIDIARY_SCHEMA,
    "stores": STORE_SCHEMA,
    "operates": OPERATES_SCHEMA,
    "currencies": EXPLICIT_CURRENCY_SCHEMA,
}

_TOKEN = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
  | (?P<number>-?\d+(?:\.\d+)?)
  | (?P<atom>[a-z][A-Za-z0-9_]*)
  | (?P<var>[A-Z_][A-Za-z0-9_]*)
  | (?P<punct>[(),])
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class Clause:
    """One '.'-terminated clause with the line it starts on."""

    text: str
    line: int


# =============================================================================
# Program Parser
# =============================================================================


class FactProgramParser:
    """
    Parse fact program text into a FactBundle.

    Usage:
        parser = FactProgramParser(config)
        bundle = parser.parse(text)
    """

    def __init__(self, config: ResolutionConfig | None = None) -> None:
        self._strict = config.strict_predicates if config is not None else False

    def parse(self, text: str) -> FactBundle:
        """
        Parse a whole program.

        Raises:
            ResolutionFailure: On syntax errors or non-ground facts
            MalformedFactError: On wrong arities (or unknown predicates when strict)
        """
        rows: dict[str, list[tuple]] = {relation: [] for relation in RELATION_SCHEMAS}
        problems: list[str] = []
        skipped = 0

        for clause in split_clauses(text):
            if _is_directive_or_rule(clause.text):
                skipped += 1
                continue

            name, args = parse_fact(clause)
            known = PREDICATES.get(name)
            if known is None:
                if self._strict:
                    problems.append(f"line {clause.line}: unknown predicate {name}/{len(args)}")
                else:
                    logger.warning("Skipping unknown predicate %s/%d on line %d", name, len(args), clause.line)
                continue

            relation, arities = known
            if len(args) not in arities:
                expected = " or ".join(str(a) for a in sorted(arities))
                problems.append(
                    f"line {clause.line}: {name}/{len(args)} should have {expected} arguments"
                )
                continue
            rows[relation].append(tuple(args))

        if problems:
            raise MalformedFactError(problems)

        if skipped:
            logger.debug("Skipped %d rule or directive clause(s)", skipped)

        return FactBundle.from_records(
            companies=rows["companies"],
            subsidiaries=rows["subsidiaries"],
            stores=rows["stores"],
            operates=rows["operates"],
            currencies=rows["currencies"],
        )


def split_clauses(text: str) -> list[Clause]:
    """
    Split program text into clauses at end tokens.

    A '.' ends a clause when followed by whitespace, '%' or end of text.
    Quoted strings and '%' comments are respected.

    Raises:
        ResolutionFailure: On unterminated strings or a trailing clause
            without its '.'
    """
    clauses: list[Clause] = []
    buffer: list[str] = []
    line = 1
    start_line: int | None = None
    quote: str | None = None
    i = 0
    n = len(text)

    while i < n:
        char = text[i]
        if quote is not None:
            buffer.append(char)
            if char == "\\" and i + 1 < n:
                buffer.append(text[i + 1])
                i += 1
            elif char == quote:
                quote = None
            elif char == "\n":
                raise ResolutionFailure("unterminated quoted string", line=start_line)
        elif char == "%":
            while i < n and text[i] != "\n":
                i += 1
            continue
        elif char == "." and (i + 1 == n or text[i + 1].isspace() or text[i + 1] == "%"):
            clauses.append(Clause(text="".join(buffer).strip(), line=start_line or line))
            buffer = []
            start_line = None
        else:
            if char in "\"'":
                quote = char
            if start_line is None and not char.isspace():
                start_line = line
            buffer.append(char)

        if char == "\n":
            line += 1
        i += 1

    if quote is not None:
        raise ResolutionFailure("unterminated quoted string", line=start_line)
    if "".join(buffer).strip():
        raise ResolutionFailure("clause is missing its terminating '.'", line=start_line)
    return clauses


def parse_fact(clause: Clause) -> tuple[str, list[str]]:
    """
    Parse ``name(arg, ...)`` or a bare ``name`` into its parts.

    Raises:
        ResolutionFailure: On syntax errors or variables in arguments
    """
    tokens = _tokenize(clause)
    if not tokens or tokens[0][0] != "atom":
        raise ResolutionFailure(f"expected a predicate name in '{clause.text}'", line=clause.line)

    name = tokens[0][1]
    if len(tokens) == 1:
        return name, []
    if tokens[1] != ("punct", "(") or tokens[-1] != ("punct", ")"):
        raise ResolutionFailure(f"malformed fact '{clause.text}'", line=clause.line)

    args: list[str] = []
    body = tokens[2:-1]
    expect_value = True
    for kind, value in body:
        if expect_value:
            if kind == "var":
                raise ResolutionFailure(
                    f"fact '{clause.text}' is not ground (variable {value})", line=clause.line
                )
            if kind == "string":
                args.append(_unquote(value))
            elif kind in ("atom", "number"):
                args.append(value)
            else:
                raise ResolutionFailure(f"unexpected '{value}' in '{clause.text}'", line=clause.line)
        elif (kind, value) != ("punct", ","):
            raise ResolutionFailure(f"expected ',' in '{clause.text}'", line=clause.line)
        expect_value = not expect_value

    if body and expect_value:
        raise ResolutionFailure(f"dangling ',' in '{clause.text}'", line=clause.line)
    return name, args


def _tokenize(clause: Clause) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    while pos < len(clause.text):
        match = _TOKEN.match(clause.text, pos)
        if match is None:
            raise ResolutionFailure(
                f"unexpected character '{clause.text[pos]}' in '{clause.text}'", line=clause.line
            )
        kind = match.lastgroup
        if kind != "ws":
            tokens.append((kind, match.group()))
        pos = match.end()
    return tokens


def _unquote(token: str) -> str:
    return re.sub(r"\\(.)", r"\1", token[1:-1])


def _is_directive_or_rule(text: str) -> bool:
    if text.startswith(":-") or text.startswith("["):
        return True
    quote: str | None = None
    for i, char in enumerate(text):
        if quote is not None:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif text.startswith(":-", i):
            return True
    return False


# =============================================================================
# Table Loaders
# =============================================================================


class _TableLoader(ABC):
    """
    Load one file per relation from a directory.

    Expected files (without extension): companies, subsidiaries, stores,
    operates and, optionally, currencies.
    """

    extension: str = ""
    required_files = ("companies", "subsidiaries", "stores", "operates")

    def __init__(self, base_path: Path | str) -> None:
        self.base_path = Path(base_path)

    def load(self) -> FactBundle:
        """
        Read all relation files into a FactBundle.

        Raises:
            MalformedFactError: If a required file is missing
        """
        missing = [
            f"{name}{self.extension}"
            for name in self.required_files
            if not self._path(name).exists()
        ]
        if missing:
            raise MalformedFactError(
                f"{self.base_path} is missing required file(s): {', '.join(missing)}"
            )

        frames = {
            name: self._conform(self._read(self._path(name)), RELATION_SCHEMAS[name])
            for name in self.required_files
        }
        currencies_path = self._path("currencies")
        currencies = (
            self._conform(self._read(currencies_path), EXPLICIT_CURRENCY_SCHEMA)
            if currencies_path.exists()
            else None
        )
        logger.info(
            "Loaded %d companies and %d stores from %s",
            frames["companies"].height,
            frames["stores"].height,
            self.base_path,
        )
        return FactBundle(currencies=currencies, **frames)

    def _path(self, name: str) -> Path:
        return self.base_path / f"{name}{self.extension}"

    @abstractmethod
    def _read(self, path: Path) -> pl.DataFrame:
        """Read one relation file."""

    @staticmethod
    def _conform(frame: pl.DataFrame, schema: dict) -> pl.DataFrame:
        """
        Select schema columns in order and add an absent currency column as nulls.

        Other absent columns are left out so the fact store reports them.
        """
        columns = []
        for column, dtype in schema.items():
            if column in frame.columns:
                columns.append(pl.col(column).cast(dtype))
            elif column == "currency" and "entity_id" not in schema:
                columns.append(pl.lit(None, dtype=dtype).alias(column))
        return frame.select(columns)


class CSVLoader(_TableLoader):
    """Load relations from ``<relation>.csv`` files; every column read as text."""

    extension = ".csv"

    def _read(self, path: Path) -> pl.DataFrame:
        return pl.read_csv(path, infer_schema_length=0)


class ParquetLoader(_TableLoader):
    """Load relations from ``<relation>.parquet`` files."""

    extension = ".parquet"

    def _read(self, path: Path) -> pl.DataFrame:
        return pl.read_parquet(path)

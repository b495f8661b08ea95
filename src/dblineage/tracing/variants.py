"""Column naming-variant index.

Built once per trace run. Every column contributes the forms it may take in
host-language code: ``user_id``, ``userId``, ``UserId``, ``userid``,
``orders.user_id``, ``orders.userId``. One variant may stand for several
columns (``email`` on two tables).
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from dblineage.config.constants import MIN_MATCHABLE_VARIANT_LENGTH, MIN_VARIANT_LENGTH
from dblineage.core.naming import (
    strip_underscores,
    table_name_variants,
    to_camel_case,
    to_pascal_case,
)


@dataclass(frozen=True, slots=True)
class ColumnRef:
    """Column identity as seen by the tracer."""

    column_id: int
    column_name: str
    table_name: str

    @property
    def table_variants(self) -> tuple[str, ...]:
        return tuple(v.lower() for v in table_name_variants(self.table_name))


def column_variants(column_name: str, table_name: str) -> set[str]:
    """Naming variants of ``table.column``; variants under 2 characters are dropped."""
    col = column_name.lower()
    table = table_name.lower()
    variants = {
        col,
        to_camel_case(col),
        to_pascal_case(col),
        strip_underscores(col),
        f"{table}.{col}",
        f"{to_camel_case(table)}.{to_camel_case(col)}",
    }
    return {v for v in variants if len(v) >= MIN_VARIANT_LENGTH}


def variant_pattern(variant: str) -> re.Pattern[str]:
    """Case-insensitive match tolerant of quote, bracket and dot delimiters."""
    escaped = re.escape(variant)
    return re.compile(rf"(?:['\"`\[.]|\b){escaped}(?:['\"`\s,)\]:]|\b)", re.IGNORECASE)


@dataclass
class VariantIndex:
    """Variant -> columns lookup with precompiled matchers."""

    entries: dict[str, list[ColumnRef]] = field(default_factory=dict)
    by_column_name: dict[str, list[ColumnRef]] = field(default_factory=dict)
    _patterns: dict[str, re.Pattern[str]] = field(default_factory=dict, repr=False)

    @classmethod
    def build(cls, columns: Iterable[ColumnRef]) -> VariantIndex:
        index = cls()
        for ref in columns:
            index.by_column_name.setdefault(ref.column_name.lower(), []).append(ref)
            # Short names stay out of the variant index, qualified forms included
            if len(ref.column_name) < MIN_MATCHABLE_VARIANT_LENGTH:
                continue
            for variant in column_variants(ref.column_name, ref.table_name):
                index.entries.setdefault(variant, []).append(ref)
        for variant in index.entries:
            if len(variant) >= MIN_MATCHABLE_VARIANT_LENGTH:
                index._patterns[variant] = variant_pattern(variant)
        return index

    def __len__(self) -> int:
        return len(self.entries)

    def matches(self, line: str) -> Iterator[tuple[str, list[ColumnRef]]]:
        """Variants found in ``line`` with the columns behind them.

        Variants of 3 characters or fewer never match, and neither does any
        variant of a column whose own name is that short.
        """
        lowered = line.lower()
        for variant, pattern in self._patterns.items():
            if variant.lower() not in lowered:
                continue
            if pattern.search(line):
                yield variant, self.entries[variant]

    def columns_named(self, column_name: str) -> list[ColumnRef]:
        return self.by_column_name.get(column_name.lower(), [])

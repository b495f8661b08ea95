"""Extraction results shared by the SQL and ORM schema paths."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class ExtractedColumn:
    """Column definition found in DDL or an ORM model."""

    name: str
    data_type: str | None = None
    is_primary_key: bool = False
    is_foreign_key: bool = False
    foreign_table: str | None = None
    foreign_column: str | None = None


@dataclass(slots=True)
class ExtractedTable:
    """Table with its columns, in declaration order."""

    name: str
    columns: list[ExtractedColumn] = field(default_factory=list)

    def column(self, name: str) -> ExtractedColumn | None:
        lowered = name.lower()
        for col in self.columns:
            if col.name.lower() == lowered:
                return col
        return None

"""Persist extracted schema.

First writer wins per table name within a project: a table that already
exists is left untouched (its columns too). Duplicate column names inside
one extracted table are ignored.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from sqlmodel import col, select

from dblineage.db import Database, DbColumn, DbTable
from dblineage.schema.types import ExtractedTable

log = structlog.get_logger()


@dataclass(slots=True)
class StoreResult:
    """Counts from one persist call."""

    tables_inserted: int = 0
    tables_skipped: int = 0
    columns_inserted: int = 0


def persist_tables(db: Database, project_id: str, tables: Iterable[ExtractedTable]) -> StoreResult:
    """Insert tables absent from the project, then their columns."""
    result = StoreResult()
    with db.session() as session:
        existing = {
            name.lower()
            for name in session.exec(
                select(DbTable.name).where(DbTable.project_id == project_id)
            )
        }

        for table in tables:
            key = table.name.lower()
            if key in existing:
                result.tables_skipped += 1
                log.debug("schema_table_exists", project_id=project_id, table=table.name)
                continue
            existing.add(key)

            db_table = DbTable(project_id=project_id, name=table.name)
            session.add(db_table)
            session.flush()

            seen_columns: set[str] = set()
            for column in table.columns:
                if column.name.lower() in seen_columns:
                    continue
                seen_columns.add(column.name.lower())
                session.add(
                    DbColumn(
                        table_id=db_table.id,
                        name=column.name,
                        data_type=column.data_type,
                        is_primary_key=column.is_primary_key,
                        is_foreign_key=column.is_foreign_key,
                        foreign_table=column.foreign_table,
                        foreign_column=column.foreign_column,
                    )
                )
                result.columns_inserted += 1
            result.tables_inserted += 1

        session.commit()

    log.info(
        "schema_persisted",
        project_id=project_id,
        tables=result.tables_inserted,
        skipped=result.tables_skipped,
        columns=result.columns_inserted,
    )
    return result


def load_columns(db: Database, project_ids: Iterable[str]) -> list[tuple[DbColumn, DbTable]]:
    """Every (column, owning table) pair for the given projects."""
    ids = list(project_ids)
    if not ids:
        return []
    with db.session() as session:
        stmt = (
            select(DbColumn, DbTable)
            .join(DbTable, col(DbColumn.table_id) == col(DbTable.id))
            .where(col(DbTable.project_id).in_(ids))
            .order_by(col(DbTable.name), col(DbColumn.id))
        )
        return [(column, table) for column, table in session.exec(stmt)]

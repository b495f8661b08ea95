"""Tests for the column usage tracer."""

import pytest
from sqlmodel import col, select

from dblineage.config.models import TracerConfig
from dblineage.db import ColumnUsage, Database, SourceFile
from dblineage.schema.store import persist_tables
from dblineage.schema.types import ExtractedColumn, ExtractedTable
from dblineage.tracing import tracer as tracer_module
from dblineage.tracing.tracer import ColumnTracer

ORDERS_PY = """\
def ship(conn, order_id):
    conn.execute("UPDATE orders SET status = 'shipped' WHERE id = ?", (order_id,))


def totals(conn):
    return conn.execute("SELECT total_amount FROM orders").fetchall()
"""


def _seed(db: Database, files: dict[str, str], project_id: str = "p1") -> None:
    orders = ExtractedTable(
        name="orders",
        columns=[
            ExtractedColumn(name="id", is_primary_key=True),
            ExtractedColumn(name="status"),
            ExtractedColumn(name="total_amount"),
        ],
    )
    users = ExtractedTable(name="users", columns=[ExtractedColumn(name="name")])
    persist_tables(db, project_id, [orders, users])
    with db.session() as session:
        for path, content in files.items():
            session.add(
                SourceFile(project_id=project_id, path=path, language="python", content=content)
            )
        session.commit()


def _usages(db: Database) -> list[tuple[str, int, str]]:
    """(file path, line, usage type) for every stored usage."""
    with db.session() as session:
        rows = session.exec(
            select(SourceFile.path, ColumnUsage.line_number, ColumnUsage.usage_type)
            .select_from(ColumnUsage)
            .join(SourceFile, col(SourceFile.id) == col(ColumnUsage.source_file_id))
        )
        return sorted(tuple(r) for r in rows)


class TestTraceProject:
    def test_given_sql_in_strings_when_traced_then_usages_classified(
        self, temp_db: Database
    ) -> None:
        # Given
        _seed(temp_db, {"app/orders.py": ORDERS_PY})

        # When
        result = ColumnTracer(temp_db).trace_project("p1")

        # Then
        assert result.files_traced == 1
        assert result.files_failed == 0
        assert result.usages_inserted == 2
        assert _usages(temp_db) == [
            ("app/orders.py", 2, "update"),
            ("app/orders.py", 6, "projection"),
        ]

    def test_given_parsed_files_when_retraced_then_skipped_without_duplicates(
        self, temp_db: Database
    ) -> None:
        # Given
        _seed(temp_db, {"app/orders.py": ORDERS_PY})
        tracer = ColumnTracer(temp_db)
        tracer.trace_project("p1")

        # When
        result = tracer.trace_project("p1")

        # Then
        assert result.files_skipped == 1
        assert result.usages_inserted == 0
        assert len(_usages(temp_db)) == 2

    def test_given_force_when_retraced_then_usages_replaced(self, temp_db: Database) -> None:
        # Given
        _seed(temp_db, {"app/orders.py": ORDERS_PY})
        tracer = ColumnTracer(temp_db)
        tracer.trace_project("p1")

        # When
        result = tracer.trace_project("p1", force=True)

        # Then
        assert result.files_traced == 1
        assert result.usages_inserted == 2
        assert len(_usages(temp_db)) == 2

    def test_given_trace_completed_when_files_loaded_then_marked_parsed(
        self, temp_db: Database
    ) -> None:
        _seed(temp_db, {"app/orders.py": ORDERS_PY})

        ColumnTracer(temp_db).trace_project("p1")

        with temp_db.session() as session:
            assert all(f.parsed for f in session.exec(select(SourceFile)))

    def test_given_short_column_names_when_traced_then_not_recorded(
        self, temp_db: Database
    ) -> None:
        # Given
        _seed(temp_db, {"app/ids.py": "print(orders.id)\nlookup = row['id']\n"})

        # When
        result = ColumnTracer(temp_db).trace_project("p1")

        # Then
        assert result.usages_inserted == 0

    def test_given_short_name_without_table_context_when_traced_then_rejected(
        self, temp_db: Database
    ) -> None:
        # Given
        _seed(
            temp_db,
            {
                "app/prompt.py": "name = input()\n",
                "app/users.py": 'rows = db.query("SELECT name FROM users")\n',
            },
        )

        # When
        ColumnTracer(temp_db).trace_project("p1")

        # Then
        assert _usages(temp_db) == [("app/users.py", 1, "projection")]

    def test_given_commented_line_when_traced_then_ignored(self, temp_db: Database) -> None:
        _seed(temp_db, {"app/notes.py": "# SELECT total_amount FROM orders\n"})

        result = ColumnTracer(temp_db).trace_project("p1")

        assert result.usages_inserted == 0

    def test_given_failing_file_when_traced_then_others_still_traced(
        self, temp_db: Database, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Given
        _seed(temp_db, {"app/bad.py": "boom = total_amount\n", "app/orders.py": ORDERS_PY})
        real_detect = tracer_module.detect_orms

        def flaky_detect(content: str, language: str) -> list:  # type: ignore[type-arg]
            if content.startswith("boom"):
                raise RuntimeError("parser exploded")
            return real_detect(content, language)

        monkeypatch.setattr(tracer_module, "detect_orms", flaky_detect)

        # When
        result = ColumnTracer(temp_db).trace_project("p1")

        # Then
        assert result.files_failed == 1
        assert result.errors == {"app/bad.py": "parser exploded"}
        assert result.files_traced == 1
        assert {path for path, _, _ in _usages(temp_db)} == {"app/orders.py"}

    def test_given_parallel_workers_when_traced_then_same_usages(
        self, temp_db: Database
    ) -> None:
        # Given
        _seed(temp_db, {"a/orders.py": ORDERS_PY, "b/orders.py": ORDERS_PY})

        # When
        result = ColumnTracer(temp_db, TracerConfig(max_workers=2)).trace_project("p1")

        # Then
        assert result.files_traced == 2
        assert result.usages_inserted == 4


class TestOrmFieldMappings:
    def test_given_mapped_field_when_used_then_resolved_to_column(
        self, temp_db: Database
    ) -> None:
        # Given
        content = (
            "from sqlalchemy import Column, String\n"
            "\n"
            "\n"
            "class Order(Base):\n"
            "    order_state = Column('status', String)\n"
            "\n"
            "\n"
            "def open_orders(session):\n"
            "    return session.query(Order).filter(Order.order_state == 'open')\n"
        )
        _seed(temp_db, {"app/models.py": content})

        # When
        ColumnTracer(temp_db).trace_project("p1")

        # Then
        usages = _usages(temp_db)
        assert ("app/models.py", 9, "filter") in usages

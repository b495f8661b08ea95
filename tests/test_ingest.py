"""Tests for directory ingestion."""

from pathlib import Path

from sqlmodel import select

from dblineage.db import ColumnUsage, Database, DbTable, SourceFile
from dblineage.ingest import extract_tables, ingest_directory, walk_sources

SCHEMA_SQL = """\
CREATE TABLE orders (
  id INT PRIMARY KEY,
  status VARCHAR(20),
  total_amount DECIMAL(10, 2)
);
"""

MODELS_PY = """\
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    email_address = Column(String(255))
"""

ORDERS_PY = """\
def ship(conn, order_id):
    conn.execute("UPDATE orders SET status = 'shipped' WHERE id = ?", (order_id,))
"""


def _write(root: Path, files: dict[str, str]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


def _repo(temp_dir: Path) -> Path:
    root = temp_dir / "repo"
    _write(
        root,
        {
            "db/schema.sql": SCHEMA_SQL,
            "app/models.py": MODELS_PY,
            "app/orders.py": ORDERS_PY,
            "node_modules/lib/index.js": "export const status = 1;\n",
            "README.txt": "orders.status is important\n",
        },
    )
    return root


def _usage_paths(db: Database) -> set[str]:
    with db.session() as session:
        rows = session.exec(
            select(SourceFile.path).join(ColumnUsage, ColumnUsage.source_file_id == SourceFile.id)
        )
        return set(rows)


class TestWalkSources:
    def test_given_repo_when_walked_then_vendor_dirs_and_unknown_files_skipped(
        self, temp_dir: Path
    ) -> None:
        # Given
        root = _repo(temp_dir)

        # When
        files, skipped = walk_sources(root, max_file_size_kb=1024)

        # Then
        assert [(f.path, f.language) for f in files] == [
            ("app/models.py", "python"),
            ("app/orders.py", "python"),
            ("db/schema.sql", "sql"),
        ]
        assert skipped == 0

    def test_given_oversized_file_when_walked_then_counted_as_skipped(
        self, temp_dir: Path
    ) -> None:
        _write(temp_dir, {"big.py": "x = 1\n" * 400, "small.py": "y = 2\n"})

        files, skipped = walk_sources(temp_dir, max_file_size_kb=1)

        assert [f.path for f in files] == ["small.py"]
        assert skipped == 1


class TestExtractTables:
    def test_given_ddl_and_models_when_extracted_then_ddl_first(self, temp_dir: Path) -> None:
        files, _ = walk_sources(_repo(temp_dir), max_file_size_kb=1024)

        tables = extract_tables(files)

        assert [t.name for t in tables] == ["orders", "customers"]


class TestIngestDirectory:
    def test_given_new_repo_when_ingested_then_schema_and_usages_stored(
        self, temp_dir: Path, temp_db: Database
    ) -> None:
        # Given
        root = _repo(temp_dir)

        # When
        result = ingest_directory(temp_db, root, "p1")

        # Then
        assert result.files_seen == 3
        assert result.files_stored == 3
        assert result.schema.tables_inserted == 2
        assert result.trace.files_traced == 3
        assert result.trace.files_failed == 0
        assert "app/orders.py" in _usage_paths(temp_db)
        with temp_db.session() as session:
            assert sorted(session.exec(select(DbTable.name))) == ["customers", "orders"]

    def test_given_unchanged_repo_when_reingested_then_nothing_retraced(
        self, temp_dir: Path, temp_db: Database
    ) -> None:
        # Given
        root = _repo(temp_dir)
        ingest_directory(temp_db, root, "p1")

        # When
        result = ingest_directory(temp_db, root, "p1")

        # Then
        assert result.files_stored == 0
        assert result.files_changed == 0
        assert result.schema.tables_skipped == 2
        assert result.trace.files_skipped == 3
        assert result.trace.usages_inserted == 0

    def test_given_changed_file_when_reingested_then_only_it_retraced(
        self, temp_dir: Path, temp_db: Database
    ) -> None:
        # Given
        root = _repo(temp_dir)
        ingest_directory(temp_db, root, "p1")
        (root / "app" / "orders.py").write_text("def noop():\n    return None\n")

        # When
        result = ingest_directory(temp_db, root, "p1")

        # Then
        assert result.files_changed == 1
        assert result.trace.files_traced == 1
        assert result.trace.files_skipped == 2
        assert "app/orders.py" not in _usage_paths(temp_db)

    def test_given_force_when_reingested_then_everything_retraced(
        self, temp_dir: Path, temp_db: Database
    ) -> None:
        root = _repo(temp_dir)
        ingest_directory(temp_db, root, "p1")

        result = ingest_directory(temp_db, root, "p1", force=True)

        assert result.trace.files_traced == 3

"""Tests for schema persistence."""

from dblineage.db import Database
from dblineage.schema.store import load_columns, persist_tables
from dblineage.schema.types import ExtractedColumn, ExtractedTable


def _users(*columns: str) -> ExtractedTable:
    return ExtractedTable(name="users", columns=[ExtractedColumn(name=c) for c in columns])


class TestPersistTables:
    def test_given_new_tables_when_persisted_then_inserted_with_columns(
        self, temp_db: Database
    ) -> None:
        # Given
        orders = ExtractedTable(
            name="orders",
            columns=[
                ExtractedColumn(name="id", data_type="INT", is_primary_key=True),
                ExtractedColumn(
                    name="user_id",
                    is_foreign_key=True,
                    foreign_table="users",
                    foreign_column="id",
                ),
            ],
        )

        # When
        result = persist_tables(temp_db, "p1", [_users("id", "email"), orders])

        # Then
        assert result.tables_inserted == 2
        assert result.tables_skipped == 0
        assert result.columns_inserted == 4
        pairs = load_columns(temp_db, ["p1"])
        assert [(t.name, c.name) for c, t in pairs] == [
            ("orders", "id"),
            ("orders", "user_id"),
            ("users", "id"),
            ("users", "email"),
        ]
        user_id = next(c for c, t in pairs if c.name == "user_id")
        assert user_id.is_foreign_key
        assert user_id.foreign_table == "users"

    def test_given_existing_table_when_persisted_again_then_first_writer_wins(
        self, temp_db: Database
    ) -> None:
        # Given
        persist_tables(temp_db, "p1", [_users("id", "email")])

        # When
        result = persist_tables(temp_db, "p1", [_users("id", "name", "created_at")])

        # Then
        assert result.tables_inserted == 0
        assert result.tables_skipped == 1
        assert [c.name for c, _ in load_columns(temp_db, ["p1"])] == ["id", "email"]

    def test_given_duplicate_columns_when_persisted_then_kept_once(
        self, temp_db: Database
    ) -> None:
        result = persist_tables(temp_db, "p1", [_users("id", "email", "EMAIL")])

        assert result.columns_inserted == 2

    def test_given_same_table_in_two_projects_when_persisted_then_both_stored(
        self, temp_db: Database
    ) -> None:
        persist_tables(temp_db, "p1", [_users("id")])
        result = persist_tables(temp_db, "p2", [_users("id")])

        assert result.tables_inserted == 1
        assert len(load_columns(temp_db, ["p1", "p2"])) == 2
        assert load_columns(temp_db, []) == []

"""Tests for the column naming-variant index."""

from dblineage.tracing.variants import ColumnRef, VariantIndex, column_variants

USER_ID = ColumnRef(column_id=2, column_name="user_id", table_name="orders")
ORDER_PK = ColumnRef(column_id=1, column_name="id", table_name="orders")


def _matched_ids(index: VariantIndex, line: str) -> set[int]:
    return {ref.column_id for _, refs in index.matches(line) for ref in refs}


class TestColumnVariants:
    def test_given_snake_column_when_expanded_then_host_language_forms(self) -> None:
        assert column_variants("user_id", "orders") == {
            "user_id",
            "userId",
            "UserId",
            "userid",
            "orders.user_id",
            "orders.userId",
        }


class TestVariantIndex:
    def test_given_short_column_when_indexed_then_never_matched(self) -> None:
        # Given
        index = VariantIndex.build([ORDER_PK, USER_ID])

        # When
        matched = _matched_ids(index, "print(orders.id, row['id'])")

        # Then
        assert matched == set()
        assert "orders.id" not in index.entries
        assert index.columns_named("ID") == [ORDER_PK]

    def test_given_camel_case_access_when_matched_then_column_found(self) -> None:
        index = VariantIndex.build([ORDER_PK, USER_ID])

        assert _matched_ids(index, 'const owner = row["userId"];') == {2}
        assert _matched_ids(index, "SELECT o.user_id FROM orders o") == {2}
        assert _matched_ids(index, "WHERE [user_id] = @p0") == {2}

    def test_given_variant_inside_longer_word_when_matched_then_ignored(self) -> None:
        index = VariantIndex.build([USER_ID])

        assert _matched_ids(index, "superuser_identity = True") == set()

    def test_given_shared_column_name_when_indexed_then_variant_maps_to_both(self) -> None:
        # Given
        a = ColumnRef(column_id=10, column_name="email", table_name="users")
        b = ColumnRef(column_id=11, column_name="email", table_name="contacts")

        # When
        index = VariantIndex.build([a, b])

        # Then
        assert index.entries["email"] == [a, b]
        assert index.entries["users.email"] == [a]
        assert _matched_ids(index, "send(email)") == {10, 11}

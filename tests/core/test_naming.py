"""Tests for naming-convention conversions."""

import pytest

from dblineage.core.naming import (
    default_table_name,
    pluralize,
    singularize,
    strip_underscores,
    table_name_variants,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
)


class TestCaseConversion:
    """snake/camel/Pascal round trips."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("userId", "user_id"),
            ("UserId", "user_id"),
            ("HTTPRequest", "http_request"),
            ("user_id", "user_id"),
            ("createdAt2", "created_at2"),
        ],
    )
    def test_given_identifier_when_snake_cased_then_words_split(
        self, name: str, expected: str
    ) -> None:
        """Case boundaries become underscores."""
        assert to_snake_case(name) == expected

    def test_given_snake_name_when_camel_cased_then_underscores_fold(self) -> None:
        """Each underscore capitalizes the next character."""
        # Given
        name = "user_account_id"

        # When
        camel = to_camel_case(name)
        pascal = to_pascal_case(name)

        # Then
        assert camel == "userAccountId"
        assert pascal == "UserAccountId"

    def test_given_snake_name_when_stripped_then_concatenated(self) -> None:
        assert strip_underscores("user_id") == "userid"


class TestPluralization:
    """Naive English plural/singular forms."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [("user", "users"), ("category", "categories"), ("day", "days"), ("orders", "orders")],
    )
    def test_given_noun_when_pluralized_then_english_plural(self, name: str, expected: str) -> None:
        assert pluralize(name) == expected

    def test_given_plural_when_singularized_then_trailing_s_removed(self) -> None:
        assert singularize("users") == "user"
        assert singularize("s") == "s"

    def test_given_model_name_when_default_table_then_snake_plural(self) -> None:
        """Model classes map to pluralized snake_case tables."""
        assert default_table_name("OrderItem") == "order_items"
        assert default_table_name("Category") == "categories"


class TestTableNameVariants:
    """Table name forms used as usage context."""

    def test_given_plural_table_when_variants_then_singular_forms_included(self) -> None:
        # Given
        table = "order_items"

        # When
        variants = table_name_variants(table)

        # Then
        assert "order_items" in variants
        assert "orderItems" in variants
        assert "order_item" in variants
        assert "OrderItem" in variants

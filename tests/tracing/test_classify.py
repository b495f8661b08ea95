"""Tests for usage-type classification."""

import pytest

from dblineage.db.models import UsageType
from dblineage.orm.registry import get_orm
from dblineage.tracing.classify import classify_generic, classify_usage


class TestClassifyGeneric:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("INSERT INTO orders (status) VALUES (?)", UsageType.WRITE),
            ("UPDATE orders SET status = 'shipped' WHERE id = 5", UsageType.UPDATE),
            ("DELETE FROM orders WHERE status = 'void'", UsageType.DELETE),
            ("LEFT JOIN customers c ON c.id = o.customer_id", UsageType.JOIN),
            ("Order.query.filter(Order.status == 'open')", UsageType.FILTER),
            ("SELECT status FROM orders", UsageType.PROJECTION),
            ("print(status)", UsageType.READ),
        ],
    )
    def test_given_line_when_classified_then_first_rule_wins(
        self, line: str, expected: UsageType
    ) -> None:
        assert classify_generic(line) == expected

    def test_given_plain_line_when_context_is_insert_then_write(self) -> None:
        # Given
        line = "    value = record['total_amount']"
        context = "sql = 'INSERT INTO orders (total_amount) VALUES (?)'\n" + line

        # When
        usage = classify_generic(line, context)

        # Then
        assert usage == UsageType.WRITE

    def test_given_update_without_set_in_context_when_classified_then_not_update(self) -> None:
        usage = classify_generic("    x = status", "# UPDATE the cache afterwards\n    x = status")
        assert usage == UsageType.READ


class TestClassifyUsage:
    def test_given_orm_rule_when_classified_then_orm_wins_over_generic(self) -> None:
        # Given
        sqlalchemy = get_orm("SQLAlchemy")
        assert sqlalchemy is not None
        line = "rows = session.query(Order).with_entities(Order.status)"

        # When
        with_orm = classify_usage(line, "", [sqlalchemy])
        without_orm = classify_usage(line, "")

        # Then
        assert with_orm == "projection"
        assert without_orm == "read"

    def test_given_no_orm_match_when_classified_then_generic_used(self) -> None:
        sqlalchemy = get_orm("SQLAlchemy")
        assert sqlalchemy is not None

        usage = classify_usage("UPDATE orders SET status = 'x'", "", [sqlalchemy])

        assert usage == "update"

"""Usage-type classification for a matched line.

ORM rules first (descriptor order, then rule order, each rule tried on the
line and on the context window), then the generic keyword heuristic: line
checks write -> update -> delete -> join -> filter -> projection, then the
same order on the context window, defaulting to ``read``. Overlapping
keywords resolve by that order; ``UPDATE t SET x = 1 WHERE id = 5`` is an
update, not a filter.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from dblineage.db.models import UsageType
from dblineage.orm.registry import OrmDescriptor

_LINE_RULES: tuple[tuple[re.Pattern[str], UsageType], ...] = (
    (
        re.compile(r"\b(INSERT\s+INTO|\.create|\.Create|\.add|\.Add|\.persist|\.save)\b", re.I),
        UsageType.WRITE,
    ),
    (
        re.compile(r"\b(UPDATE\s+\w+\s+SET|\.update|\.Update|\.merge|\.Merge|\.set\s*\()", re.I),
        UsageType.UPDATE,
    ),
    (
        re.compile(
            r"\b(DELETE\s+FROM|\.delete|\.Delete|\.remove|\.Remove|\.destroy|\.Destroy)", re.I
        ),
        UsageType.DELETE,
    ),
    (
        re.compile(
            r"\b(JOIN|INNER\s+JOIN|LEFT\s+JOIN|RIGHT\s+JOIN|CROSS\s+JOIN|"
            r"\.join|\.Join|\.include|\.Include|\.Preload)",
            re.I,
        ),
        UsageType.JOIN,
    ),
    (
        re.compile(
            r"\b(WHERE|AND\s+\w+\s*=|OR\s+\w+\s*=|HAVING|"
            r"\.filter|\.Filter|\.where|\.Where|\.findBy)",
            re.I,
        ),
        UsageType.FILTER,
    ),
    (
        re.compile(
            r"\b(SELECT\s+\w|\.select\s*\(|\.Select\s*\(|\.pluck\s*\(|RETURNING|"
            r"\.findMany|\.findFirst|\.findOne|\.findAll)",
            re.I,
        ),
        UsageType.PROJECTION,
    ),
)

_WORD = {
    word: re.compile(rf"\b{word}\b")
    for word in ("INSERT", "CREATE", "UPDATE", "SET", "DELETE", "JOIN", "WHERE", "SELECT")
}


def _classify_context(context: str) -> UsageType | None:
    upper = context.upper()

    def has(word: str) -> bool:
        return _WORD[word].search(upper) is not None

    if has("INSERT") or has("CREATE"):
        return UsageType.WRITE
    if has("UPDATE") and has("SET"):
        return UsageType.UPDATE
    if has("DELETE"):
        return UsageType.DELETE
    if has("JOIN"):
        return UsageType.JOIN
    if has("WHERE"):
        return UsageType.FILTER
    if has("SELECT"):
        return UsageType.PROJECTION
    return None


def classify_generic(line: str, context: str = "") -> UsageType:
    """Keyword heuristic with no ORM knowledge."""
    for pattern, usage_type in _LINE_RULES:
        if pattern.search(line):
            return usage_type
    return _classify_context(context) or UsageType.READ


def classify_usage(line: str, context: str, orms: Sequence[OrmDescriptor] = ()) -> str:
    """Usage type for a column reference on ``line`` inside ``context``."""
    for orm in orms:
        usage_type = orm.classify(line, context)
        if usage_type is not None:
            return usage_type
    return classify_generic(line, context).value

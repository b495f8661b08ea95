"""Identifier naming-convention conversions.

Bridges database naming (``user_id``) against host-language naming
(``userId``, ``UserId``, ``userid``). Used by the schema extractor to derive
default table/column names and by the tracer to build name variants.
"""

from __future__ import annotations

import re

_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_WORD = re.compile(r"([A-Z])([A-Z][a-z])")
_UNDERSCORE_CHAR = re.compile(r"_([a-zA-Z0-9])")


def to_snake_case(name: str) -> str:
    """``userId`` / ``UserID`` / ``HTTPRequest`` -> ``user_id`` / ``user_id`` / ``http_request``."""
    result = _LOWER_UPPER.sub(r"\1_\2", name)
    result = _ACRONYM_WORD.sub(r"\1_\2", result)
    return result.lower()


def to_camel_case(name: str) -> str:
    """``user_id`` -> ``userId``. Leading characters are left untouched."""
    return _UNDERSCORE_CHAR.sub(lambda m: m.group(1).upper(), name)


def to_pascal_case(name: str) -> str:
    """``user_id`` -> ``UserId``."""
    camel = to_camel_case(name)
    return camel[:1].upper() + camel[1:]


def strip_underscores(name: str) -> str:
    """``user_id`` -> ``userid`` (concatenated form)."""
    return name.replace("_", "")


def pluralize(name: str) -> str:
    """Naive English plural used for default table names."""
    if name.endswith("s"):
        return name
    if name.endswith("y") and len(name) > 1 and name[-2] not in "aeiou":
        return name[:-1] + "ies"
    return name + "s"


def singularize(name: str) -> str:
    """Crude singular: strips one trailing ``s``."""
    if len(name) > 1 and name.endswith("s"):
        return name[:-1]
    return name


def default_table_name(model_name: str) -> str:
    """Pluralized snake_case of a model/class/struct name."""
    return pluralize(to_snake_case(model_name))


def table_name_variants(table_name: str) -> list[str]:
    """Name forms under which a table can show up near a column reference.

    Includes the singular forms so ``user.email`` counts as context for
    table ``users``.
    """
    variants = [table_name.lower(), to_camel_case(table_name), to_pascal_case(table_name)]
    if table_name.endswith("s"):
        singular = singularize(table_name)
        variants.extend([singular.lower(), to_camel_case(singular), to_pascal_case(singular)])
    return variants

"""CREATE TABLE extraction from SQL DDL.

Heuristic, never raises: anything that does not look like a column definition
is skipped. Handles quoted/backticked/bracketed identifiers, ``schema.`` name
prefixes, parenthesized types (``DECIMAL(10,2)``), inline PRIMARY KEY /
REFERENCES and table-level PRIMARY KEY / FOREIGN KEY clauses.
"""

from __future__ import annotations

import re

import structlog

from dblineage.schema.types import ExtractedColumn, ExtractedTable

log = structlog.get_logger()

_IDENT = r"""[`"\[]?(\w+)[`"\]]?"""

_CREATE_TABLE = re.compile(
    r"CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:GLOBAL\s+|LOCAL\s+)?TEMP(?:ORARY)?\s+)?TABLE\s+"
    r"(?:IF\s+NOT\s+EXISTS\s+)?"
    rf"(?:{_IDENT}\s*\.\s*)?{_IDENT}\s*\(",
    re.IGNORECASE,
)

_QUOTES = "'\"`"

# Index column lists start with an identifier; type arguments are numbers,
# string literals or MAX.
_INDEX_COLUMNS = r"""\(\s*[`"\[]?(?!MAX\b)[A-Za-z_]"""

_CONSTRAINT_PREFIX = re.compile(
    r"^(?:"
    r"(?:PRIMARY|FOREIGN)\s+KEY\b"
    rf"|CONSTRAINT\s+{_IDENT}\s+(?:PRIMARY|FOREIGN|UNIQUE|CHECK|EXCLUDE)\b"
    r"|CHECK\s*\("
    r"|EXCLUDE\s+(?:USING\b|\()"
    rf"|(?:(?:UNIQUE|FULLTEXT|SPATIAL)(?:\s+(?:KEY|INDEX))?|KEY|INDEX)\b\s*(?:{_IDENT}\s*)?"
    rf"(?:(?:NON)?CLUSTERED\s*)?{_INDEX_COLUMNS}"
    r")",
    re.IGNORECASE,
)

_COLUMN_DEF = re.compile(
    rf"^{_IDENT}\s+(\w+(?:\s+(?:VARYING|PRECISION|WITH(?:OUT)?\s+TIME\s+ZONE))?(?:\s*\([^)]*\))?)",
    re.IGNORECASE,
)

_PRIMARY_KEY = re.compile(r"\bPRIMARY\s+KEY\b", re.IGNORECASE)
_REFERENCES = re.compile(
    rf"\bREFERENCES\s+(?:{_IDENT}\s*\.\s*)?{_IDENT}\s*(?:\(\s*{_IDENT}\s*\))?",
    re.IGNORECASE,
)
_TABLE_PRIMARY_KEY = re.compile(
    r"\bPRIMARY\s+KEY\s*(?:(?:NON)?CLUSTERED\s*)?\(([^)]*)\)", re.IGNORECASE
)
_TABLE_FOREIGN_KEY = re.compile(
    r"\bFOREIGN\s+KEY\s*\(([^)]*)\)\s*"
    rf"REFERENCES\s+(?:{_IDENT}\s*\.\s*)?{_IDENT}\s*(?:\(([^)]*)\))?",
    re.IGNORECASE,
)


def _strip_comments(text: str) -> str:
    """Drop ``--`` and ``/* */`` comments outside quoted strings and identifiers.

    Line comments keep their newline; an unterminated block comment runs to the end.
    """
    out: list[str] = []
    quote: str | None = None
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if quote:
            out.append(ch)
            if ch == quote:
                quote = None
            i += 1
            continue
        if ch in _QUOTES:
            quote = ch
        elif text.startswith("--", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            out.append(" ")
            i = n if end == -1 else end + 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def balanced_body(
    text: str,
    open_index: int,
    opener: str = "(",
    closer: str = ")",
    quotes: str = _QUOTES,
) -> str | None:
    """Text between the bracket at ``open_index`` and its match, or None if unbalanced.

    Brackets inside any of ``quotes`` do not count.
    """
    depth = 0
    quote: str | None = None
    for i in range(open_index, len(text)):
        ch = text[i]
        if quote:
            if ch == quote:
                quote = None
            continue
        if ch in quotes:
            quote = ch
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return text[open_index + 1 : i]
    return None


def split_top_level(body: str) -> list[str]:
    """Split on commas not nested in parentheses or quotes."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for ch in body:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in _QUOTES:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        elif ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [p for p in parts if p]


def _identifier_list(text: str) -> list[str]:
    return [m.group(1) for m in re.finditer(_IDENT, text)]


def _parse_column(definition: str) -> ExtractedColumn | None:
    match = _COLUMN_DEF.match(definition)
    if not match:
        return None

    column = ExtractedColumn(
        name=match.group(1),
        data_type=re.sub(r"\s+", " ", match.group(2)).strip(),
        is_primary_key=bool(_PRIMARY_KEY.search(definition)),
    )
    ref = _REFERENCES.search(definition)
    if ref:
        column.is_foreign_key = True
        column.foreign_table = ref.group(2)
        column.foreign_column = ref.group(3)
    return column


def _apply_table_constraint(table: ExtractedTable, clause: str) -> None:
    fk = _TABLE_FOREIGN_KEY.search(clause)
    if fk:
        local_names = _identifier_list(fk.group(1))
        remote_names = _identifier_list(fk.group(4) or "")
        for i, name in enumerate(local_names):
            col = table.column(name)
            if col is None:
                continue
            col.is_foreign_key = True
            col.foreign_table = fk.group(3)
            col.foreign_column = remote_names[i] if i < len(remote_names) else None
        return

    pk = _TABLE_PRIMARY_KEY.search(clause)
    if pk:
        for name in _identifier_list(pk.group(1)):
            col = table.column(name)
            if col is not None:
                col.is_primary_key = True


def extract_sql_schema(ddl_text: str) -> list[ExtractedTable]:
    """Extract every CREATE TABLE statement with at least one column."""
    text = _strip_comments(ddl_text)
    tables: list[ExtractedTable] = []

    for match in _CREATE_TABLE.finditer(text):
        body = balanced_body(text, match.end() - 1)
        if body is None:
            continue

        table = ExtractedTable(name=match.group(2))
        constraints: list[str] = []
        for definition in split_top_level(body):
            if _CONSTRAINT_PREFIX.match(definition):
                constraints.append(definition)
                continue
            column = _parse_column(definition)
            if column is not None and table.column(column.name) is None:
                table.columns.append(column)

        for clause in constraints:
            _apply_table_constraint(table, clause)

        if table.columns:
            tables.append(table)

    if not tables:
        log.debug("sql_schema_zero_yield", chars=len(ddl_text))
    return tables

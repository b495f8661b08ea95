"""Table/column extraction from ORM model definitions.

One grammar per model-definition style:

- block-style models: Prisma ``model X { ... }`` with ``@@map`` / ``@map``
- decorator/attribute-annotated classes: SQLAlchemy, Django, TypeORM,
  Entity Framework
- tagged struct fields: Go structs with ``gorm`` / ``db`` / ``json`` tags
- annotation-driven entities: JPA / Hibernate

Every grammar derives the default table name from the model name
(pluralized snake_case) and the default column name from the field name
(snake_case) unless an explicit override is present. Relation-typed fields
are not columns. Models without columns are dropped. Nothing here raises on
malformed input.
"""

from __future__ import annotations

import re
from collections.abc import Callable

import structlog

from dblineage.core.naming import default_table_name, to_snake_case
from dblineage.schema.sql import balanced_body
from dblineage.schema.types import ExtractedColumn, ExtractedTable

log = structlog.get_logger()

Grammar = Callable[[str], list[ExtractedTable]]


def _class_body(content: str, search_from: int) -> tuple[int, str] | None:
    """(end index, body) of the first ``{ ... }`` block at or after ``search_from``."""
    open_index = content.find("{", search_from)
    if open_index < 0:
        return None
    body = balanced_body(content, open_index, "{", "}", quotes='"')
    if body is None:
        return None
    return open_index + len(body) + 2, body


# =============================================================================
# Prisma
# =============================================================================

_PRISMA_MODEL = re.compile(r"^\s*model\s+(\w+)\s*\{", re.MULTILINE)
_PRISMA_ENUM = re.compile(r"^\s*enum\s+(\w+)\s*\{", re.MULTILINE)
_PRISMA_FIELD = re.compile(r"^(\w+)\s+(\w+)(\[\]|\?)?\s*(.*)$")
_PRISMA_TABLE_MAP = re.compile(r"""@@map\(\s*["'](\w+)["']\s*\)""")
_PRISMA_COLUMN_MAP = re.compile(r"""@map\(\s*["'](\w+)["']\s*\)""")
_PRISMA_RELATION = re.compile(
    r"@relation\([^)]*fields\s*:\s*\[([^\]]*)\][^)]*references\s*:\s*\[([^\]]*)\]"
)
_PRISMA_SCALARS = frozenset(
    {"String", "Int", "Float", "Boolean", "DateTime", "BigInt", "Decimal", "Bytes", "Json"}
)


def _prisma_models(content: str) -> list[ExtractedTable]:
    enums = set(_PRISMA_ENUM.findall(content))
    tables: list[ExtractedTable] = []

    for match in _PRISMA_MODEL.finditer(content):
        block = _class_body(content, match.end() - 1)
        if block is None:
            continue
        _, body = block

        table_map = _PRISMA_TABLE_MAP.search(body)
        table = ExtractedTable(
            name=table_map.group(1) if table_map else default_table_name(match.group(1))
        )
        # field name -> (related model, referenced field)
        relation_keys: dict[str, tuple[str, str | None]] = {}
        field_columns: dict[str, ExtractedColumn] = {}

        for raw_line in body.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("//") or line.startswith("@@"):
                continue
            field = _PRISMA_FIELD.match(line)
            if not field:
                continue
            field_name, field_type, modifier, rest = field.groups()

            relation = _PRISMA_RELATION.search(rest)
            if relation:
                local = [f.strip() for f in relation.group(1).split(",") if f.strip()]
                remote = [f.strip() for f in relation.group(2).split(",") if f.strip()]
                for i, name in enumerate(local):
                    relation_keys[name] = (field_type, remote[i] if i < len(remote) else None)
            if field_type not in _PRISMA_SCALARS and field_type not in enums:
                continue
            if modifier == "[]" and field_type not in _PRISMA_SCALARS:
                continue

            column_map = _PRISMA_COLUMN_MAP.search(rest)
            column = ExtractedColumn(
                name=column_map.group(1) if column_map else to_snake_case(field_name),
                data_type=field_type,
                is_primary_key="@id" in rest,
            )
            field_columns[field_name] = column
            table.columns.append(column)

        for field_name, (model, ref) in relation_keys.items():
            fk_column = field_columns.get(field_name)
            if fk_column is not None:
                fk_column.is_foreign_key = True
                fk_column.foreign_table = default_table_name(model)
                fk_column.foreign_column = to_snake_case(ref) if ref else None

        if table.columns:
            tables.append(table)
    return tables


# =============================================================================
# Python: SQLAlchemy and Django
# =============================================================================

_PY_CLASS = re.compile(r"^([ \t]*)class\s+(\w+)\s*(?:\(([^)]*)\))?\s*:", re.MULTILINE)
_PY_TABLENAME = re.compile(r"""__tablename__\s*=\s*['"](\w+)['"]""")
_PY_DB_TABLE = re.compile(r"""db_table\s*=\s*['"](\w+)['"]""")
_SA_COLUMN = re.compile(
    r"^\s*(\w+)\s*(?::\s*[^=\n]+)?=\s*(?:\w+\.)?(?:Column|mapped_column)\s*\(", re.MULTILINE
)
_SA_TYPE = re.compile(
    r"\b(Integer|String|Text|Float|Boolean|DateTime|BigInteger|SmallInteger|Numeric|"
    r"Date|Time|LargeBinary|JSON|JSONB|UUID|Enum|Interval)\b",
    re.IGNORECASE,
)
_SA_EXPLICIT_NAME = re.compile(r"""^\s*['"](\w+)['"]""")
_SA_FOREIGN_KEY = re.compile(r"""ForeignKey\s*\(\s*['"](\w+)\.(\w+)['"]""")
_DJANGO_FIELD = re.compile(r"^\s*(\w+)\s*=\s*models\.(\w+)\s*\(", re.MULTILINE)
_DJANGO_DB_COLUMN = re.compile(r"""db_column\s*=\s*['"](\w+)['"]""")
_DJANGO_FK_TARGET = re.compile(r"""^\s*['"]?([\w.]+)['"]?""")
_DJANGO_RELATION_ONLY = frozenset({"ManyToManyField", "GenericRelation"})
_DJANGO_FK_FIELDS = frozenset({"ForeignKey", "OneToOneField"})


def _python_class_blocks(content: str) -> list[tuple[str, str, str]]:
    """(class name, bases, body) for every class, body cut at the first dedent."""
    lines = content.splitlines()
    blocks: list[tuple[str, str, str]] = []

    for match in _PY_CLASS.finditer(content):
        indent = len(match.group(1).replace("\t", "    "))
        start_line = content.count("\n", 0, match.start())
        body_lines: list[str] = []
        for line in lines[start_line + 1 :]:
            stripped = line.strip()
            if stripped and len(line) - len(line.lstrip()) <= indent:
                break
            body_lines.append(line)
        blocks.append((match.group(2), match.group(3) or "", "\n".join(body_lines)))
    return blocks


def _sqlalchemy_columns(body: str) -> list[ExtractedColumn]:
    columns: list[ExtractedColumn] = []
    for match in _SA_COLUMN.finditer(body):
        args = balanced_body(body, match.end() - 1) or ""
        explicit = _SA_EXPLICIT_NAME.match(args)
        type_match = _SA_TYPE.search(args)
        fk = _SA_FOREIGN_KEY.search(args)
        columns.append(
            ExtractedColumn(
                name=explicit.group(1) if explicit else to_snake_case(match.group(1)),
                data_type=type_match.group(1) if type_match else None,
                is_primary_key=bool(re.search(r"primary_key\s*=\s*True", args)),
                is_foreign_key="ForeignKey" in args,
                foreign_table=fk.group(1) if fk else None,
                foreign_column=fk.group(2) if fk else None,
            )
        )
    return columns


def _django_columns(body: str) -> list[ExtractedColumn]:
    columns: list[ExtractedColumn] = []
    for match in _DJANGO_FIELD.finditer(body):
        field_name, field_type = match.group(1), match.group(2)
        if field_type in _DJANGO_RELATION_ONLY or not field_type.endswith(("Field", "Key")):
            continue
        args = balanced_body(body, match.end() - 1) or ""
        db_column = _DJANGO_DB_COLUMN.search(args)

        if field_type in _DJANGO_FK_FIELDS:
            target = _DJANGO_FK_TARGET.match(args)
            target_model = target.group(1).rsplit(".", 1)[-1] if target else None
            columns.append(
                ExtractedColumn(
                    name=db_column.group(1) if db_column else f"{to_snake_case(field_name)}_id",
                    data_type=field_type,
                    is_foreign_key=True,
                    foreign_table=(
                        default_table_name(target_model)
                        if target_model and target_model != "self"
                        else None
                    ),
                    foreign_column="id",
                )
            )
            continue

        columns.append(
            ExtractedColumn(
                name=db_column.group(1) if db_column else to_snake_case(field_name),
                data_type=field_type,
                is_primary_key=bool(re.search(r"primary_key\s*=\s*True", args)),
            )
        )
    return columns


def _python_models(content: str) -> list[ExtractedTable]:
    tables: list[ExtractedTable] = []
    for class_name, bases, body in _python_class_blocks(content):
        if "models.Model" in bases:
            override = _PY_DB_TABLE.search(body)
            table = ExtractedTable(
                name=override.group(1) if override else default_table_name(class_name),
                columns=_django_columns(body),
            )
        else:
            tablename = _PY_TABLENAME.search(body)
            if not tablename:
                continue
            table = ExtractedTable(name=tablename.group(1), columns=_sqlalchemy_columns(body))
        if table.columns:
            tables.append(table)
    return tables


# =============================================================================
# TypeScript / JavaScript: TypeORM
# =============================================================================

_DECORATOR = r"@\w+\s*(?:\((?:[^()]|\([^()]*\))*\))?"
_TS_ENTITY = re.compile(rf"@Entity\s*(?:\(((?:[^()]|\([^()]*\))*)\))?\s*(?:{_DECORATOR}\s*)*"
                        r"(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+(\w+)")
_TS_ENTITY_NAME = re.compile(r"""^\s*['"](\w+)['"]|name\s*:\s*['"](\w+)['"]""")
_TS_PROPERTY = re.compile(
    rf"((?:{_DECORATOR}\s*)+)(?:(?:public|private|protected|readonly)\s+)*(\w+)[?!]?\s*:\s*([^;=\n]+)"
)
_TS_COLUMN_DECORATORS = re.compile(
    r"@(Column|PrimaryColumn|PrimaryGeneratedColumn|CreateDateColumn|UpdateDateColumn|"
    r"DeleteDateColumn|VersionColumn|ObjectIdColumn)\b"
)
_TS_RELATION = re.compile(r"@(ManyToOne|OneToOne|OneToMany|ManyToMany)\s*\(\s*(?:\(\s*\)\s*=>\s*(\w+))?")
_TS_JOIN_COLUMN = re.compile(r"""@JoinColumn\s*\(\s*\{[^}]*name\s*:\s*['"](\w+)['"]""")
_TS_REFERENCED_COLUMN = re.compile(r"""referencedColumnName\s*:\s*['"](\w+)['"]""")
_TS_COLUMN_NAME = re.compile(r"""@\w*Column\s*\(\s*\{[^}]*\bname\s*:\s*['"](\w+)['"]""")
_TS_COLUMN_TYPE = re.compile(r"""@\w*Column\s*\(\s*['"](\w+)['"]|type\s*:\s*['"](\w+)['"]""")


def _typeorm_models(content: str) -> list[ExtractedTable]:
    tables: list[ExtractedTable] = []
    for match in _TS_ENTITY.finditer(content):
        block = _class_body(content, match.end())
        if block is None:
            continue
        _, body = block

        entity_name = _TS_ENTITY_NAME.search(match.group(1) or "")
        override = (entity_name.group(1) or entity_name.group(2)) if entity_name else None
        table = ExtractedTable(name=override or default_table_name(match.group(2)))

        for prop in _TS_PROPERTY.finditer(body):
            decorators, prop_name, prop_type = prop.group(1), prop.group(2), prop.group(3).strip()
            relation = _TS_RELATION.search(decorators)
            if relation:
                join = _TS_JOIN_COLUMN.search(decorators)
                if relation.group(1) in ("ManyToOne", "OneToOne") and join:
                    ref = _TS_REFERENCED_COLUMN.search(decorators)
                    target = relation.group(2) or prop_type.split("|")[0].strip()
                    table.columns.append(
                        ExtractedColumn(
                            name=join.group(1),
                            is_foreign_key=True,
                            foreign_table=default_table_name(target) if target else None,
                            foreign_column=ref.group(1) if ref else "id",
                        )
                    )
                continue
            if not _TS_COLUMN_DECORATORS.search(decorators):
                continue

            explicit = _TS_COLUMN_NAME.search(decorators)
            col_type = _TS_COLUMN_TYPE.search(decorators)
            table.columns.append(
                ExtractedColumn(
                    name=explicit.group(1) if explicit else to_snake_case(prop_name),
                    data_type=(col_type.group(1) or col_type.group(2)) if col_type else prop_type,
                    is_primary_key="@Primary" in decorators,
                )
            )

        if table.columns:
            tables.append(table)
    return tables


# =============================================================================
# C#: Entity Framework
# =============================================================================

_CS_CLASS = re.compile(r"((?:\[[^\]]*\]\s*)*)public\s+(?:partial\s+|sealed\s+)*class\s+(\w+)")
_CS_TABLE_ATTR = re.compile(r"""\[Table\s*\(\s*["'](\w+)["']""")
_CS_DBSET = re.compile(r"DbSet\s*<\s*(\w+)\s*>")
_CS_TO_TABLE = re.compile(
    r"""Entity<(\w+)>\s*\(\s*\)\s*\.ToTable\s*\(\s*["'](\w+)["']"""
)
_CS_PROPERTY = re.compile(
    r"((?:\[[^\]]*\]\s*)*)public\s+(virtual\s+)?([\w<>\[\]?.,]+)\s+(\w+)\s*\{\s*get\s*;"
)
_CS_COLUMN_ATTR = re.compile(r"""\[Column\s*\(\s*["'](\w+)["']""")
_CS_FOREIGN_KEY_ATTR = re.compile(r"""\[ForeignKey\s*\(\s*(?:nameof\s*\(\s*(\w+)\s*\)|["'](\w+)["'])""")
_CS_SCALARS = frozenset(
    {
        "int", "long", "short", "byte", "sbyte", "uint", "ulong", "ushort", "string", "bool",
        "decimal", "double", "float", "char", "DateTime", "DateTimeOffset", "DateOnly",
        "TimeOnly", "TimeSpan", "Guid", "byte[]", "Int32", "Int64", "Int16", "String",
        "Boolean", "Decimal", "Double", "Single",
    }
)


def _entity_framework_models(content: str) -> list[ExtractedTable]:
    entity_names = set(_CS_DBSET.findall(content))
    fluent_tables = dict(_CS_TO_TABLE.findall(content))
    tables: list[ExtractedTable] = []

    for match in _CS_CLASS.finditer(content):
        attributes, class_name = match.group(1), match.group(2)
        table_attr = _CS_TABLE_ATTR.search(attributes)
        if not table_attr and class_name not in entity_names and class_name not in fluent_tables:
            continue
        block = _class_body(content, match.end())
        if block is None:
            continue
        _, body = block

        if table_attr:
            table_name = table_attr.group(1)
        else:
            table_name = fluent_tables.get(class_name) or default_table_name(class_name)
        table = ExtractedTable(name=table_name)

        for prop in _CS_PROPERTY.finditer(body):
            prop_attrs, is_virtual, prop_type, prop_name = prop.groups()
            if is_virtual or prop_type.rstrip("?") not in _CS_SCALARS:
                continue
            explicit = _CS_COLUMN_ATTR.search(prop_attrs)
            column = ExtractedColumn(
                name=explicit.group(1) if explicit else to_snake_case(prop_name),
                data_type=prop_type,
                is_primary_key="[Key" in prop_attrs or prop_name in ("Id", f"{class_name}Id"),
            )
            fk = _CS_FOREIGN_KEY_ATTR.search(prop_attrs)
            if fk:
                column.is_foreign_key = True
                column.foreign_table = default_table_name(fk.group(1) or fk.group(2))
            elif prop_name.endswith("Id") and not column.is_primary_key:
                column.is_foreign_key = True
                column.foreign_table = default_table_name(prop_name[:-2])
            table.columns.append(column)

        if table.columns:
            tables.append(table)
    return tables


# =============================================================================
# Go: tagged structs
# =============================================================================

_GO_STRUCT = re.compile(r"type\s+(\w+)\s+struct\s*\{")
_GO_FIELD = re.compile(r"^\s*(\w+)\s+(\S+)\s+`([^`]*)`", re.MULTILINE)
_GO_GORM_COLUMN = re.compile(r'gorm:"[^"]*column:(\w+)')
_GO_DB_TAG = re.compile(r'db:"(\w+)')
_GO_JSON_TAG = re.compile(r'json:"(\w+)')
_GO_GORM_FK = re.compile(r'gorm:"[^"]*foreignKey:(\w+)')
_GO_VALUE_PACKAGES = frozenset(
    {"time", "sql", "decimal", "uuid", "datatypes", "pq", "null", "json", "pgtype", "gorm"}
)


def _go_models(content: str) -> list[ExtractedTable]:
    struct_names = set(_GO_STRUCT.findall(content))
    tables: list[ExtractedTable] = []

    for match in _GO_STRUCT.finditer(content):
        struct_name = match.group(1)
        block = _class_body(content, match.end() - 1)
        if block is None:
            continue
        _, body = block
        if "gorm:" not in body and "db:" not in body and "json:" not in body:
            continue

        table_name_method = re.search(
            rf"func\s*\(\s*\w+\s+\*?{struct_name}\s*\)\s*TableName\s*\(\s*\)\s*string\s*\{{[^}}]*return\s+[\"'](\w+)[\"']",
            content,
        )
        table = ExtractedTable(
            name=table_name_method.group(1) if table_name_method else default_table_name(struct_name)
        )

        for field in _GO_FIELD.finditer(body):
            field_name, field_type, tags = field.groups()
            base_type = field_type.lstrip("*[]")
            gorm_column = _GO_GORM_COLUMN.search(tags)
            if 'gorm:"-' in tags:
                continue
            # Embedded or related structs are relations, not columns
            package = base_type.split(".", 1)[0] if "." in base_type else None
            is_value = package in _GO_VALUE_PACKAGES and base_type != "gorm.Model"
            if (base_type in struct_names or (package and not is_value)) and not gorm_column:
                continue
            if _GO_GORM_FK.search(tags) and not gorm_column:
                continue

            db_tag = _GO_DB_TAG.search(tags)
            json_tag = _GO_JSON_TAG.search(tags)
            if gorm_column:
                column_name = gorm_column.group(1)
            elif db_tag:
                column_name = db_tag.group(1)
            elif json_tag:
                column_name = json_tag.group(1)
            else:
                column_name = to_snake_case(field_name)

            is_fk = field_name.endswith("ID") and field_name != "ID"
            table.columns.append(
                ExtractedColumn(
                    name=column_name,
                    data_type=field_type,
                    is_primary_key="primaryKey" in tags or "primary_key" in tags or field_name == "ID",
                    is_foreign_key=is_fk,
                    foreign_table=default_table_name(field_name[:-2]) if is_fk else None,
                    foreign_column="id" if is_fk else None,
                )
            )

        if table.columns:
            tables.append(table)
    return tables


# =============================================================================
# Java: JPA entities
# =============================================================================

_JPA_ENTITY = re.compile(
    r"@Entity\b(?:\s*\((?:[^()]|\([^()]*\))*\))?((?:\s*@\w+\s*(?:\((?:[^()]|\([^()]*\))*\))?)*)\s*"
    r"(?:public\s+|protected\s+|abstract\s+|final\s+)*class\s+(\w+)"
)
_JPA_TABLE = re.compile(r"""@Table\s*\([^)]*name\s*=\s*["'](\w+)["']""")
_JPA_FIELD = re.compile(
    r"((?:@\w+\s*(?:\((?:[^()]|\([^()]*\))*\))?\s*)*)"
    r"(?:private|protected|public)\s+((?:static\s+|final\s+|transient\s+)*)"
    r"([\w<>,.?\[\]\s]+?)\s+(\w+)\s*(?:=[^;]*)?;"
)
_JPA_COLUMN_NAME = re.compile(r"""@Column\s*\([^)]*name\s*=\s*["'](\w+)["']""")
_JPA_JOIN_COLUMN = re.compile(r"""@JoinColumn\s*\([^)]*name\s*=\s*["'](\w+)["']""")
_JPA_REFERENCED = re.compile(r"""referencedColumnName\s*=\s*["'](\w+)["']""")


def _jpa_models(content: str) -> list[ExtractedTable]:
    tables: list[ExtractedTable] = []
    previous_end = 0
    for match in _JPA_ENTITY.finditer(content):
        block = _class_body(content, match.end())
        if block is None:
            continue
        body_end, body = block

        # @Table may sit before or after @Entity
        table_annotation = _JPA_TABLE.search(content, previous_end, match.end())
        previous_end = body_end
        table = ExtractedTable(
            name=table_annotation.group(1)
            if table_annotation
            else default_table_name(match.group(2))
        )

        for field in _JPA_FIELD.finditer(body):
            annotations, modifiers, field_type, field_name = field.groups()
            if "static" in modifiers or "transient" in modifiers or "@Transient" in annotations:
                continue
            if "@OneToMany" in annotations or "@ManyToMany" in annotations:
                continue

            if "@ManyToOne" in annotations or "@OneToOne" in annotations:
                join = _JPA_JOIN_COLUMN.search(annotations)
                if "mappedBy" in annotations and not join:
                    continue
                ref = _JPA_REFERENCED.search(annotations)
                table.columns.append(
                    ExtractedColumn(
                        name=join.group(1) if join else f"{to_snake_case(field_name)}_id",
                        is_foreign_key=True,
                        foreign_table=default_table_name(field_type.strip()),
                        foreign_column=ref.group(1) if ref else "id",
                    )
                )
                continue

            explicit = _JPA_COLUMN_NAME.search(annotations)
            table.columns.append(
                ExtractedColumn(
                    name=explicit.group(1) if explicit else to_snake_case(field_name),
                    data_type=field_type.strip(),
                    is_primary_key="@Id" in annotations or "@EmbeddedId" in annotations,
                )
            )

        if table.columns:
            tables.append(table)
    return tables


# =============================================================================
# Dispatch
# =============================================================================

GRAMMARS: dict[str, tuple[Grammar, ...]] = {
    "prisma": (_prisma_models,),
    "python": (_python_models,),
    "typescript": (_typeorm_models, _prisma_models),
    "javascript": (_typeorm_models,),
    "csharp": (_entity_framework_models,),
    "go": (_go_models,),
    "java": (_jpa_models,),
    "unknown": (_prisma_models,),
}


def extract_orm_schema(content: str, language: str) -> list[ExtractedTable]:
    """Extract tables declared as ORM models in ``content``.

    Tables found by more than one grammar keep the first extraction.
    """
    seen: set[str] = set()
    tables: list[ExtractedTable] = []
    for grammar in GRAMMARS.get(language, ()):
        for table in grammar(content):
            if table.name.lower() in seen:
                continue
            seen.add(table.name.lower())
            tables.append(table)

    if not tables:
        log.debug("orm_schema_zero_yield", language=language, chars=len(content))
    return tables


def has_model_definitions(content: str, language: str) -> bool:
    """Cheap pre-check used by ingestion to pick model files for extraction."""
    markers = {
        "prisma": ("model ",),
        "python": ("__tablename__", "models.Model"),
        "typescript": ("@Entity", "model "),
        "javascript": ("@Entity",),
        "csharp": ("DbSet<", "[Table("),
        "go": ("gorm:", "db:\"", "json:\""),
        "java": ("@Entity",),
    }.get(language, ())
    return any(marker in content for marker in markers)

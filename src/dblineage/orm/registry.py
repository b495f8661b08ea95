"""Per-language ORM rule sets.

Each OrmDescriptor is pure configuration: which file-level indicators reveal
the ORM, how its calls map to usage types, and how its model/field
declarations map to table/column names. Adding an ORM means adding a record
to ALL_ORMS; the tracer and the lineage builder never special-case an ORM.

Usage rule precedence:
    Within one descriptor, rules are declared write -> update -> delete ->
    join -> filter -> projection, then explicit read rules. The first rule
    that matches classifies the usage. Rules tagged ``definition`` mark
    schema-declaration lines and never classify a usage.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from dblineage.core.languages import languages_compatible

DEFINITION = "definition"


@dataclass(frozen=True, slots=True)
class UsageRule:
    """Line/context pattern implying a usage type."""

    pattern: re.Pattern[str]
    usage_type: str
    description: str

    @property
    def is_definition(self) -> bool:
        return self.usage_type == DEFINITION


@dataclass(frozen=True, slots=True)
class ModelPattern:
    """Pattern extracting a table name from a model/class/table-macro definition."""

    pattern: re.Pattern[str]
    table_group: int
    description: str


@dataclass(frozen=True, slots=True)
class FieldPattern:
    """Pattern extracting a (field name, column name) pair from a field declaration."""

    pattern: re.Pattern[str]
    field_group: int
    column_group: int
    description: str


@dataclass(frozen=True, slots=True)
class OrmDescriptor:
    """Canonical rule set for one ORM in one language.

    Attributes:
        orm: ORM name (e.g., "Prisma", "SQLAlchemy")
        language: Language name the rules are written for
        file_indicators: Any match marks a file as using this ORM
        usage_rules: Ordered classification rules (first match wins)
        model_patterns: Model-to-table extraction patterns
        field_patterns: Field-to-column extraction patterns
    """

    orm: str
    language: str
    file_indicators: tuple[re.Pattern[str], ...]
    usage_rules: tuple[UsageRule, ...]
    model_patterns: tuple[ModelPattern, ...] = ()
    field_patterns: tuple[FieldPattern, ...] = ()

    def matches_file(self, content: str, language: str) -> bool:
        if not languages_compatible(self.language, language):
            return False
        return any(p.search(content) for p in self.file_indicators)

    def classify(self, line: str, context: str = "") -> str | None:
        """First non-definition usage type whose rule matches the line or its context."""
        for rule in self.usage_rules:
            if rule.is_definition:
                continue
            if rule.pattern.search(line) or (context and rule.pattern.search(context)):
                return rule.usage_type
        return None


def _indicators(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.MULTILINE) for p in patterns)


def _rules(*rules: tuple[str, str, str]) -> tuple[UsageRule, ...]:
    return tuple(UsageRule(re.compile(p), usage, desc) for p, usage, desc in rules)


def _models(*models: tuple[str, int, str]) -> tuple[ModelPattern, ...]:
    return tuple(ModelPattern(re.compile(p, re.MULTILINE), g, desc) for p, g, desc in models)


def _fields(*fields: tuple[str, int, int, str]) -> tuple[FieldPattern, ...]:
    return tuple(
        FieldPattern(re.compile(p, re.MULTILINE), fg, cg, desc) for p, fg, cg, desc in fields
    )


# =============================================================================
# Descriptor table
# =============================================================================
# RULES:
# 1. usage_rules order is write, update, delete, join, filter, projection, read
# 2. Regexes are case-sensitive; ORM method names are
# 3. Group indexes refer to the regex's own capture groups

ALL_ORMS: tuple[OrmDescriptor, ...] = (
    # =========================================================================
    # TypeScript / JavaScript
    # =========================================================================
    OrmDescriptor(
        orm="Prisma",
        language="typescript",
        file_indicators=_indicators(
            r"""from\s+['"]@prisma/client['"]""",
            r"PrismaClient",
            r"prisma\.\w+\.(findMany|findUnique|findFirst|create|update|delete|upsert|aggregate|groupBy|count)",
        ),
        usage_rules=_rules(
            (r"^\s*model\s+\w+\s*\{", DEFINITION, "Prisma model block"),
            (r"prisma\.\w+\.create|prisma\.\w+\.createMany", "write", "Prisma create"),
            (
                r"prisma\.\w+\.update|prisma\.\w+\.updateMany|prisma\.\w+\.upsert",
                "update",
                "Prisma update",
            ),
            (r"prisma\.\w+\.delete|prisma\.\w+\.deleteMany", "delete", "Prisma delete"),
            (r"include\s*:\s*\{", "join", "Prisma include (relation join)"),
            (r"where\s*:\s*\{", "filter", "Prisma where"),
            (r"select\s*:\s*\{", "projection", "Prisma select"),
            (
                r"prisma\.\w+\.findMany|prisma\.\w+\.findFirst|prisma\.\w+\.findUnique",
                "read",
                "Prisma read query",
            ),
            (r"orderBy\s*:\s*\{", "read", "Prisma orderBy"),
        ),
        model_patterns=_models(
            (r"model\s+(\w+)\s*\{", 1, "Prisma model definition"),
            (r"""@@map\(["'](\w+)["']\)""", 1, "Prisma model-to-table mapping"),
        ),
        field_patterns=_fields(
            (r"""(\w+)\s+\w+.*@map\(["'](\w+)["']\)""", 1, 2, "Prisma field-to-column mapping"),
        ),
    ),
    OrmDescriptor(
        orm="Sequelize",
        language="javascript",
        file_indicators=_indicators(
            r"""require\s*\(\s*['"]sequelize['"]\s*\)""",
            r"""from\s+['"]sequelize['"]""",
            r"sequelize\.define",
            r"Model\.init\s*\(",
        ),
        usage_rules=_rules(
            (r"\.create\s*\(|\.bulkCreate\s*\(", "write", "Sequelize create"),
            (r"\.update\s*\(|\.save\s*\(", "update", "Sequelize update"),
            (r"\.destroy\s*\(", "delete", "Sequelize destroy"),
            (r"include\s*:\s*\[", "join", "Sequelize include (join)"),
            (r"where\s*:\s*\{", "filter", "Sequelize where"),
            (r"attributes\s*:\s*\[", "projection", "Sequelize select attributes"),
            (
                r"\.findAll\s*\(|\.findOne\s*\(|\.findByPk\s*\(|\.findAndCountAll\s*\(",
                "read",
                "Sequelize find",
            ),
        ),
        model_patterns=_models(
            (r"""sequelize\.define\s*\(\s*['"](\w+)['"]""", 1, "Sequelize model define"),
            (r"""tableName\s*:\s*['"](\w+)['"]""", 1, "Sequelize tableName"),
        ),
        field_patterns=_fields(
            (
                r"""(\w+)\s*:\s*\{\s*type\s*:.*field\s*:\s*['"](\w+)['"]""",
                1,
                2,
                "Sequelize field mapping",
            ),
        ),
    ),
    OrmDescriptor(
        orm="TypeORM",
        language="typescript",
        file_indicators=_indicators(
            r"""from\s+['"]typeorm['"]""",
            r"@Entity\s*\(",
            r"@Column\s*\(",
            r"getRepository\s*\(",
            r"createQueryBuilder\s*\(",
        ),
        usage_rules=_rules(
            (r"@Column\s*\(|@PrimaryGeneratedColumn\s*\(", DEFINITION, "TypeORM column decl"),
            (r"\.save\s*\(|\.insert\s*\(", "write", "TypeORM save/insert"),
            (r"\.update\s*\(|\.merge\s*\(", "update", "TypeORM update"),
            (r"\.delete\s*\(|\.remove\s*\(|\.softDelete\s*\(", "delete", "TypeORM delete"),
            (
                r"\.leftJoin|\.innerJoin|\.leftJoinAndSelect|\.innerJoinAndSelect",
                "join",
                "TypeORM join",
            ),
            (r"\.where\s*\(|\.andWhere\s*\(|\.orWhere\s*\(", "filter", "TypeORM where"),
            (r"\.select\s*\(|addSelect\s*\(", "projection", "TypeORM select"),
            (
                r"\.find\s*\(|\.findOne\s*\(|\.findOneBy\s*\(|\.findBy\s*\(",
                "read",
                "TypeORM find",
            ),
            (r"createQueryBuilder", "read", "TypeORM query builder"),
        ),
        model_patterns=_models(
            (r"""@Entity\s*\(\s*['"](\w+)['"]""", 1, "TypeORM entity table name"),
            (r"""@Entity\s*\(\s*\{[^}]*name\s*:\s*['"](\w+)['"]""", 1, "TypeORM entity name option"),
        ),
        field_patterns=_fields(
            (
                r"""@Column\s*\(\s*\{[^}]*name\s*:\s*['"](\w+)['"][^}]*\}\s*\)\s*(\w+)""",
                2,
                1,
                "TypeORM column mapping",
            ),
            (r"@Column\s*\([^)]*\)\s*(\w+)", 1, 1, "TypeORM column (same name)"),
        ),
    ),
    OrmDescriptor(
        orm="Knex",
        language="javascript",
        file_indicators=_indicators(
            r"""require\s*\(\s*['"]knex['"]\s*\)""",
            r"""from\s+['"]knex['"]""",
            r"""knex\s*\(\s*['"]""",
        ),
        usage_rules=_rules(
            (r"\.insert\s*\(", "write", "Knex insert"),
            (r"\.update\s*\(", "update", "Knex update"),
            (r"\.del\s*\(|\.delete\s*\(", "delete", "Knex delete"),
            (r"\.join\s*\(|\.leftJoin\s*\(|\.innerJoin\s*\(", "join", "Knex join"),
            (r"\.where\s*\(|\.andWhere\s*\(|\.orWhere\s*\(", "filter", "Knex where"),
            (r"\.select\s*\(", "projection", "Knex select"),
            (r"""knex\s*\(\s*['"]""", "read", "Knex query"),
        ),
    ),
    OrmDescriptor(
        orm="Drizzle",
        language="typescript",
        file_indicators=_indicators(
            r"""from\s+['"]drizzle-orm""",
            r"pgTable\s*\(",
            r"mysqlTable\s*\(",
            r"sqliteTable\s*\(",
        ),
        usage_rules=_rules(
            (r"(?:pgTable|mysqlTable|sqliteTable)\s*\(", DEFINITION, "Drizzle table decl"),
            (r"db\.insert\s*\(", "write", "Drizzle insert"),
            (r"db\.update\s*\(", "update", "Drizzle update"),
            (r"db\.delete\s*\(", "delete", "Drizzle delete"),
            (
                r"\.innerJoin\s*\(|\.leftJoin\s*\(|\.rightJoin\s*\(|with\s*:\s*\{",
                "join",
                "Drizzle join",
            ),
            (r"\.where\s*\(|\beq\s*\(|\band\s*\(|\bor\s*\(", "filter", "Drizzle where"),
            (r"\.columns\s*\(|\.fields\s*\(", "projection", "Drizzle projection"),
            (
                r"db\.select\s*\(|db\.query\.\w+\.findMany|db\.query\.\w+\.findFirst",
                "read",
                "Drizzle select/query",
            ),
        ),
        model_patterns=_models(
            (
                r"""(?:pgTable|mysqlTable|sqliteTable)\s*\(\s*['"](\w+)['"]""",
                1,
                "Drizzle table definition",
            ),
        ),
        field_patterns=_fields(
            (
                r"""(\w+)\s*:\s*(?:varchar|text|integer|serial|boolean|timestamp|uuid|numeric|real|bigint|smallint|json|jsonb)\s*\(\s*['"](\w+)['"]""",
                1,
                2,
                "Drizzle field with column name",
            ),
            (
                r"(\w+)\s*:\s*(?:varchar|text|integer|serial|boolean|timestamp|uuid|numeric|real|bigint|smallint|json|jsonb)\s*\(",
                1,
                1,
                "Drizzle field definition",
            ),
        ),
    ),
    # =========================================================================
    # Go
    # =========================================================================
    OrmDescriptor(
        orm="GORM",
        language="go",
        file_indicators=_indicators(
            r'"gorm\.io/gorm"',
            r'"gorm\.io/driver/',
            r"gorm\.Model",
            r"\.Preload\s*\(",
        ),
        usage_rules=_rules(
            (r"\.Create\s*\(|\.Save\s*\(", "write", "GORM create"),
            (r"\.Update\s*\(|\.Updates\s*\(|\.UpdateColumn\s*\(", "update", "GORM update"),
            (r"\.Delete\s*\(", "delete", "GORM delete"),
            (r"\.Joins\s*\(|\.Preload\s*\(|\.Association\s*\(", "join", "GORM join/preload"),
            (r"\.Where\s*\(|\.Or\s*\(|\.Not\s*\(", "filter", "GORM where"),
            (r"\.Select\s*\(|\.Pluck\s*\(", "projection", "GORM select"),
            (r"\.Find\s*\(|\.First\s*\(|\.Last\s*\(|\.Take\s*\(|\.Scan\s*\(", "read", "GORM find"),
        ),
        model_patterns=_models(
            (
                r"""func\s*\(\s*\w+\s+\*?(\w+)\s*\)\s*TableName\s*\(\s*\)\s*string\s*\{[^}]*return\s+["'](\w+)["']""",
                2,
                "GORM TableName method",
            ),
        ),
        field_patterns=_fields(
            (r'(\w+)\s+\S+\s+`[^`]*gorm:"[^"]*column:(\w+)', 1, 2, "GORM struct tag column"),
            (r'(\w+)\s+\S+\s+`[^`]*db:"(\w+)', 1, 2, "sqlx db tag"),
            (r'(\w+)\s+\S+\s+`[^`]*json:"(\w+)', 1, 2, "Go JSON tag (inferred column)"),
        ),
    ),
    # =========================================================================
    # Python
    # =========================================================================
    OrmDescriptor(
        orm="SQLAlchemy",
        language="python",
        file_indicators=_indicators(
            r"from\s+sqlalchemy",
            r"import\s+sqlalchemy",
            r"Base\.metadata",
            r"declarative_base\s*\(",
            r"mapped_column\s*\(",
        ),
        usage_rules=_rules(
            (r"=\s*(?:Column|mapped_column)\s*\(", DEFINITION, "SQLAlchemy column decl"),
            (r"session\.add\s*\(|session\.add_all\s*\(|\.insert\s*\(", "write", "SQLAlchemy add/insert"),
            (r"session\.merge\s*\(|\.update\s*\(", "update", "SQLAlchemy merge/update"),
            (r"session\.delete\s*\(|\.delete\s*\(", "delete", "SQLAlchemy delete"),
            (r"\.join\s*\(|\.outerjoin\s*\(|relationship\s*\(", "join", "SQLAlchemy join"),
            (r"\.filter\s*\(|\.filter_by\s*\(|\.where\s*\(", "filter", "SQLAlchemy filter"),
            (
                r"\.with_entities\s*\(|\.options\s*\(.*load_only",
                "projection",
                "SQLAlchemy projection",
            ),
            (
                r"session\.query\s*\(|\.all\s*\(|\.first\s*\(|\.one\s*\(|\.scalars\s*\(|\.execute\s*\(.*select",
                "read",
                "SQLAlchemy read",
            ),
        ),
        model_patterns=_models(
            (r"""__tablename__\s*=\s*['"](\w+)['"]""", 1, "SQLAlchemy tablename"),
        ),
        field_patterns=_fields(
            (
                r"""(\w+)\s*=\s*(?:Column|mapped_column)\s*\(\s*['"](\w+)['"]""",
                1,
                2,
                "SQLAlchemy explicit column name",
            ),
            (r"(\w+)\s*=\s*(?:Column|mapped_column)\s*\(", 1, 1, "SQLAlchemy column definition"),
        ),
    ),
    OrmDescriptor(
        orm="Django",
        language="python",
        file_indicators=_indicators(
            r"from\s+django\.db\s+import\s+models",
            r"models\.Model\b",
            r"\.objects\.",
        ),
        usage_rules=_rules(
            (r"=\s*models\.\w+Field\s*\(", DEFINITION, "Django field decl"),
            (r"\.objects\.create\s*\(|\.bulk_create\s*\(|\.save\s*\(", "write", "Django create/save"),
            (r"\.update\s*\(|\.update_or_create\s*\(|\.bulk_update\s*\(", "update", "Django update"),
            (r"\.delete\s*\(", "delete", "Django delete"),
            (
                r"\.select_related\s*\(|\.prefetch_related\s*\(|models\.ForeignKey\s*\(",
                "join",
                "Django relation join",
            ),
            (r"\.filter\s*\(|\.exclude\s*\(|\.get\s*\(", "filter", "Django filter"),
            (r"\.values\s*\(|\.values_list\s*\(|\.only\s*\(|\.defer\s*\(", "projection", "Django values"),
            (r"\.objects\.all\s*\(|\.first\s*\(|\.last\s*\(", "read", "Django read"),
        ),
        model_patterns=_models(
            (r"""db_table\s*=\s*['"](\w+)['"]""", 1, "Django Meta.db_table"),
        ),
        field_patterns=_fields(
            (
                r"""(\w+)\s*=\s*models\.\w+\s*\([^)]*db_column\s*=\s*['"](\w+)['"]""",
                1,
                2,
                "Django db_column",
            ),
            (r"(\w+)\s*=\s*models\.\w+Field\s*\(", 1, 1, "Django field definition"),
        ),
    ),
    # =========================================================================
    # JVM
    # =========================================================================
    OrmDescriptor(
        orm="Hibernate",
        language="java",
        file_indicators=_indicators(
            r"import\s+javax\.persistence\.",
            r"import\s+jakarta\.persistence\.",
            r"import\s+org\.hibernate\.",
            r"@Entity",
            r"@Table",
        ),
        usage_rules=_rules(
            (r"@Column\s*\(", DEFINITION, "JPA column decl"),
            (r"\.persist\s*\(|\.save\s*\(|\.saveAndFlush\s*\(", "write", "JPA persist"),
            (r"\.merge\s*\(|\.update\s*\(", "update", "JPA merge/update"),
            (r"\.remove\s*\(|\.delete\s*\(|\.deleteById\s*\(", "delete", "JPA delete"),
            (
                r"JOIN\s+FETCH|@ManyToOne|@OneToMany|@ManyToMany|@OneToOne",
                "join",
                "JPA relation/join",
            ),
            (r"""\.createQuery\s*\(\s*["'].*WHERE|\.setParameter\s*\(""", "filter", "JPQL where"),
            (r"""\.createQuery\s*\(\s*["']SELECT\s+\w+\.\w+""", "projection", "JPQL projection"),
            (
                r"\.find\s*\(|\.get\s*\(|\.load\s*\(|\.createQuery\s*\(.*SELECT|entityManager\.find",
                "read",
                "JPA/Hibernate read",
            ),
            (r"CriteriaBuilder|CriteriaQuery|Specification", "read", "JPA Criteria API"),
        ),
        model_patterns=_models(
            (r"""@Table\s*\(\s*name\s*=\s*["'](\w+)["']""", 1, "JPA @Table name"),
        ),
        field_patterns=_fields(
            (
                r"""@Column\s*\(\s*name\s*=\s*["'](\w+)["'][^)]*\)\s*(?:@\w+(?:\([^)]*\))?\s*)*(?:private|protected|public)\s+[\w<>,\s]+?\s+(\w+)\s*[;=]""",
                2,
                1,
                "JPA @Column name",
            ),
            (r"private\s+\w+\s+(\w+)\s*;", 1, 1, "JPA field (inferred column)"),
        ),
    ),
    # =========================================================================
    # Ruby
    # =========================================================================
    OrmDescriptor(
        orm="ActiveRecord",
        language="ruby",
        file_indicators=_indicators(
            r"ActiveRecord::Base",
            r"ApplicationRecord",
            r"ActiveRecord::Migration",
            r"has_many\s+:",
            r"belongs_to\s+:",
        ),
        usage_rules=_rules(
            (r"\.create\s*\(|\.create!\s*\(|\.new\s*\(.*\.save", "write", "ActiveRecord create"),
            (r"\.update\s*\(|\.update!\s*\(|\.update_attribute", "update", "ActiveRecord update"),
            (r"\.destroy\s*\(|\.delete\s*\(|\.destroy_all", "delete", "ActiveRecord destroy"),
            (
                r"\.joins\s*\(|\.includes\s*\(|\.eager_load\s*\(|has_many|belongs_to|has_one",
                "join",
                "ActiveRecord joins/associations",
            ),
            (r"\.where\s*\(|\.find_by\s*\(|\.having\s*\(", "filter", "ActiveRecord where"),
            (r"\.select\s*\(|\.pluck\s*\(", "projection", "ActiveRecord select/pluck"),
            (r"\.find\s*\(|\.all\b|\.first\b|\.last\b", "read", "ActiveRecord read"),
        ),
        model_patterns=_models(
            (r"""self\.table_name\s*=\s*['"](\w+)['"]""", 1, "ActiveRecord table_name"),
        ),
    ),
    # =========================================================================
    # Rust
    # =========================================================================
    OrmDescriptor(
        orm="Diesel",
        language="rust",
        file_indicators=_indicators(
            r"use\s+diesel",
            r"diesel::table!",
            r"diesel::prelude",
            r"#\[derive\(.*Queryable",
        ),
        usage_rules=_rules(
            (r"diesel::insert_into|\.values\s*\(", "write", "Diesel insert"),
            (r"diesel::update|\.set\s*\(", "update", "Diesel update"),
            (r"diesel::delete", "delete", "Diesel delete"),
            (r"\.inner_join\s*\(|\.left_join\s*\(", "join", "Diesel join"),
            (r"\.filter\s*\(|\.find\s*\(", "filter", "Diesel filter"),
            (r"\.select\s*\(|\.column\s*\(", "projection", "Diesel select"),
            (r"\.load\s*[:<(]|\.first\s*[:<(]|\.get_result\s*[:<(]", "read", "Diesel load/query"),
        ),
        model_patterns=_models(
            (r"(?:diesel::)?table!\s*\{\s*(\w+)", 1, "Diesel table! macro"),
            (r'#\[diesel\(table_name\s*=\s*"?(\w+)"?\)\]', 1, "Diesel table_name attribute"),
        ),
        field_patterns=_fields(
            (
                r'#\[diesel\(column_name\s*=\s*"?(\w+)"?\)\]\s*(?:pub\s+)?(\w+)',
                2,
                1,
                "Diesel column_name",
            ),
        ),
    ),
    # =========================================================================
    # .NET
    # =========================================================================
    OrmDescriptor(
        orm="EntityFramework",
        language="csharp",
        file_indicators=_indicators(
            r"using\s+Microsoft\.EntityFrameworkCore",
            r"using\s+System\.Data\.Entity",
            r"DbContext",
            r"DbSet\s*<",
        ),
        usage_rules=_rules(
            (r"\.Add\s*\(|\.AddRange\s*\(|\.AddAsync\s*\(", "write", "EF add"),
            (
                r"\.Update\s*\(|\.Entry\s*\(.*\.State\s*=\s*EntityState\.Modified",
                "update",
                "EF update",
            ),
            (r"\.Remove\s*\(|\.RemoveRange\s*\(", "delete", "EF remove"),
            (r"\.Include\s*\(|\.ThenInclude\s*\(|\.Join\s*\(", "join", "EF include/join"),
            (r"\.Where\s*\(|\.Any\s*\(|\.All\s*\(", "filter", "EF where"),
            (r"\.Select\s*\(", "projection", "EF select"),
            (
                r"\.ToList\s*\(|\.FirstOrDefault\s*\(|\.SingleOrDefault\s*\(|\.Find\s*\(|\.AsNoTracking\s*\(",
                "read",
                "EF read",
            ),
        ),
        model_patterns=_models(
            (r"""\[Table\s*\(\s*["'](\w+)["']""", 1, "EF Table attribute"),
            (
                r"""modelBuilder\.Entity<\w+>\s*\(\s*\)\s*\.ToTable\s*\(\s*["'](\w+)["']""",
                1,
                "EF ToTable fluent",
            ),
        ),
        field_patterns=_fields(
            (
                r"""\[Column\s*\(\s*["'](\w+)["'][^\]]*\]\s*public\s+[\w<>?]+\s+(\w+)""",
                2,
                1,
                "EF Column attribute",
            ),
        ),
    ),
)


def detect_orms(content: str, language: str) -> list[OrmDescriptor]:
    """Every descriptor whose language matches and whose indicators appear in ``content``."""
    return [orm for orm in ALL_ORMS if orm.matches_file(content, language)]


def extract_model_tables(content: str, orms: list[OrmDescriptor]) -> dict[str, str]:
    """Table names declared by model patterns, as ``{declared: lowercased}``."""
    mappings: dict[str, str] = {}
    for orm in orms:
        for mp in orm.model_patterns:
            for match in mp.pattern.finditer(content):
                table_name = match.group(mp.table_group)
                if table_name:
                    mappings[table_name] = table_name.lower()
    return mappings


def extract_field_mappings(content: str, orms: list[OrmDescriptor]) -> dict[str, str]:
    """Field-to-column mappings (struct tags, annotations...), lowercased.

    Explicit mappings win over same-name fallbacks: the first pattern that
    yields a mapping for a field keeps it.
    """
    mappings: dict[str, str] = {}
    for orm in orms:
        for fp in orm.field_patterns:
            for match in fp.pattern.finditer(content):
                field_name = match.group(fp.field_group)
                column_name = match.group(fp.column_group)
                if field_name and column_name:
                    mappings.setdefault(field_name.lower(), column_name.lower())
    return mappings


def get_orm(name: str) -> OrmDescriptor | None:
    for orm in ALL_ORMS:
        if orm.orm.lower() == name.lower():
            return orm
    return None

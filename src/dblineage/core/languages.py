"""Canonical language definitions for ingested source files.

Maps file extensions to the language names used by the ORM registry and the
schema extractor. Only languages with a known database-access story are
listed; everything else ingests as ``unknown``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class Language:
    """Canonical definition for a language name.

    Attributes:
        name: Unique identifier (lowercase, e.g., "python", "typescript")
        label: Human-readable label
        extensions: File extensions including dot
        is_schema: True for pure schema/DDL languages
    """

    name: str
    label: str
    extensions: frozenset[str]
    is_schema: bool = False


ALL_LANGUAGES: tuple[Language, ...] = (
    Language("go", "Go", frozenset({".go"})),
    Language("javascript", "JavaScript", frozenset({".js", ".mjs", ".cjs", ".jsx"})),
    Language("typescript", "TypeScript", frozenset({".ts", ".tsx"})),
    Language("java", "Java", frozenset({".java"})),
    Language("kotlin", "Kotlin", frozenset({".kt"})),
    Language("python", "Python", frozenset({".py"})),
    Language("ruby", "Ruby", frozenset({".rb"})),
    Language("rust", "Rust", frozenset({".rs"})),
    Language("csharp", "C#", frozenset({".cs"})),
    Language("php", "PHP", frozenset({".php"})),
    Language("sql", "SQL", frozenset({".sql", ".ddl"}), is_schema=True),
    Language("prisma", "Prisma", frozenset({".prisma"}), is_schema=True),
    Language("graphql", "GraphQL", frozenset({".graphql", ".gql"}), is_schema=True),
    Language("proto", "Protobuf", frozenset({".proto"}), is_schema=True),
)

EXTENSION_TO_NAME: dict[str, str] = {
    ext: lang.name for lang in ALL_LANGUAGES for ext in lang.extensions
}

# Languages whose ORM descriptors are interchangeable
COMPATIBLE_LANGUAGES: dict[str, frozenset[str]] = {
    "javascript": frozenset({"javascript", "typescript"}),
    "typescript": frozenset({"javascript", "typescript"}),
    "java": frozenset({"java", "kotlin"}),
    "kotlin": frozenset({"java", "kotlin"}),
}


def detect_language(path: str) -> str:
    """Detect language name from a file path, or ``unknown``."""
    suffix = PurePosixPath(path.replace("\\", "/")).suffix.lower()
    return EXTENSION_TO_NAME.get(suffix, UNKNOWN)


def is_supported_extension(path: str) -> bool:
    return detect_language(path) != UNKNOWN


def languages_compatible(descriptor_language: str, file_language: str) -> bool:
    """True when a descriptor written for one language applies to a file in another."""
    if descriptor_language == file_language:
        return True
    return file_language in COMPATIBLE_LANGUAGES.get(descriptor_language, frozenset())

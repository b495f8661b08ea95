"""Directory ingestion: store source files, extract schema, trace usages.

One scan of a directory, in order:

1. walk the tree (vendor and build directories pruned), keeping files of a
   known language under the size limit
2. upsert SourceFile rows; a file whose content changed loses its usages and
   its parsed flag
3. extract tables from SQL DDL, Prisma schemas and ORM model files, and
   persist the ones the project does not have yet
4. trace every stored file of the project against the project's columns

Newly persisted tables force a full retrace, since files traced earlier were
never checked against their columns.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from sqlmodel import select

from dblineage.config.models import TracerConfig
from dblineage.core.languages import UNKNOWN, detect_language
from dblineage.db import ColumnUsage, Database, SourceFile
from dblineage.schema.orm_models import extract_orm_schema, has_model_definitions
from dblineage.schema.sql import extract_sql_schema
from dblineage.schema.store import StoreResult, persist_tables
from dblineage.schema.types import ExtractedTable
from dblineage.tracing.tracer import ColumnTracer, TraceResult

log = structlog.get_logger()

PRUNABLE_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".venv",
        "venv",
        "__pycache__",
        "node_modules",
        "dist",
        "build",
        "vendor",
        "target",
        ".dblineage",
        ".idea",
        ".vscode",
    }
)


@dataclass(frozen=True, slots=True)
class DiscoveredFile:
    path: str  # POSIX path relative to the scan root
    language: str
    content: str


@dataclass(slots=True)
class IngestResult:
    """Outcome of one directory scan."""

    files_seen: int = 0
    files_stored: int = 0
    files_changed: int = 0
    files_skipped: int = 0
    schema: StoreResult = field(default_factory=StoreResult)
    trace: TraceResult = field(default_factory=TraceResult)


def walk_sources(root: Path, max_file_size_kb: int) -> tuple[list[DiscoveredFile], int]:
    """Readable source files under ``root``. Returns (files, skipped count)."""
    files: list[DiscoveredFile] = []
    skipped = 0
    max_bytes = max_file_size_kb * 1024
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in PRUNABLE_DIRS)
        for filename in sorted(filenames):
            full = Path(dirpath) / filename
            rel = full.relative_to(root).as_posix()
            language = detect_language(rel)
            if language == UNKNOWN:
                continue
            try:
                if full.stat().st_size > max_bytes:
                    log.debug("ingest_file_too_large", path=rel)
                    skipped += 1
                    continue
                content = full.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                log.debug("ingest_file_unreadable", path=rel, error=str(e))
                skipped += 1
                continue
            files.append(DiscoveredFile(path=rel, language=language, content=content))
    return files, skipped


def extract_tables(files: list[DiscoveredFile]) -> list[ExtractedTable]:
    """Tables from DDL files first, then ORM model definitions."""
    ddl: list[ExtractedTable] = []
    models: list[ExtractedTable] = []
    for file in files:
        if file.language == "sql":
            ddl.extend(extract_sql_schema(file.content))
        elif file.language == "prisma" or has_model_definitions(file.content, file.language):
            models.extend(extract_orm_schema(file.content, file.language))
    return ddl + models


def store_files(db: Database, project_id: str, files: list[DiscoveredFile]) -> tuple[int, int]:
    """Upsert source files. Returns (stored, changed)."""
    stored = changed = 0
    changed_ids: list[int] = []
    with db.session() as session:
        existing = {
            f.path: f
            for f in session.exec(select(SourceFile).where(SourceFile.project_id == project_id))
        }
        for file in files:
            row = existing.get(file.path)
            if row is None:
                session.add(
                    SourceFile(
                        project_id=project_id,
                        path=file.path,
                        language=file.language,
                        content=file.content,
                    )
                )
                stored += 1
            elif row.content != file.content:
                row.content = file.content
                row.language = file.language
                row.parsed = False
                session.add(row)
                if row.id is not None:
                    changed_ids.append(row.id)
                changed += 1
        session.commit()

    if changed_ids:
        with db.bulk_writer() as writer:
            for file_id in changed_ids:
                writer.delete_where(ColumnUsage, "source_file_id = :fid", {"fid": file_id})
    return stored, changed


def ingest_directory(
    db: Database,
    root: Path,
    project_id: str,
    config: TracerConfig | None = None,
    *,
    force: bool = False,
) -> IngestResult:
    """Scan ``root`` into ``project_id``: files, schema, then usages."""
    config = config or TracerConfig()
    result = IngestResult()

    files, result.files_skipped = walk_sources(root, config.max_file_size_kb)
    result.files_seen = len(files)
    result.files_stored, result.files_changed = store_files(db, project_id, files)
    log.info(
        "ingest_files_stored",
        project_id=project_id,
        seen=result.files_seen,
        stored=result.files_stored,
        changed=result.files_changed,
        skipped=result.files_skipped,
    )

    result.schema = persist_tables(db, project_id, extract_tables(files))

    retrace = force or result.schema.tables_inserted > 0
    result.trace = ColumnTracer(db, config).trace_project(project_id, force=retrace)
    return result

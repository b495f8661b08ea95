"""Column usage tracer.

Scans source files line by line for references to known columns and stores
one ColumnUsage per (column, file, line, usage type).

Two strategies per line:

- name variants: any indexed variant longer than 3 characters found in the
  line, accepted when the surrounding context names the owning table, the
  column name is longer than 4 characters, or the file uses a known ORM
- ORM field mappings: a field name declared in this file with an explicit
  column mapping, matched as a whole word, resolved to every column with the
  mapped name

Each file is traced in its own write transaction: usages are inserted as
they are found, the file is marked parsed at the end. A file that is already
parsed is skipped unless ``force`` is set, in which case its previous usages
are deleted first. Failures are isolated per file.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

import structlog
from sqlmodel import col, select

from dblineage.config.constants import (
    CONTEXT_MAX_CHARS,
    SNIPPET_MAX_CHARS,
    SPECIFIC_COLUMN_NAME_LENGTH,
)
from dblineage.config.models import TracerConfig
from dblineage.db import BulkWriter, ColumnUsage, Database, SourceFile
from dblineage.orm.registry import OrmDescriptor, detect_orms, extract_field_mappings
from dblineage.schema.store import load_columns
from dblineage.tracing.classify import classify_usage
from dblineage.tracing.variants import ColumnRef, VariantIndex

log = structlog.get_logger()

COMMENT_PREFIXES = ("//", "#", "*", "/*", "--")


@dataclass(slots=True)
class TraceResult:
    """Outcome of one trace run."""

    usages_inserted: int = 0
    files_traced: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    errors: dict[str, str] = field(default_factory=dict)  # path -> error


@dataclass(slots=True)
class FileTrace:
    """Outcome of tracing one file."""

    path: str
    usages_inserted: int = 0
    skipped: bool = False
    error: str | None = None


@dataclass(frozen=True, slots=True)
class _Window:
    """Snippet and context around one line."""

    snippet: str
    context: str


class ColumnTracer:
    """Traces column usages across source files.

    Usage::

        tracer = ColumnTracer(db)
        result = tracer.trace(files, columns)
        result = tracer.trace_project("proj-1", force=True)
    """

    def __init__(self, db: Database, config: TracerConfig | None = None) -> None:
        self.db = db
        self.config = config or TracerConfig()

    # =========================================================================
    # Public API
    # =========================================================================

    def trace(
        self,
        files: Sequence[SourceFile],
        columns: Iterable[ColumnRef],
        *,
        force: bool = False,
    ) -> TraceResult:
        """Trace ``files`` against ``columns``."""
        index = VariantIndex.build(columns)
        result = TraceResult()
        if not files:
            return result

        log.info(
            "trace_started",
            files=len(files),
            variants=len(index),
            force=force,
            workers=self.config.max_workers,
        )

        if self.config.max_workers > 1 and len(files) > 1:
            traces = self._parallel_trace(files, index, force, self.config.max_workers)
        else:
            traces = self._sequential_trace(files, index, force)

        for trace in traces:
            if trace.error is not None:
                result.files_failed += 1
                result.errors[trace.path] = trace.error
            elif trace.skipped:
                result.files_skipped += 1
            else:
                result.files_traced += 1
                result.usages_inserted += trace.usages_inserted

        log.info(
            "trace_completed",
            usages=result.usages_inserted,
            traced=result.files_traced,
            skipped=result.files_skipped,
            failed=result.files_failed,
        )
        return result

    def trace_project(self, project_id: str, *, force: bool = False) -> TraceResult:
        """Trace every stored file of a project against the project's columns."""
        with self.db.session() as session:
            files = list(
                session.exec(
                    select(SourceFile)
                    .where(SourceFile.project_id == project_id)
                    .order_by(col(SourceFile.id))
                )
            )
        columns = [
            ColumnRef(column_id=c.id or 0, column_name=c.name, table_name=t.name)
            for c, t in load_columns(self.db, [project_id])
        ]
        return self.trace(files, columns, force=force)

    # =========================================================================
    # Scheduling
    # =========================================================================

    def _sequential_trace(
        self, files: Sequence[SourceFile], index: VariantIndex, force: bool
    ) -> list[FileTrace]:
        return [self._trace_file_safe(f, index, force) for f in files]

    def _parallel_trace(
        self, files: Sequence[SourceFile], index: VariantIndex, force: bool, workers: int
    ) -> list[FileTrace]:
        results: list[FileTrace] = []
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="dblineage-trace"
        ) as executor:
            futures = {
                executor.submit(self._trace_file_safe, f, index, force): f for f in files
            }
            for future in as_completed(futures):
                results.append(future.result())
        return results

    def _trace_file_safe(self, file: SourceFile, index: VariantIndex, force: bool) -> FileTrace:
        try:
            return self._trace_file(file, index, force)
        except Exception as e:
            log.warning("trace_file_failed", path=file.path, file_id=file.id, error=str(e))
            return FileTrace(path=file.path, error=str(e))

    # =========================================================================
    # Per-file scan
    # =========================================================================

    def _trace_file(self, file: SourceFile, index: VariantIndex, force: bool) -> FileTrace:
        if file.parsed and not force:
            log.debug("trace_file_skipped", path=file.path)
            return FileTrace(path=file.path, skipped=True)

        content = file.content or ""
        orms = detect_orms(content, file.language)
        field_map = extract_field_mappings(content, orms)
        field_patterns = {
            field_name: re.compile(rf"\b{re.escape(field_name)}\b", re.IGNORECASE)
            for field_name in field_map
        }

        trace = FileTrace(path=file.path)
        with self.db.bulk_writer() as writer:
            if force:
                writer.delete_where(ColumnUsage, "source_file_id = :fid", {"fid": file.id})

            dedupe: set[tuple[int, int, int, str, str]] = set()
            lines = content.split("\n")
            for i, line in enumerate(lines):
                stripped = line.strip()
                if not stripped or stripped.startswith(COMMENT_PREFIXES):
                    continue

                window: _Window | None = None

                # Strategy A: naming variants
                for _variant, refs in index.matches(line):
                    window = window or self._window(lines, i)
                    context_lower = window.context.lower()
                    for ref in refs:
                        if not self._accept(ref, context_lower, orms):
                            continue
                        usage_type = classify_usage(line, window.context, orms)
                        key = (ref.column_id, file.id or 0, i + 1, usage_type, "")
                        trace.usages_inserted += self._record(
                            writer, dedupe, key, window, file
                        )

                # Strategy B: ORM field mappings
                for field_name, column_name in field_map.items():
                    if not field_patterns[field_name].search(line):
                        continue
                    window = window or self._window(lines, i)
                    for ref in index.columns_named(column_name):
                        usage_type = classify_usage(line, window.context, orms)
                        key = (ref.column_id, file.id or 0, i + 1, usage_type, "orm")
                        trace.usages_inserted += self._record(
                            writer, dedupe, key, window, file
                        )

            writer.update_where(SourceFile, {"parsed": True}, "id = :fid", {"fid": file.id})

        file.parsed = True
        log.debug(
            "trace_file_done",
            path=file.path,
            usages=trace.usages_inserted,
            orms=[o.orm for o in orms],
        )
        return trace

    @staticmethod
    def _accept(ref: ColumnRef, context_lower: str, orms: list[OrmDescriptor]) -> bool:
        if orms:
            return True
        if len(ref.column_name) >= SPECIFIC_COLUMN_NAME_LENGTH:
            return True
        return any(tv in context_lower for tv in ref.table_variants)

    def _window(self, lines: list[str], i: int) -> _Window:
        snip = self.config.snippet_lines
        ctx = self.config.context_lines
        snippet = "\n".join(lines[max(0, i - snip) : i + snip + 1])
        context = "\n".join(lines[max(0, i - ctx) : i + ctx + 1])
        return _Window(snippet=snippet, context=context)

    @staticmethod
    def _record(
        writer: BulkWriter,
        dedupe: set[tuple[int, int, int, str, str]],
        key: tuple[int, int, int, str, str],
        window: _Window,
        file: SourceFile,
    ) -> int:
        if key in dedupe:
            return 0
        dedupe.add(key)
        column_id, file_id, line_number, usage_type, _strategy = key
        inserted = writer.insert_ignore(
            ColumnUsage,
            {
                "column_id": column_id,
                "source_file_id": file_id,
                "line_number": line_number,
                "usage_type": usage_type,
                "code_snippet": window.snippet[:SNIPPET_MAX_CHARS],
                "context": window.context[:CONTEXT_MAX_CHARS],
            },
        )
        if inserted:
            log.debug(
                "usage_recorded",
                path=file.path,
                line=line_number,
                column_id=column_id,
                usage_type=usage_type,
            )
        return 1 if inserted else 0

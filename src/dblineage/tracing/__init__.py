"""Column usage tracing."""

from dblineage.tracing.classify import classify_generic, classify_usage
from dblineage.tracing.tracer import ColumnTracer, FileTrace, TraceResult
from dblineage.tracing.variants import ColumnRef, VariantIndex, column_variants

__all__ = [
    "ColumnTracer",
    "ColumnRef",
    "FileTrace",
    "TraceResult",
    "VariantIndex",
    "classify_generic",
    "classify_usage",
    "column_variants",
]

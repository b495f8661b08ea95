"""Schema extraction from SQL DDL and ORM model definitions."""

from dblineage.schema.orm_models import extract_orm_schema, has_model_definitions
from dblineage.schema.sql import extract_sql_schema
from dblineage.schema.store import StoreResult, load_columns, persist_tables
from dblineage.schema.types import ExtractedColumn, ExtractedTable

__all__ = [
    "extract_sql_schema",
    "extract_orm_schema",
    "has_model_definitions",
    "persist_tables",
    "load_columns",
    "StoreResult",
    "ExtractedColumn",
    "ExtractedTable",
]

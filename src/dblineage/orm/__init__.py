"""ORM descriptor registry."""

from dblineage.orm.registry import (
    ALL_ORMS,
    DEFINITION,
    FieldPattern,
    ModelPattern,
    OrmDescriptor,
    UsageRule,
    detect_orms,
    extract_field_mappings,
    extract_model_tables,
    get_orm,
)

__all__ = [
    "ALL_ORMS",
    "DEFINITION",
    "FieldPattern",
    "ModelPattern",
    "OrmDescriptor",
    "UsageRule",
    "detect_orms",
    "extract_field_mappings",
    "extract_model_tables",
    "get_orm",
]

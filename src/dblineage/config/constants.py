"""Configuration constants.

Values here are NOT user-configurable: storage limits, display limits and
cache-key grammar. For configurable values, see models.py.
"""

# =============================================================================
# Lineage display
# =============================================================================

MAX_DISPLAY_NAME_LENGTH = 40
"""Display names longer than this are truncated and suffixed with '...'."""

TYPE_INFO_COLORS = ("#b2f1ca", "#FFFFFF")
"""Alternating row colors for a table root's column list."""

# =============================================================================
# Usage storage
# =============================================================================

SNIPPET_MAX_CHARS = 500
"""Stored code snippet is cut to this many characters."""

CONTEXT_MAX_CHARS = 1000
"""Stored context window is cut to this many characters."""

MIN_VARIANT_LENGTH = 2
"""Name variants shorter than this are never indexed."""

MIN_MATCHABLE_VARIANT_LENGTH = 4
"""Variants of 3 characters or fewer are too ambiguous to match on their own."""

SPECIFIC_COLUMN_NAME_LENGTH = 5
"""Column names at least this long are accepted without table context."""

# =============================================================================
# Cache keys
# =============================================================================

LINEAGE_PREFIX = "lineage:"
TABLES_PREFIX = "tables:"
COLUMNS_PREFIX = "columns:"
SCHEMAS_PREFIX = "schemas:"
SOURCE_PREFIX = "source:"
CONFIG_PREFIX = "config:"

CONFIG_CACHE_KEY = f"{CONFIG_PREFIX}lineage"
CONFIG_CACHE_TTL_SEC = 300
ALL_COLUMNS_KEY = "ALL"

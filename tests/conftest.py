"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
provides temporary databases and caches.
"""

from __future__ import annotations

import sys
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local dblineage package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

if TYPE_CHECKING:
    from dblineage.cache.service import CacheService
    from dblineage.db.database import Database


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(ignore_cleanup_errors=True) as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_db(temp_dir: Path) -> Generator[Database, None, None]:
    """Create a temporary SQLite database with schema."""
    from dblineage.db.database import Database

    db = Database.from_path(temp_dir / "test.db")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def memory_cache() -> CacheService:
    """Fresh in-memory cache service."""
    from dblineage.cache.backends import MemoryCache
    from dblineage.cache.service import CacheService

    return CacheService(MemoryCache(max_entries=1000))

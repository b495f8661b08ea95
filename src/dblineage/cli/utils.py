"""CLI utilities."""

from pathlib import Path

import click

from dblineage.cache.service import CacheService, create_cache
from dblineage.config.loader import get_database_url, load_config
from dblineage.config.models import DbLineageConfig
from dblineage.core.errors import ConfigError
from dblineage.core.logging import configure_logging
from dblineage.db.database import Database


def load_cli_config(root: Path) -> DbLineageConfig:
    """Load config for ``root``, surfacing config errors as click errors.

    The configured logging outputs replace the group's default unless
    ``--verbose`` was given.
    """
    try:
        config = load_config(root)
    except ConfigError as e:
        raise click.ClickException(e.message) from e

    ctx = click.get_current_context(silent=True)
    if not (ctx and ctx.find_root().obj and ctx.find_root().obj.get("verbose")):
        configure_logging(config=config.logging)
    return config


def open_database(root: Path, config: DbLineageConfig, db_path: Path | None = None) -> Database:
    """Open (and create if needed) the lineage database.

    ``db_path`` wins over the configured URL, which wins over
    ``<root>/.dblineage/lineage.db``.
    """
    url = f"sqlite:///{db_path}" if db_path else get_database_url(config, root)
    db = Database(
        url,
        max_retries=config.database.max_retries,
        retry_base_delay=config.database.retry_base_delay_sec,
        busy_timeout_ms=config.database.busy_timeout_ms,
    )
    db.create_all()
    return db


def open_cache(config: DbLineageConfig) -> CacheService:
    return create_cache(config.cache)


db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="SQLite database file (default: .dblineage/lineage.db under the root)",
)

root_option = click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Directory holding .dblineage/ (config and default database)",
)

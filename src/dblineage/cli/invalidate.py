"""dblineage invalidate command - drop cached and stored lineage."""

from pathlib import Path

import click
from rich.console import Console

from dblineage.cli.utils import db_option, load_cli_config, open_cache, open_database, root_option
from dblineage.lineage.builder import LineageBuilder


@click.command()
@click.option("--project", "project_id", required=True, help="Project id")
@root_option
@db_option
def invalidate_command(project_id: str, root: Path, db_path: Path | None) -> None:
    """Drop cached entries and stored lineage results for a project."""
    root = root.resolve()
    config = load_cli_config(root)
    db = open_database(root, config, db_path)
    try:
        deleted = LineageBuilder(db, open_cache(config), config.lineage).invalidate_project(
            project_id
        )
    finally:
        db.dispose()
    Console(stderr=True).print(
        f"[green]✓[/green] Invalidated project [cyan]{project_id}[/cyan] "
        f"({deleted} stored results removed)"
    )

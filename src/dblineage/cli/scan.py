"""dblineage scan command - ingest a directory into a project."""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from dblineage.cli.utils import db_option, load_cli_config, open_cache, open_database
from dblineage.core.logging import clear_request_id, set_request_id
from dblineage.ingest import IngestResult, ingest_directory
from dblineage.lineage.builder import LineageBuilder


def _summary_table(result: IngestResult) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 1), pad_edge=False)
    table.add_row("Files", f"{result.files_seen} seen", f"{result.files_stored} new")
    table.add_row("", f"{result.files_changed} changed", f"{result.files_skipped} skipped")
    table.add_row(
        "Schema",
        f"{result.schema.tables_inserted} tables",
        f"{result.schema.columns_inserted} columns",
    )
    table.add_row(
        "Usages",
        f"{result.trace.usages_inserted} recorded",
        f"{result.trace.files_traced} files traced",
    )
    if result.trace.files_failed:
        table.add_row("Failed", str(result.trace.files_failed), "", style="red")
    return table


@click.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--project", "project_id", required=True, help="Project id to ingest into")
@db_option
@click.option("--force", is_flag=True, help="Retrace files already traced")
def scan_command(path: Path, project_id: str, db_path: Path | None, force: bool) -> None:
    """Ingest source files under PATH, extract schema and trace column usages."""
    root = path.resolve()
    config = load_cli_config(root)
    db = open_database(root, config, db_path)
    console = Console(stderr=True)

    set_request_id()
    try:
        result = ingest_directory(db, root, project_id, config.tracer, force=force)
        # Stored lineage no longer reflects the project
        LineageBuilder(db, open_cache(config), config.lineage).invalidate_project(project_id)
    finally:
        clear_request_id()
        db.dispose()

    console.print(f"\n[bold]Scanned[/bold] {root} into project [cyan]{project_id}[/cyan]\n")
    console.print(_summary_table(result))
    for file_path, error in result.trace.errors.items():
        console.print(f"  [red]✗[/red] {file_path}: {error}")

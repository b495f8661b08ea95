"""dblineage lineage, tables and source commands."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from dblineage.cli.utils import db_option, load_cli_config, open_cache, open_database, root_option
from dblineage.core.errors import LineageError
from dblineage.core.logging import clear_request_id, set_request_id
from dblineage.lineage.builder import LineageBuilder, LineageResponse
from dblineage.lineage.tree import ROOT, LineageNode, LineageTree


def _label(node: LineageNode) -> Text:
    label = Text(node.display_name, style=f"bold {node.color}".strip())
    label.append(f"  {node.node_type}", style="dim")
    if node.description:
        label.append(f"  {node.description}", style="italic")
    if node.is_cycle:
        label.append("  (cycle)", style="yellow")
    return label


def render_tree(tree: LineageTree) -> Tree:
    """Rich tree for a lineage tree, built without recursion."""
    rendered = {ROOT: Tree(_label(tree.root))}
    for index, _depth in tree.walk():
        for child in tree.children.get(index, []):
            rendered[child] = rendered[index].add(_label(tree.nodes[child]))
    return rendered[ROOT]


def _print_response(console: Console, response: LineageResponse) -> None:
    tree = LineageTree.from_dict(response.tree)
    console.print(render_tree(tree))
    if tree.root.type_information:
        columns = Table(title="Columns", show_lines=False)
        columns.add_column("Name")
        columns.add_column("Type", style="dim")
        for info in tree.root.type_information:
            columns.add_row(info.display_name, info.data_type or "")
        console.print(columns)
    origin = "cached" if response.from_cache else "generated"
    console.print(f"[dim]{origin} {response.generated_at or ''}[/dim]")


@click.command()
@click.argument("table")
@click.option(
    "--project", "project_ids", required=True, multiple=True, help="Project id (repeatable)"
)
@click.option("--column", default=None, help="Scope lineage to one column")
@click.option("--regenerate", is_flag=True, help="Ignore cached and stored lineage")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@root_option
@db_option
def lineage_command(
    table: str,
    project_ids: tuple[str, ...],
    column: str | None,
    regenerate: bool,
    as_json: bool,
    root: Path,
    db_path: Path | None,
) -> None:
    """Build and print the lineage tree of TABLE."""
    root = root.resolve()
    config = load_cli_config(root)
    db = open_database(root, config, db_path)
    builder = LineageBuilder(db, open_cache(config), config.lineage)

    set_request_id()
    try:
        if not builder.table_exists(list(project_ids), table):
            raise click.ClickException(
                LineageError.table_not_found(table, list(project_ids)).message
            )
        response = builder.build_lineage(list(project_ids), table, column, regenerate)
    except LineageError as e:
        raise click.ClickException(e.message) from e
    finally:
        clear_request_id()
        db.dispose()

    if as_json:
        click.echo(json.dumps(response.to_dict(), indent=2))
    else:
        _print_response(Console(), response)


@click.command()
@click.option(
    "--project", "project_ids", required=True, multiple=True, help="Project id (repeatable)"
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@root_option
@db_option
def tables_command(
    project_ids: tuple[str, ...], as_json: bool, root: Path, db_path: Path | None
) -> None:
    """List the tables known for the given projects."""
    root = root.resolve()
    config = load_cli_config(root)
    db = open_database(root, config, db_path)
    try:
        tables = LineageBuilder(db, open_cache(config), config.lineage).get_tables(
            list(project_ids)
        )
    finally:
        db.dispose()

    if as_json:
        click.echo(json.dumps(tables, indent=2))
        return
    listing = Table(show_header=True, box=None, padding=(0, 1), pad_edge=False)
    listing.add_column("Table", style="cyan")
    listing.add_column("Columns")
    for entry in tables:
        listing.add_row(entry["table_name"], ", ".join(c["name"] for c in entry["columns"]))
    Console().print(listing)


@click.command()
@click.argument("component_id")
@root_option
@db_option
def source_command(component_id: str, root: Path, db_path: Path | None) -> None:
    """Print the stored source of a lineage node's component."""
    root = root.resolve()
    config = load_cli_config(root)
    db = open_database(root, config, db_path)
    try:
        source = LineageBuilder(db, open_cache(config), config.lineage).get_component_source(
            component_id
        )
    finally:
        db.dispose()

    if source is None:
        raise click.ClickException(f"No stored source for component {component_id}")
    Console().print(
        Syntax(
            source["source_code"],
            "text",
            line_numbers=True,
            start_line=source["start_line"] or 1,
        )
    )

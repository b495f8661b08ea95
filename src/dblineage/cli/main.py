"""dblineage CLI - database column lineage."""

import click

from dblineage import __version__
from dblineage.cli.invalidate import invalidate_command
from dblineage.cli.lineage import lineage_command, source_command, tables_command
from dblineage.cli.scan import scan_command
from dblineage.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="dblineage")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """dblineage - trace database column usage across a codebase."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(scan_command, name="scan")
cli.add_command(lineage_command, name="lineage")
cli.add_command(tables_command, name="tables")
cli.add_command(source_command, name="source")
cli.add_command(invalidate_command, name="invalidate")


if __name__ == "__main__":
    cli()

"""simcheck CLI - simcheck command."""

import click

from simcheck import __version__
from simcheck.cli.index import index_command
from simcheck.cli.review import review_command
from simcheck.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="simcheck")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """simcheck - Call-contract review for pull requests."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(index_command, name="index")
cli.add_command(review_command, name="review")


if __name__ == "__main__":
    cli()

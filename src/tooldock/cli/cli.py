import logging

import click

from tooldock import __version__
from tooldock.cli.commands.install import install_cmd
from tooldock.cli.commands.list_cmd import list_cmd
from tooldock.cli.commands.paths import paths_cmd
from tooldock.cli.commands.use import use_cmd
from tooldock.cli.context import create_context
from tooldock.cli.error_boundary import cli_error_boundary

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Log every pipeline step to stderr.")
@click.pass_context
@cli_error_boundary
def cli(ctx: click.Context, debug: bool) -> None:
    """Install developer tools and expose them through one shims directory."""
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="[DEBUG %(name)s:%(lineno)d] %(message)s")
    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        ctx.obj = create_context(debug=debug)


cli.add_command(install_cmd)
cli.add_command(list_cmd)
cli.add_command(paths_cmd)
cli.add_command(use_cmd)


def main() -> None:
    """CLI entry point used by the `tooldock` console script."""
    cli()

import click

from tooldock.cli.context import ToolDockContext
from tooldock.cli.output import machine_output


@click.command("paths")
@click.pass_obj
def paths_cmd(ctx: ToolDockContext) -> None:
    """Print the root, installs and shims directories.

    Add the shims directory to PATH to use installed tools.
    """
    layout = ctx.layout
    machine_output(f"root: {layout.root}")
    machine_output(f"installs: {layout.installs_dir}")
    machine_output(f"shims: {layout.shims_dir}")

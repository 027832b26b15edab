import click

from tooldock.cli.context import ToolDockContext
from tooldock.cli.error_boundary import cli_error_boundary
from tooldock.cli.output import user_output
from tooldock.core.models import PackageKey
from tooldock.core.pipeline import activate_installed
from tooldock.core.shims import ShimManager


@click.command("use")
@click.argument("name")
@click.argument("version")
@click.option(
    "--bin",
    "binaries",
    multiple=True,
    required=True,
    help="Executable inside the package, relative to its root (repeatable).",
)
@click.pass_obj
@cli_error_boundary
def use_cmd(ctx: ToolDockContext, name: str, version: str, binaries: tuple[str, ...]) -> None:
    """Point shims at an already installed VERSION of NAME."""
    key = PackageKey.for_platform(name, version, ctx.platform)
    written = activate_installed(
        ctx.layout,
        ShimManager(ctx.layout.shims_dir),
        ctx.active_versions,
        key,
        binaries,
    )
    user_output(f"Now using {key} ({len(written)} shim artifact(s))")

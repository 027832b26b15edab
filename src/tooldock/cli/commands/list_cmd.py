"""List installed packages for the current platform."""

import click

from tooldock.cli.context import ToolDockContext
from tooldock.cli.error_boundary import cli_error_boundary
from tooldock.cli.output import machine_output, user_output
from tooldock.core.layout import InstallLayout


def installed_versions(layout: InstallLayout, platform_tag: str) -> dict[str, list[str]]:
    """Map package name to the versions installed for ``platform_tag``.

    Hidden staging and retired directories are skipped.
    """
    installed: dict[str, list[str]] = {}
    if not layout.installs_dir.is_dir():
        return installed

    for package_dir in sorted(layout.installs_dir.iterdir()):
        if not package_dir.is_dir() or package_dir.name.startswith("."):
            continue
        versions = [
            version_dir.name
            for version_dir in sorted(package_dir.iterdir())
            if not version_dir.name.startswith(".") and (version_dir / platform_tag).is_dir()
        ]
        if versions:
            installed[package_dir.name] = versions
    return installed


@click.command("list")
@click.argument("name", required=False)
@click.pass_obj
@cli_error_boundary
def list_cmd(ctx: ToolDockContext, name: str | None) -> None:
    """List installed packages, or the versions of NAME.

    The active version is marked with ``*``.
    """
    installed = installed_versions(ctx.layout, ctx.platform.tag)
    active = ctx.active_versions.list_active()

    if name is not None:
        if name not in installed:
            raise FileNotFoundError(f"{name} has no installs for {ctx.platform.tag}")
        installed = {name: installed[name]}

    if not installed:
        user_output("No packages installed.")
        return

    for package, versions in installed.items():
        machine_output(package)
        for version in versions:
            marker = "*" if active.get(package) == version else " "
            machine_output(f"  {marker} {version}")

"""Download, verify and install one package, then publish its shims."""

import click

from tooldock.cli.context import ToolDockContext
from tooldock.cli.error_boundary import cli_error_boundary
from tooldock.cli.output import DownloadProgress, user_output
from tooldock.core.digest import Digest
from tooldock.core.extractor import ArchiveExtractor
from tooldock.core.fetcher import Fetcher
from tooldock.core.installer import Installer
from tooldock.core.models import ArchiveKind, AssetDescriptor, PackageKey
from tooldock.core.pipeline import InstallComponents, install_package
from tooldock.core.shims import ShimManager


@click.command("install")
@click.argument("name")
@click.argument("version")
@click.option("--url", required=True, help="Archive URL for the current platform.")
@click.option(
    "--kind",
    type=click.Choice([kind.value for kind in ArchiveKind]),
    default=ArchiveKind.TAR.value,
    show_default=True,
    help="Archive format.",
)
@click.option("--checksum", required=True, help="Expected digest, e.g. sha256:<64 hex>.")
@click.option(
    "--bin",
    "binaries",
    multiple=True,
    required=True,
    help="Executable inside the package, relative to its root (repeatable).",
)
@click.option("--no-progress", is_flag=True, help="Do not render a progress bar.")
@click.pass_obj
@cli_error_boundary
def install_cmd(
    ctx: ToolDockContext,
    name: str,
    version: str,
    url: str,
    kind: str,
    checksum: str,
    binaries: tuple[str, ...],
    no_progress: bool,
) -> None:
    """Install NAME at VERSION from an archive URL."""
    asset = AssetDescriptor(
        archive_kind=ArchiveKind.parse(kind),
        source_url=url,
        expected_checksum=Digest.parse(checksum),
    )
    key = PackageKey.for_platform(name, version, ctx.platform)
    layout = ctx.layout

    with ctx.http_client_factory() as client:
        components = InstallComponents(
            fetcher=Fetcher(client, ctx.time),
            extractor=ArchiveExtractor(temp_parent=layout.temp_dir),
            installer=Installer(layout),
            shims=ShimManager(layout.shims_dir),
            active_versions=ctx.active_versions,
        )
        with DownloadProgress(f"{name} {version}", enabled=not no_progress) as progress:
            result = install_package(
                components,
                key,
                asset,
                binaries,
                progress=progress.advance,
                on_stage=progress.stage,
            )

    user_output(f"Installed {result.key} to {result.install_path}")
    for shim in result.shims:
        user_output(f"  shim: {shim}")

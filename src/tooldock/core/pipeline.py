"""Full install of one package: fetch, extract, locate root, install, publish shims."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from tooldock.core.active_versions import ActiveVersionStore
from tooldock.core.cancellation import CancellationToken
from tooldock.core.extractor import ArchiveExtractor, EntryCallback
from tooldock.core.fetcher import Fetcher, ProgressSink
from tooldock.core.installer import Installer
from tooldock.core.layout import InstallLayout
from tooldock.core.models import AssetDescriptor, InstallResult, PackageKey
from tooldock.core.root_detection import detect_package_root
from tooldock.core.shims import ShimManager

logger = logging.getLogger(__name__)

StageCallback = Callable[[str], None]


@dataclass(frozen=True)
class InstallComponents:
    """The collaborators one pipeline run is wired from."""

    fetcher: Fetcher
    extractor: ArchiveExtractor
    installer: Installer
    shims: ShimManager
    active_versions: ActiveVersionStore


def install_package(
    components: InstallComponents,
    key: PackageKey,
    asset: AssetDescriptor,
    binaries: Sequence[str],
    *,
    cancellation: CancellationToken | None = None,
    progress: ProgressSink | None = None,
    on_entry: EntryCallback | None = None,
    on_stage: StageCallback | None = None,
) -> InstallResult:
    """Run every stage strictly in sequence for one package.

    The extracted temporary tree is always removed before returning, whether
    the install succeeded or not. The version is recorded as active only
    after its shims have been published.

    Args:
        components: Fetcher, extractor, installer, shim manager and active store
        key: Package name, version and platform tag
        asset: Where to download from and what the bytes must hash to
        binaries: Relative paths of the executables the package declares
        cancellation: Shared by every stage; a fresh token is used if None
        progress: Receives download chunks
        on_entry: Receives the name of every extracted entry
        on_stage: Receives the name of each stage as it starts

    Returns:
        InstallResult with the install path and every shim artifact written
    """
    token = cancellation if cancellation is not None else CancellationToken()

    def enter(stage: str) -> None:
        logger.debug("%s: %s", key, stage)
        if on_stage is not None:
            on_stage(stage)

    enter("download")
    content = components.fetcher.fetch(
        asset.source_url, asset.expected_checksum, token, progress=progress
    )

    enter("extract")
    with components.extractor.extract(
        content,
        asset.archive_kind,
        asset.expected_checksum,
        cancellation=token,
        on_entry=on_entry,
    ) as tree:
        package_root = detect_package_root(tree.path)
        enter("install")
        install_path = components.installer.install(binaries, key, package_root, token)

    enter("shims")
    shims = components.shims.sync_all(binaries, install_path)
    components.active_versions.set_active(key.name, key.version)

    logger.debug("Installed %s with %d shim artifact(s)", key, len(shims))
    return InstallResult(key=key, install_path=install_path, shims=shims)


def activate_installed(
    layout: InstallLayout,
    shims: ShimManager,
    active_versions: ActiveVersionStore,
    key: PackageKey,
    binaries: Sequence[str],
) -> list[Path]:
    """Point shims at an install that already exists and mark it active.

    Raises:
        FileNotFoundError: If ``key`` has no install record
    """
    install_path = layout.install_path(key)
    if not install_path.is_dir():
        raise FileNotFoundError(f"{key} is not installed (expected {install_path})")

    written = shims.sync_all(binaries, install_path)
    active_versions.set_active(key.name, key.version)
    logger.debug("Activated %s", key)
    return written

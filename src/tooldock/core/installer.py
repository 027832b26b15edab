"""Move an extracted package root into its deterministic install location.

Installation is staged: the package root's entries are relocated into a
hidden sibling of the final directory, executables are fixed up there, and
only then is the staging directory swapped into place. A failed install or
re-install therefore never leaves a partially populated install directory,
and a previous install of the same key stays intact until the swap.
"""

import logging
import os
import shutil
import tempfile
import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path, PurePosixPath

from tooldock.core.cancellation import CancellationToken
from tooldock.core.errors import MissingBinaryError, RelocationError
from tooldock.core.layout import InstallLayout
from tooldock.core.models import PackageKey
from tooldock.core.platform import OsFamily

logger = logging.getLogger(__name__)

INSTALL_DIR_MODE = 0o755
EXECUTABLE_BITS = 0o111


class RelocationStrategy(ABC):
    """One way of moving a file or directory tree to a new location."""

    name: str

    @abstractmethod
    def relocate(self, source: Path, destination: Path) -> None:
        """Move ``source`` to ``destination``.

        Raises:
            OSError: If this strategy cannot perform the move. The strategy
                must not leave a partial ``destination`` behind.
        """
        ...


class RenameRelocation(RelocationStrategy):
    """Atomic rename; fails across storage volumes."""

    name = "rename"

    def relocate(self, source: Path, destination: Path) -> None:
        os.rename(source, destination)


class CopyRelocation(RelocationStrategy):
    """Recursive copy preserving modes, symlinks and structure, then delete."""

    name = "copy"

    def relocate(self, source: Path, destination: Path) -> None:
        try:
            if source.is_dir() and not source.is_symlink():
                shutil.copytree(source, destination, symlinks=True)
            else:
                shutil.copy2(source, destination, follow_symlinks=False)
        except OSError:
            _remove_path(destination)
            raise
        _remove_path(source)


DEFAULT_RELOCATION_STRATEGIES: tuple[RelocationStrategy, ...] = (
    RenameRelocation(),
    CopyRelocation(),
)


def relocate_entry(
    source: Path,
    destination: Path,
    strategies: Sequence[RelocationStrategy],
) -> str:
    """Try each strategy in order until one succeeds.

    Returns:
        Name of the strategy that moved the entry

    Raises:
        RelocationError: If every strategy failed
    """
    failures: list[tuple[str, OSError]] = []
    for strategy in strategies:
        try:
            strategy.relocate(source, destination)
        except OSError as e:
            logger.debug("Relocation of %s via %s failed: %s", source, strategy.name, e)
            failures.append((strategy.name, e))
            continue
        return strategy.name
    raise RelocationError(source, destination, failures)


class Installer:
    """Creates install records under an InstallLayout."""

    def __init__(
        self,
        layout: InstallLayout,
        *,
        relocation_strategies: Sequence[RelocationStrategy] = DEFAULT_RELOCATION_STRATEGIES,
        os_family: OsFamily | None = None,
    ) -> None:
        self._layout = layout
        self._strategies = tuple(relocation_strategies)
        self._os_family = os_family if os_family is not None else OsFamily.current()

    def install(
        self,
        required_binaries: Sequence[str],
        key: PackageKey,
        package_root: Path,
        cancellation: CancellationToken | None = None,
    ) -> Path:
        """Install the contents of ``package_root`` for ``key``.

        Args:
            required_binaries: Relative paths (e.g. ``bin/node``) that must exist
            key: Package name, version and platform tag
            package_root: Detected root of the extracted archive; its entries
                are moved out of it
            cancellation: Checked between relocations

        Returns:
            The install path, to be passed verbatim to the shim manager

        Raises:
            MissingBinaryError: Before any change to the install tree
            RelocationError: If content could not be moved into place
            OperationCancelledError: If cancellation fires mid-install
        """
        for binary in required_binaries:
            if not _binary_exists(package_root, binary):
                raise MissingBinaryError(binary, package_root)

        install_path = self._layout.install_path(key)
        install_path.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(
            tempfile.mkdtemp(prefix=f".{install_path.name}.staging-", dir=install_path.parent)
        )
        logger.debug("Installing %s via staging directory %s", key, staging)

        try:
            staging.chmod(INSTALL_DIR_MODE)
            for entry in sorted(package_root.iterdir()):
                if cancellation is not None:
                    cancellation.raise_if_cancelled("installation")
                strategy = relocate_entry(entry, staging / entry.name, self._strategies)
                logger.debug("Moved %s using %s", entry.name, strategy)

            if self._os_family.has_executable_bit:
                for binary in required_binaries:
                    ensure_executable(staging / binary)

            _swap_into_place(staging, install_path)
        except BaseException:
            _remove_path(staging)
            raise

        logger.debug("Installed %s to %s", key, install_path)
        return install_path


def ensure_executable(path: Path) -> None:
    """Add the executable bits when none are set."""
    mode = path.stat().st_mode
    if mode & EXECUTABLE_BITS == 0:
        path.chmod(mode | EXECUTABLE_BITS)
        logger.debug("Marked %s executable", path)


def _binary_exists(package_root: Path, binary: str) -> bool:
    relative = PurePosixPath(binary.replace("\\", "/"))
    if relative.is_absolute() or ".." in relative.parts:
        return False
    return (package_root / relative).exists()


def _swap_into_place(staging: Path, install_path: Path) -> None:
    """Replace ``install_path`` with ``staging``, keeping any prior install
    until the new one has landed."""
    if not install_path.exists() and not install_path.is_symlink():
        try:
            os.rename(staging, install_path)
        except OSError as e:
            raise RelocationError(staging, install_path, [("swap", e)]) from e
        return

    retired = install_path.with_name(f".{install_path.name}.old-{uuid.uuid4().hex[:8]}")
    try:
        os.rename(install_path, retired)
    except OSError as e:
        raise RelocationError(install_path, retired, [("retire", e)]) from e

    try:
        os.rename(staging, install_path)
    except OSError as e:
        failures: list[tuple[str, OSError]] = [("swap", e)]
        try:
            os.rename(retired, install_path)
        except OSError as restore_error:
            logger.warning("Could not restore previous install; it remains at %s", retired)
            failures.append((f"restore from {retired}", restore_error))
        raise RelocationError(staging, install_path, failures) from e

    _remove_path(retired)
    logger.debug("Replaced previous install at %s", install_path)


def _remove_path(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)

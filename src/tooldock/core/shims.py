"""Launchers in the shared shims directory.

The shims directory is added to PATH once; each binary a package declares
gets a launcher there that forwards arguments and exit status to the active
install. Publishing is last-writer-wins per binary name and keeps no history.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path, PurePosixPath

from tooldock.core.errors import ShimTargetMissingError, ShimWriteError
from tooldock.core.platform import OsFamily

logger = logging.getLogger(__name__)

SCRIPT_MODE = 0o755
WINDOWS_SCRIPT_SUFFIXES = (".cmd", ".ps1")


class LauncherStrategy(ABC):
    """Produces something executable that forwards to ``target_path``."""

    name: str

    @abstractmethod
    def publish(self, shims_dir: Path, binary_name: str, target_path: Path) -> list[Path]:
        """Create or overwrite the launcher(s) for ``binary_name``.

        Returns:
            Paths of the launcher artifacts written

        Raises:
            OSError: If this strategy is not available here
        """
        ...

    @abstractmethod
    def artifact_paths(self, shims_dir: Path, binary_name: str) -> list[Path]:
        """Paths this strategy would write for ``binary_name``."""
        ...


class SymlinkLauncher(LauncherStrategy):
    name = "symlink"

    def publish(self, shims_dir: Path, binary_name: str, target_path: Path) -> list[Path]:
        shim_path = shims_dir / binary_name
        _remove_launcher(shim_path)
        os.symlink(target_path, shim_path)
        return [shim_path]

    def artifact_paths(self, shims_dir: Path, binary_name: str) -> list[Path]:
        return [shims_dir / binary_name]


class PosixScriptLauncher(LauncherStrategy):
    """``#!/bin/sh`` wrapper that execs the target."""

    name = "sh-script"

    def publish(self, shims_dir: Path, binary_name: str, target_path: Path) -> list[Path]:
        shim_path = shims_dir / binary_name
        script = f'#!/bin/sh\nexec "{_escape_sh(str(target_path))}" "$@"\n'
        _write_atomically(shim_path, script, SCRIPT_MODE)
        return [shim_path]

    def artifact_paths(self, shims_dir: Path, binary_name: str) -> list[Path]:
        return [shims_dir / binary_name]


class WindowsScriptLauncher(LauncherStrategy):
    """Paired ``.cmd`` and ``.ps1`` wrappers for cmd.exe and PowerShell."""

    name = "windows-scripts"

    def publish(self, shims_dir: Path, binary_name: str, target_path: Path) -> list[Path]:
        cmd_path, ps1_path = self.artifact_paths(shims_dir, binary_name)
        target = str(target_path)
        ps1_target = target.replace("`", "``").replace('"', '`"')
        _write_atomically(
            cmd_path,
            f'@echo off\r\n"{target}" %*\r\nexit /b %ERRORLEVEL%\r\n',
            SCRIPT_MODE,
        )
        _write_atomically(
            ps1_path,
            f'& "{ps1_target}" @args\r\nexit $LASTEXITCODE\r\n',
            SCRIPT_MODE,
        )
        return [cmd_path, ps1_path]

    def artifact_paths(self, shims_dir: Path, binary_name: str) -> list[Path]:
        return [shims_dir / f"{binary_name}{suffix}" for suffix in WINDOWS_SCRIPT_SUFFIXES]


def default_launchers(os_family: OsFamily) -> tuple[LauncherStrategy, ...]:
    if os_family is OsFamily.WINDOWS:
        return (WindowsScriptLauncher(),)
    return (SymlinkLauncher(), PosixScriptLauncher())


class ShimManager:
    """Publishes launchers for installed binaries into one flat directory."""

    def __init__(
        self,
        shims_dir: Path,
        *,
        os_family: OsFamily | None = None,
        launchers: Sequence[LauncherStrategy] | None = None,
    ) -> None:
        self._shims_dir = shims_dir
        self._os_family = os_family if os_family is not None else OsFamily.current()
        self._launchers = (
            tuple(launchers) if launchers is not None else default_launchers(self._os_family)
        )

    @property
    def shims_dir(self) -> Path:
        return self._shims_dir

    def publish(self, binary_name: str, target_path: Path) -> list[Path]:
        """Create or overwrite the launcher for ``binary_name``.

        Raises:
            ShimTargetMissingError: If ``target_path`` does not exist
            ShimWriteError: If no launcher strategy succeeded
        """
        if not target_path.exists():
            raise ShimTargetMissingError(binary_name, target_path)

        try:
            self._shims_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ShimWriteError(binary_name, [("mkdir", e)]) from e

        failures: list[tuple[str, OSError]] = []
        for launcher in self._launchers:
            try:
                written = launcher.publish(self._shims_dir, binary_name, target_path)
            except OSError as e:
                logger.debug("Launcher %s failed for %s: %s", launcher.name, binary_name, e)
                failures.append((launcher.name, e))
                continue
            logger.debug("Published %s -> %s via %s", binary_name, target_path, launcher.name)
            return written
        raise ShimWriteError(binary_name, failures)

    def sync_all(self, package_binaries: Sequence[str], install_path: Path) -> list[Path]:
        """Point the launcher of every declared binary at ``install_path``.

        Args:
            package_binaries: Relative binary paths such as ``bin/node``
            install_path: Install record returned by the installer

        Returns:
            All launcher artifacts written
        """
        written: list[Path] = []
        for binary in package_binaries:
            relative = PurePosixPath(binary.replace("\\", "/"))
            target_path = self._resolve_target(install_path / relative)
            written.extend(self.publish(relative.name, target_path))
        return written

    def remove(self, binary_names: Sequence[str]) -> None:
        """Delete the launcher artifacts for each name, if present."""
        for binary_name in binary_names:
            for launcher in self._launchers:
                for path in launcher.artifact_paths(self._shims_dir, binary_name):
                    _remove_launcher(path)
            logger.debug("Removed shim %s", binary_name)

    def _resolve_target(self, target_path: Path) -> Path:
        if self._os_family is OsFamily.WINDOWS and not target_path.suffix:
            exe_path = target_path.with_name(f"{target_path.name}.exe")
            if exe_path.exists():
                return exe_path
        return target_path


def _escape_sh(value: str) -> str:
    for char in ("\\", '"', "$", "`"):
        value = value.replace(char, f"\\{char}")
    return value


def _remove_launcher(path: Path) -> None:
    if path.is_symlink() or path.exists():
        path.unlink()


def _write_atomically(path: Path, content: str, mode: int) -> None:
    """Write via a temp file and rename, replacing any existing launcher
    (including a symlink) instead of writing through it."""
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        temp_path.chmod(mode)
        os.replace(temp_path, path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise

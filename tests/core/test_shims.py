"""Tests for launcher publishing in the shims directory."""

import os
from pathlib import Path

import pytest

from tooldock.core.errors import ShimTargetMissingError, ShimWriteError
from tooldock.core.platform import OsFamily
from tooldock.core.shims import (
    LauncherStrategy,
    PosixScriptLauncher,
    ShimManager,
    SymlinkLauncher,
    WindowsScriptLauncher,
)


class UnavailableLauncher(LauncherStrategy):
    """Fails like a symlink on a filesystem without symlink support."""

    name = "unavailable"

    def publish(self, shims_dir: Path, binary_name: str, target_path: Path) -> list[Path]:
        raise OSError(1, "Operation not permitted")

    def artifact_paths(self, shims_dir: Path, binary_name: str) -> list[Path]:
        return [shims_dir / binary_name]


def _install(tmp_path: Path, version: str, *binaries: str) -> Path:
    install_path = tmp_path / "installs" / "tool" / version / "linux-amd64"
    for binary in binaries:
        target = install_path / binary
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(f"#!/bin/sh\necho {version}\n")
        target.chmod(0o755)
    return install_path


def test_symlink_points_at_install(tmp_path: Path) -> None:
    install_path = _install(tmp_path, "1.0.0", "bin/tool")
    manager = ShimManager(tmp_path / "shims", os_family=OsFamily.POSIX)

    written = manager.sync_all(["bin/tool"], install_path)

    shim = tmp_path / "shims" / "tool"
    assert written == [shim]
    assert shim.is_symlink()
    assert Path(os.readlink(shim)) == install_path / "bin" / "tool"


def test_script_fallback_when_symlinks_unavailable(tmp_path: Path) -> None:
    """Test that a failing first strategy falls through to the sh wrapper."""
    install_path = _install(tmp_path, "1.0.0", "bin/tool")
    manager = ShimManager(
        tmp_path / "shims",
        os_family=OsFamily.POSIX,
        launchers=[UnavailableLauncher(), PosixScriptLauncher()],
    )

    manager.sync_all(["bin/tool"], install_path)

    shim = tmp_path / "shims" / "tool"
    assert not shim.is_symlink()
    script = shim.read_text()
    assert script.startswith("#!/bin/sh\n")
    assert f'exec "{install_path / "bin" / "tool"}" "$@"' in script
    assert os.access(shim, os.X_OK)


def test_script_escapes_shell_metacharacters(tmp_path: Path) -> None:
    target = tmp_path / 'we$ird "dir"' / "tool"
    target.parent.mkdir()
    target.write_text("x")

    PosixScriptLauncher().publish(tmp_path, "tool", target)

    assert '\\$ird \\"dir\\"' in (tmp_path / "tool").read_text()


def test_windows_writes_cmd_and_ps1_pair(tmp_path: Path) -> None:
    install_path = _install(tmp_path, "1.0.0", "bin/tool.exe")
    manager = ShimManager(tmp_path / "shims", os_family=OsFamily.WINDOWS)

    written = manager.sync_all(["bin/tool"], install_path)

    cmd_path = tmp_path / "shims" / "tool.cmd"
    ps1_path = tmp_path / "shims" / "tool.ps1"
    assert written == [cmd_path, ps1_path]
    target = str(install_path / "bin" / "tool.exe")
    assert f'"{target}" %*' in cmd_path.read_text()
    assert f'& "{target}" @args' in ps1_path.read_text()


def test_missing_target_is_rejected(tmp_path: Path) -> None:
    manager = ShimManager(tmp_path / "shims", os_family=OsFamily.POSIX)

    with pytest.raises(ShimTargetMissingError) as exc_info:
        manager.publish("tool", tmp_path / "nope" / "tool")

    assert exc_info.value.binary_name == "tool"
    assert not (tmp_path / "shims" / "tool").exists()


def test_all_launchers_failing_raises_write_error(tmp_path: Path) -> None:
    install_path = _install(tmp_path, "1.0.0", "bin/tool")
    manager = ShimManager(tmp_path / "shims", launchers=[UnavailableLauncher()])

    with pytest.raises(ShimWriteError) as exc_info:
        manager.publish("tool", install_path / "bin" / "tool")

    assert [name for name, _ in exc_info.value.failures] == ["unavailable"]


def test_republish_is_last_writer_wins(tmp_path: Path) -> None:
    """Test that publishing a second version overwrites the first shim in place."""
    old = _install(tmp_path, "1.0.0", "bin/tool")
    new = _install(tmp_path, "2.0.0", "bin/tool")
    manager = ShimManager(tmp_path / "shims", os_family=OsFamily.POSIX)

    manager.sync_all(["bin/tool"], old)
    manager.sync_all(["bin/tool"], new)

    shim = tmp_path / "shims" / "tool"
    assert Path(os.readlink(shim)) == new / "bin" / "tool"
    assert sorted(p.name for p in (tmp_path / "shims").iterdir()) == ["tool"]


def test_script_replaces_existing_symlink_without_following_it(tmp_path: Path) -> None:
    install_path = _install(tmp_path, "1.0.0", "bin/tool")
    target = install_path / "bin" / "tool"
    shims_dir = tmp_path / "shims"
    shims_dir.mkdir()
    SymlinkLauncher().publish(shims_dir, "tool", target)

    PosixScriptLauncher().publish(shims_dir, "tool", target)

    assert not (shims_dir / "tool").is_symlink()
    assert target.read_text() == "#!/bin/sh\necho 1.0.0\n"


def test_remove_deletes_windows_pair(tmp_path: Path) -> None:
    shims_dir = tmp_path / "shims"
    shims_dir.mkdir()
    target = tmp_path / "tool.exe"
    target.write_text("x")
    WindowsScriptLauncher().publish(shims_dir, "tool", target)
    manager = ShimManager(shims_dir, os_family=OsFamily.WINDOWS)

    manager.remove(["tool", "never-published"])

    assert list(shims_dir.iterdir()) == []


def test_sync_all_uses_basename_for_nested_binaries(tmp_path: Path) -> None:
    install_path = _install(tmp_path, "1.0.0", "libexec/tools/fmt")
    manager = ShimManager(tmp_path / "shims", os_family=OsFamily.POSIX)

    manager.sync_all(["libexec/tools/fmt"], install_path)

    assert (tmp_path / "shims" / "fmt").is_symlink()

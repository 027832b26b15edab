from pathlib import Path

from tooldock.core.root_detection import detect_package_root


def _make_dir(path: Path) -> Path:
    path.mkdir(parents=True)
    return path


def test_single_directory_is_root(tmp_path: Path) -> None:
    """Test that a lone wrapping directory like pkg-1.0.0/ is collapsed."""
    wrapped = _make_dir(tmp_path / "pkg-1.0.0")
    (wrapped / "bin").mkdir()

    assert detect_package_root(tmp_path) == wrapped


def test_no_directories_returns_extract_dir(tmp_path: Path) -> None:
    (tmp_path / "tool").write_text("x")

    assert detect_package_root(tmp_path) == tmp_path


def test_empty_tree_returns_extract_dir(tmp_path: Path) -> None:
    assert detect_package_root(tmp_path) == tmp_path


def test_two_directories_return_extract_dir(tmp_path: Path) -> None:
    _make_dir(tmp_path / "bin")
    _make_dir(tmp_path / "lib")

    assert detect_package_root(tmp_path) == tmp_path


def test_directory_with_loose_files_returns_extract_dir(tmp_path: Path) -> None:
    """Test that top-level files next to one directory keep the extract dir as root."""
    _make_dir(tmp_path / "bin")
    (tmp_path / "LICENSE").write_text("MIT")

    assert detect_package_root(tmp_path) == tmp_path


def test_hidden_entries_are_ignored(tmp_path: Path) -> None:
    wrapped = _make_dir(tmp_path / "pkg")
    _make_dir(tmp_path / ".git")
    (tmp_path / ".DS_Store").write_text("")

    assert detect_package_root(tmp_path) == wrapped


def test_symlinked_directory_is_not_a_root(tmp_path: Path) -> None:
    target = _make_dir(tmp_path / ".real")
    (tmp_path / "pkg").symlink_to(target, target_is_directory=True)

    assert detect_package_root(tmp_path) == tmp_path

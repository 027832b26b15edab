from pathlib import Path

import pytest

from tooldock.core.global_config import FilesystemConfigStore, GlobalConfig, InMemoryConfigStore


def test_defaults_when_no_config_file(tmp_path: Path) -> None:
    store = FilesystemConfigStore(environ={}, home=tmp_path)

    config = store.load()

    assert config.root == tmp_path / ".tooldock"
    assert config.shims_dir == tmp_path / ".tooldock" / "shims"
    assert config.layout.installs_dir == tmp_path / ".tooldock" / "installs"


def test_root_env_var_overrides_home(tmp_path: Path) -> None:
    """Test that TOOLDOCK_ROOT replaces ~/.tooldock as the root."""
    custom = tmp_path / "custom"
    store = FilesystemConfigStore(environ={"TOOLDOCK_ROOT": str(custom)}, home=tmp_path)

    assert store.load().root == custom.resolve()
    assert store.path() == custom.resolve() / "config.toml"


def test_relative_shims_dir_is_under_root(tmp_path: Path) -> None:
    root = tmp_path / ".tooldock"
    root.mkdir()
    (root / "config.toml").write_text('shims_dir = "bin"\n')

    config = FilesystemConfigStore(environ={}, home=tmp_path).load()

    assert config.shims_dir == root / "bin"


def test_absolute_shims_dir_is_kept(tmp_path: Path) -> None:
    root = tmp_path / ".tooldock"
    root.mkdir()
    shims = tmp_path / "elsewhere"
    (root / "config.toml").write_text(f'shims_dir = "{shims}"\n')

    assert FilesystemConfigStore(environ={}, home=tmp_path).load().shims_dir == shims


@pytest.mark.parametrize("content", ["shims_dir = [", "shims_dir = 3\n", 'shims_dir = ""\n'])
def test_malformed_config_raises_value_error(tmp_path: Path, content: str) -> None:
    root = tmp_path / ".tooldock"
    root.mkdir()
    (root / "config.toml").write_text(content)

    with pytest.raises(ValueError, match="config.toml"):
        FilesystemConfigStore(environ={}, home=tmp_path).load()


def test_in_memory_store_returns_given_config(tmp_path: Path) -> None:
    config = GlobalConfig.defaults(tmp_path)

    assert InMemoryConfigStore(config).load() is config

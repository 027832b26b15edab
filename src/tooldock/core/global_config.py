"""Global configuration data structures and loading.

Provides immutable global config data loaded from ~/.tooldock/config.toml.
Loaded once at the CLI entry point and stored in ToolDockContext.
"""

import os
import tomllib
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from tooldock.core.layout import InstallLayout

ROOT_ENV_VAR = "TOOLDOCK_ROOT"
DEFAULT_ROOT_NAME = ".tooldock"


@dataclass(frozen=True)
class GlobalConfig:
    """Immutable global configuration data.

    All fields are read-only after construction.
    """

    root: Path
    shims_dir: Path

    @staticmethod
    def defaults(root: Path) -> "GlobalConfig":
        return GlobalConfig(root=root, shims_dir=root / "shims")

    @property
    def layout(self) -> InstallLayout:
        return InstallLayout(root=self.root, shims_dir=self.shims_dir)


class ConfigStore(ABC):
    """Abstract interface for global config access.

    Provides dependency injection for global config, enabling in-memory
    implementations for tests without touching the filesystem.
    """

    @abstractmethod
    def load(self) -> GlobalConfig:
        """Load global config, falling back to defaults when no file exists.

        Raises:
            ValueError: If the config file is malformed
        """
        ...

    @abstractmethod
    def path(self) -> Path:
        """Get the path to the global config file (for messages and debugging)."""
        ...


class FilesystemConfigStore(ConfigStore):
    """Production implementation that reads <root>/config.toml.

    The root is ``$TOOLDOCK_ROOT`` when set, otherwise ``~/.tooldock``.
    """

    def __init__(self, environ: Mapping[str, str] | None = None, home: Path | None = None) -> None:
        self._environ = environ if environ is not None else os.environ
        self._home = home

    def default_root(self) -> Path:
        override = self._environ.get(ROOT_ENV_VAR)
        if override:
            return Path(override).expanduser().resolve()
        home = self._home if self._home is not None else Path.home()
        return home / DEFAULT_ROOT_NAME

    def path(self) -> Path:
        return self.default_root() / "config.toml"

    def load(self) -> GlobalConfig:
        root = self.default_root()
        config_path = self.path()
        if not config_path.exists():
            return GlobalConfig.defaults(root)

        try:
            data = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Malformed config file {config_path}: {e}") from e

        shims_value = data.get("shims_dir")
        if shims_value is None:
            return GlobalConfig.defaults(root)
        if not isinstance(shims_value, str) or not shims_value:
            raise ValueError(f"'shims_dir' in {config_path} must be a non-empty string")

        shims_dir = Path(shims_value).expanduser()
        if not shims_dir.is_absolute():
            shims_dir = root / shims_dir
        return GlobalConfig(root=root, shims_dir=shims_dir)


class InMemoryConfigStore(ConfigStore):
    """Test implementation that returns a fixed config."""

    def __init__(self, config: GlobalConfig) -> None:
        self._config = config

    def load(self) -> GlobalConfig:
        return self._config

    def path(self) -> Path:
        return self._config.root / "config.toml"

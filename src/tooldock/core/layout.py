"""Directory layout under the tooldock root.

The layout is an explicit handle: every component that touches the install
tree or the shims directory receives one, so tests can point it at a
temporary root.
"""

from dataclasses import dataclass
from pathlib import Path

from tooldock.core.models import PackageKey


@dataclass(frozen=True)
class InstallLayout:
    root: Path
    shims_dir: Path

    @staticmethod
    def under(root: Path) -> "InstallLayout":
        """Default layout with shims at ``<root>/shims``."""
        return InstallLayout(root=root, shims_dir=root / "shims")

    @property
    def installs_dir(self) -> Path:
        return self.root / "installs"

    @property
    def config_dir(self) -> Path:
        return self.root / "config"

    @property
    def active_config_path(self) -> Path:
        return self.config_dir / "active.toml"

    def package_dir(self, name: str) -> Path:
        return self.installs_dir / name

    def install_path(self, key: PackageKey) -> Path:
        """Deterministic ``<root>/installs/<name>/<version>/<platform>`` path."""
        return self.installs_dir / key.name / key.version / key.platform_tag

    @property
    def temp_dir(self) -> Path:
        """Scratch space for extraction, on the same volume as the installs."""
        return self.root / "tmp"

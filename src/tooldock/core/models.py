"""Value types passed between pipeline stages."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from tooldock.core.digest import Digest
from tooldock.core.platform import Platform


class ArchiveKind(Enum):
    TAR = "tar"
    ZIP = "zip"

    @staticmethod
    def parse(value: str) -> "ArchiveKind":
        try:
            return ArchiveKind(value.lower())
        except ValueError:
            supported = ", ".join(kind.value for kind in ArchiveKind)
            raise ValueError(f"Unsupported archive kind {value!r} (expected one of: {supported})") from None


@dataclass(frozen=True)
class AssetDescriptor:
    """One platform-specific downloadable unit, already validated upstream."""

    archive_kind: ArchiveKind
    source_url: str
    expected_checksum: Digest


@dataclass(frozen=True)
class PackageKey:
    """Identifies one install record."""

    name: str
    version: str
    platform_tag: str

    @staticmethod
    def for_platform(name: str, version: str, platform: Platform) -> "PackageKey":
        return PackageKey(name=name, version=version, platform_tag=platform.tag)

    def __str__(self) -> str:
        return f"{self.name}@{self.version} ({self.platform_tag})"


@dataclass(frozen=True)
class InstallResult:
    """Outcome of a full pipeline run."""

    key: PackageKey
    install_path: Path
    shims: list[Path]

"""Platform detection and ``<os>-<arch>`` tags."""

import platform as _platform
import sys
from dataclasses import dataclass
from enum import Enum

# Python reports machine names the way the kernel does; tags use Go-style names.
_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}

_OS_ALIASES = {
    "linux": "linux",
    "darwin": "darwin",
    "win32": "windows",
    "cygwin": "windows",
    "freebsd": "freebsd",
}


class OsFamily(Enum):
    """Platform families that differ in how launchers and permissions work."""

    POSIX = "posix"
    WINDOWS = "windows"

    @property
    def has_executable_bit(self) -> bool:
        return self is OsFamily.POSIX

    @staticmethod
    def current() -> "OsFamily":
        return OsFamily.WINDOWS if sys.platform.startswith("win") else OsFamily.POSIX


@dataclass(frozen=True)
class Platform:
    os: str
    arch: str

    @property
    def tag(self) -> str:
        return normalize(self.os, self.arch)

    @property
    def family(self) -> OsFamily:
        return OsFamily.WINDOWS if self.os == "windows" else OsFamily.POSIX

    def __str__(self) -> str:
        return self.tag

    @staticmethod
    def detect() -> "Platform":
        return Platform(os=_detect_os(), arch=_detect_arch())

    @staticmethod
    def parse(tag: str) -> "Platform":
        os_name, separator, arch = tag.partition("-")
        if not separator or not os_name or not arch:
            raise ValueError(f"Invalid platform tag {tag!r}: expected '<os>-<arch>'")
        return Platform(os=os_name, arch=arch)


def normalize(os_name: str, arch: str) -> str:
    return f"{os_name}-{arch}"


def _detect_os() -> str:
    for prefix, name in _OS_ALIASES.items():
        if sys.platform.startswith(prefix):
            return name
    return sys.platform


def _detect_arch() -> str:
    machine = _platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)

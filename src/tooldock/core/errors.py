"""Error taxonomy for the acquire-verify-extract-install-expose pipeline.

Every stage raises a subclass of ToolDockError. Each exception carries the
context a CLI needs to print a precise message (offending path, expected vs.
actual digest, HTTP status) as attributes, and chains the underlying cause
with ``raise ... from``.
"""

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tooldock.core.digest import Digest


class ToolDockError(Exception):
    """Base class for all pipeline failures."""


class OperationCancelledError(ToolDockError):
    """Raised when a CancellationToken fires while a stage is running."""

    def __init__(self, stage: str) -> None:
        super().__init__(f"{stage} cancelled")
        self.stage = stage


# Checksum


class ChecksumError(ToolDockError):
    """Base class for checksum parsing and verification failures."""


class InvalidChecksumFormatError(ChecksumError):
    def __init__(self, value: str, reason: str) -> None:
        super().__init__(f"Invalid checksum {value!r}: {reason}")
        self.value = value
        self.reason = reason


class ChecksumMismatchError(ChecksumError):
    def __init__(self, expected: "Digest", actual: "Digest") -> None:
        super().__init__(f"Checksum mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


# Fetch


class FetchError(ToolDockError):
    """Base class for download failures."""

    retryable: bool = False


class TransportError(FetchError):
    """Connection refused, timeout or other transport-level failure."""

    retryable = True

    def __init__(self, url: str, detail: str) -> None:
        super().__init__(f"Request to {url} failed: {detail}")
        self.url = url
        self.detail = detail


class HttpStatusError(FetchError):
    """Non-2xx response. Only server errors (5xx) are retryable."""

    def __init__(self, url: str, status_code: int, reason: str) -> None:
        super().__init__(f"HTTP {status_code} {reason} from {url}")
        self.url = url
        self.status_code = status_code
        self.reason = reason

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return 500 <= self.status_code < 600


class FetchChecksumError(FetchError):
    """The transfer succeeded but the payload failed verification."""

    def __init__(self, url: str, cause: ChecksumError) -> None:
        super().__init__(f"Checksum verification failed for {url}: {cause}")
        self.url = url
        self.cause = cause


class FetchExhaustedError(FetchError):
    def __init__(self, url: str, attempts: int, cause: FetchError) -> None:
        super().__init__(f"Failed to fetch {url} after {attempts} attempts: {cause}")
        self.url = url
        self.attempts = attempts
        self.cause = cause


# Extract


class ExtractError(ToolDockError):
    """Base class for archive extraction failures."""


class UnsupportedCompressionError(ExtractError):
    def __init__(self, compression: str) -> None:
        super().__init__(f"Unsupported tar compression: {compression}")
        self.compression = compression


class PathTraversalError(ExtractError):
    def __init__(self, entry_name: str, reason: str) -> None:
        super().__init__(f"Unsafe archive entry {entry_name!r}: {reason}")
        self.entry_name = entry_name
        self.reason = reason


class ExtractIOError(ExtractError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Failed to extract archive: {detail}")
        self.detail = detail


# Install


class InstallError(ToolDockError):
    """Base class for installation failures."""


class MissingBinaryError(InstallError):
    def __init__(self, binary: str, package_root: Path) -> None:
        super().__init__(f"Binary {binary!r} not found in extracted archive at {package_root}")
        self.binary = binary
        self.package_root = package_root


class RelocationError(InstallError):
    def __init__(self, source: Path, destination: Path, failures: list[tuple[str, OSError]]) -> None:
        attempted = ", ".join(f"{name}: {error}" for name, error in failures)
        super().__init__(f"Failed to move {source} to {destination} ({attempted})")
        self.source = source
        self.destination = destination
        self.failures = failures


# Shims


class ShimError(ToolDockError):
    """Base class for launcher publishing failures."""


class ShimTargetMissingError(ShimError):
    def __init__(self, binary_name: str, target_path: Path) -> None:
        super().__init__(f"Target binary for shim {binary_name!r} does not exist: {target_path}")
        self.binary_name = binary_name
        self.target_path = target_path


class ShimWriteError(ShimError):
    def __init__(self, binary_name: str, failures: list[tuple[str, OSError]]) -> None:
        attempted = ", ".join(f"{name}: {error}" for name, error in failures)
        super().__init__(f"Failed to create shim for {binary_name!r} ({attempted})")
        self.binary_name = binary_name
        self.failures = failures

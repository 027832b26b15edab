"""Safe extraction of downloaded archives into an isolated temporary directory.

Archive contents are untrusted. Every entry name goes through
``sanitize_entry_name`` before anything is written, and any failure removes
the partially populated directory so callers never see a half-extracted tree.
"""

import io
import logging
import os
import posixpath
import shutil
import stat
import tarfile
import tempfile
import zipfile
import zlib
from collections.abc import Callable
from pathlib import Path, PureWindowsPath
from types import TracebackType
from typing import IO

from tooldock.core.cancellation import CancellationToken
from tooldock.core.digest import Digest, verify_checksum
from tooldock.core.errors import (
    ExtractIOError,
    PathTraversalError,
    UnsupportedCompressionError,
)
from tooldock.core.models import ArchiveKind

logger = logging.getLogger(__name__)

EntryCallback = Callable[[str], None]

TEMP_DIR_PREFIX = "tooldock-extract-"
DEFAULT_FILE_MODE = 0o644

_GZIP_MAGIC = b"\x1f\x8b"
# Recognised so they fail loudly instead of being parsed as a plain tar.
_UNSUPPORTED_MAGIC = {
    b"\xfd7zXZ\x00": "xz",
    b"BZh": "bzip2",
    b"\x28\xb5\x2f\xfd": "zstd",
}


class ExtractedTree:
    """Exclusively owned temporary directory holding an unpacked archive.

    The caller owns the tree once ``extract`` returns and must release it on
    every exit path, typically with ``with extractor.extract(...) as tree:``.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def cleanup(self) -> None:
        """Delete the tree. Safe to call more than once."""
        if self._path.exists():
            shutil.rmtree(self._path)
            logger.debug("Removed extracted tree %s", self._path)

    def __enter__(self) -> "ExtractedTree":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.cleanup()

    def __repr__(self) -> str:
        return f"ExtractedTree({str(self._path)!r})"


def sanitize_entry_name(name: str, destination: Path) -> Path:
    """Map an archive entry name to a path confined under ``destination``.

    Identical for tar and zip archives. Backslashes count as separators so a
    Windows-authored archive cannot smuggle ``..\\`` past the checks.

    Raises:
        PathTraversalError: If the entry is absolute, contains a ``..``
            segment, or otherwise resolves outside ``destination``
    """
    portable = name.replace("\\", "/")
    if portable.startswith("/") or PureWindowsPath(name).drive:
        raise PathTraversalError(name, "absolute paths are not allowed")

    cleaned = posixpath.normpath(portable)
    if posixpath.isabs(cleaned):
        raise PathTraversalError(name, "absolute paths are not allowed")
    if posixpath.pardir in cleaned.split("/"):
        raise PathTraversalError(name, "parent directory segments are not allowed")

    joined = os.path.join(destination, *cleaned.split("/"))
    relative = os.path.relpath(joined, destination)
    if relative == os.pardir or relative.startswith(os.pardir + os.sep):
        raise PathTraversalError(name, "path escapes the destination directory")
    return Path(joined)


def detect_tar_compression(content: bytes) -> str | None:
    """Return ``"gzip"`` for gzip-wrapped tars, None for plain tars.

    Raises:
        UnsupportedCompressionError: For xz, bzip2 and zstd payloads
    """
    if content.startswith(_GZIP_MAGIC):
        return "gzip"
    for magic, compression in _UNSUPPORTED_MAGIC.items():
        if content.startswith(magic):
            raise UnsupportedCompressionError(compression)
    return None


class ArchiveExtractor:
    """Unpacks verified archive bytes into a fresh temporary directory."""

    def __init__(self, temp_parent: Path | None = None) -> None:
        """Initialize the extractor.

        Args:
            temp_parent: Directory in which temporary trees are created. None
                uses the system temporary directory. Placing it on the same
                volume as the install root lets the installer rename instead
                of copy.
        """
        self._temp_parent = temp_parent

    def extract(
        self,
        content: bytes,
        kind: ArchiveKind,
        expected_checksum: "str | Digest",
        *,
        cancellation: CancellationToken | None = None,
        on_entry: EntryCallback | None = None,
    ) -> ExtractedTree:
        """Verify and unpack ``content``.

        The checksum is verified again here; callers are not trusted to have
        done it already.

        Args:
            content: Archive bytes
            kind: Tar (optionally gzip) or zip
            expected_checksum: Digest the bytes must match
            cancellation: Checked between entries
            on_entry: Called with each entry name after it is written

        Returns:
            ExtractedTree owned by the caller

        Raises:
            ChecksumError: If ``content`` does not match ``expected_checksum``
            UnsupportedCompressionError: For xz/bzip2/zstd tars
            PathTraversalError: If any entry would land outside the tree
            ExtractIOError: For malformed archives and filesystem errors
            OperationCancelledError: If cancellation fires mid-extraction
        """
        verify_checksum(content, expected_checksum)

        if self._temp_parent is not None:
            self._temp_parent.mkdir(parents=True, exist_ok=True)
        destination = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX, dir=self._temp_parent))
        logger.debug("Extracting %s archive (%d bytes) into %s", kind.value, len(content), destination)

        writer = _EntryWriter(destination, cancellation, on_entry)
        try:
            if kind is ArchiveKind.TAR:
                _extract_tar(content, writer)
            elif kind is ArchiveKind.ZIP:
                _extract_zip(content, writer)
            else:
                raise ValueError(f"Unsupported archive kind: {kind}")
        except (
            OSError,
            EOFError,
            UnicodeDecodeError,
            zlib.error,
            tarfile.TarError,
            zipfile.BadZipFile,
        ) as e:
            _discard(destination)
            raise ExtractIOError(str(e) or type(e).__name__) from e
        except BaseException:
            _discard(destination)
            raise

        logger.debug("Extracted %d entries into %s", writer.entry_count, destination)
        return ExtractedTree(destination)


class _EntryWriter:
    """Writes sanitized entries below one destination directory."""

    def __init__(
        self,
        destination: Path,
        cancellation: CancellationToken | None,
        on_entry: EntryCallback | None,
    ) -> None:
        self.destination = destination
        self.entry_count = 0
        self._real_destination = destination.resolve()
        self._cancellation = cancellation
        self._on_entry = on_entry

    def begin(self, name: str) -> Path:
        if self._cancellation is not None:
            self._cancellation.raise_if_cancelled("extraction")
        return sanitize_entry_name(name, self.destination)

    def finish(self, name: str) -> None:
        self.entry_count += 1
        if self._on_entry is not None:
            self._on_entry(name)

    def directory(self, name: str, path: Path, mode: int) -> None:
        self._ensure_inside(name, path)
        path.mkdir(parents=True, exist_ok=True)
        if mode:
            # Keep owner rwx so later entries can still be written inside.
            path.chmod((mode & 0o777) | 0o700)

    def file(self, name: str, path: Path, source: IO[bytes], mode: int) -> None:
        self._ensure_inside(name, path.parent)
        path.parent.mkdir(parents=True, exist_ok=True)
        _remove_existing(path)
        with path.open("wb") as target:
            shutil.copyfileobj(source, target)
        path.chmod(mode & 0o777 if mode else DEFAULT_FILE_MODE)

    def symlink(self, name: str, path: Path, link_target: str) -> None:
        """Create a relative link that cannot be redirected outside the tree.

        ``..`` is only accepted as a leading run, so it always climbs from
        the real directory holding the link. A ``..`` after a named segment
        would depend on what that segment becomes later in the archive.
        """
        portable_target = link_target.replace("\\", "/")
        if portable_target.startswith("/") or PureWindowsPath(link_target).drive:
            raise PathTraversalError(name, f"symlink target {link_target!r} is absolute")

        segments = [segment for segment in portable_target.split("/") if segment not in ("", ".")]
        seen_named_segment = False
        for segment in segments:
            if segment != posixpath.pardir:
                seen_named_segment = True
            elif seen_named_segment:
                raise PathTraversalError(
                    name, f"symlink target {link_target!r} has '..' after a named segment"
                )

        self._ensure_inside(name, path.parent)
        path.parent.mkdir(parents=True, exist_ok=True)
        real_parent = path.parent.resolve()
        landing = Path(os.path.normpath(os.path.join(real_parent, *segments)))
        if not landing.is_relative_to(self._real_destination):
            raise PathTraversalError(name, f"symlink target {link_target!r} escapes the destination")

        _remove_existing(path)
        os.symlink(portable_target, path)
        if not path.resolve().is_relative_to(self._real_destination):
            path.unlink()
            raise PathTraversalError(name, f"symlink target {link_target!r} escapes the destination")

    def hardlink(self, name: str, path: Path, link_source: str) -> None:
        source = sanitize_entry_name(link_source, self.destination)
        if source.is_symlink() or not source.is_file():
            raise ExtractIOError(
                f"hard link {name!r} must refer to an extracted regular file, got {link_source!r}"
            )
        self._ensure_inside(name, source)
        self._ensure_inside(name, path.parent)
        path.parent.mkdir(parents=True, exist_ok=True)
        _remove_existing(path)
        shutil.copy2(source, path, follow_symlinks=False)

    def _ensure_inside(self, name: str, path: Path) -> None:
        """Reject writes whose real location left the tree through a symlink."""
        if not path.resolve().is_relative_to(self._real_destination):
            raise PathTraversalError(name, "path resolves outside the destination directory")


def _extract_tar(content: bytes, writer: _EntryWriter) -> None:
    mode = "r|gz" if detect_tar_compression(content) == "gzip" else "r|"
    with tarfile.open(fileobj=io.BytesIO(content), mode=mode) as archive:
        for member in archive:
            path = writer.begin(member.name)
            if member.isdir():
                writer.directory(member.name, path, member.mode)
            elif member.isreg():
                source = archive.extractfile(member)
                if source is None:
                    raise ExtractIOError(f"cannot read tar member {member.name!r}")
                with source:
                    writer.file(member.name, path, source, member.mode)
            elif member.issym():
                writer.symlink(member.name, path, member.linkname)
            elif member.islnk():
                writer.hardlink(member.name, path, member.linkname)
            else:
                logger.warning("Skipping special tar entry %s (type %r)", member.name, member.type)
                continue
            writer.finish(member.name)


def _extract_zip(content: bytes, writer: _EntryWriter) -> None:
    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        for info in archive.infolist():
            path = writer.begin(info.filename)
            unix_mode = info.external_attr >> 16
            if info.is_dir():
                writer.directory(info.filename, path, unix_mode)
            elif stat.S_ISLNK(unix_mode):
                link_target = archive.read(info).decode("utf-8")
                writer.symlink(info.filename, path, link_target)
            else:
                with archive.open(info) as source:
                    writer.file(info.filename, path, source, unix_mode)
            writer.finish(info.filename)


def _remove_existing(path: Path) -> None:
    """Unlink a previous file or symlink so writes never follow a link."""
    if path.is_symlink() or path.is_file():
        path.unlink()


def _discard(path: Path) -> None:
    shutil.rmtree(path, ignore_errors=True)
    logger.debug("Discarded partial extraction %s", path)

"""Typed content digests and checksum verification.

Checksums travel as ``"<algorithm>:<hex>"`` strings, e.g.
``sha256:09ca7e4e...``. Only SHA-256 is currently accepted.
"""

import hashlib
import hmac
import re
from dataclasses import dataclass
from enum import Enum

from tooldock.core.errors import ChecksumMismatchError, InvalidChecksumFormatError

_HEX_PATTERN = re.compile(r"[0-9a-fA-F]+")


class HashAlgorithm(Enum):
    SHA256 = "sha256"

    @property
    def digest_size(self) -> int:
        """Number of bytes produced by the algorithm."""
        return hashlib.new(self.value).digest_size

    def compute(self, content: bytes) -> bytes:
        return hashlib.new(self.value, content).digest()


@dataclass(frozen=True)
class Digest:
    """An algorithm tag plus the raw digest bytes.

    Always rendered as ``"<algorithm>:<lowercase-hex>"``.
    """

    algorithm: HashAlgorithm
    value: bytes

    def __post_init__(self) -> None:
        if len(self.value) != self.algorithm.digest_size:
            raise InvalidChecksumFormatError(
                self.value.hex(),
                f"{self.algorithm.value} digests are {self.algorithm.digest_size} bytes, "
                f"got {len(self.value)}",
            )

    @staticmethod
    def parse(text: str) -> "Digest":
        """Parse ``"<algorithm>:<hex>"``.

        Hex is accepted in either case. Raises InvalidChecksumFormatError for an
        unknown algorithm tag, non-hex characters or a wrong length.
        """
        tag, separator, hex_part = text.partition(":")
        if not separator:
            raise InvalidChecksumFormatError(text, "expected '<algorithm>:<hex>'")

        algorithm = _ALGORITHMS_BY_TAG.get(tag)
        if algorithm is None:
            raise InvalidChecksumFormatError(text, f"unsupported algorithm {tag!r}")

        expected_length = algorithm.digest_size * 2
        if len(hex_part) != expected_length:
            raise InvalidChecksumFormatError(
                text, f"expected {expected_length} hex characters, got {len(hex_part)}"
            )
        if _HEX_PATTERN.fullmatch(hex_part) is None:
            raise InvalidChecksumFormatError(text, "digest contains non-hex characters")

        return Digest(algorithm=algorithm, value=bytes.fromhex(hex_part))

    @staticmethod
    def compute(content: bytes, algorithm: HashAlgorithm = HashAlgorithm.SHA256) -> "Digest":
        return Digest(algorithm=algorithm, value=algorithm.compute(content))

    @property
    def hex(self) -> str:
        return self.value.hex()

    def matches(self, other: "Digest") -> bool:
        """Constant-time comparison against another digest."""
        if self.algorithm is not other.algorithm:
            return False
        return hmac.compare_digest(self.value, other.value)

    def __str__(self) -> str:
        return f"{self.algorithm.value}:{self.hex}"


_ALGORITHMS_BY_TAG = {algorithm.value: algorithm for algorithm in HashAlgorithm}


def verify_checksum(content: bytes, expected: "str | Digest") -> Digest:
    """Verify ``content`` against ``expected`` and return the computed digest.

    Args:
        content: Full payload; there is no streaming verification
        expected: Digest or its string form

    Returns:
        The digest computed over ``content``

    Raises:
        InvalidChecksumFormatError: If ``expected`` cannot be parsed
        ChecksumMismatchError: If the digests differ
    """
    expected_digest = expected if isinstance(expected, Digest) else Digest.parse(expected)
    actual = Digest.compute(content, expected_digest.algorithm)
    if not actual.matches(expected_digest):
        raise ChecksumMismatchError(expected=expected_digest, actual=actual)
    return actual

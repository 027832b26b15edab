"""HTTP download with bounded retries and checksum verification.

The retry loop is modelled as a small state machine::

    ATTEMPTING -> SUCCEEDED
    ATTEMPTING -> WAITING -> ATTEMPTING -> ...
    ATTEMPTING -> EXHAUSTED

Only transport failures and 5xx responses move to WAITING. Any other failure
(4xx, checksum mismatch, cancellation) leaves the loop immediately.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import httpx

from tooldock.core.cancellation import CancellationToken
from tooldock.core.digest import Digest, verify_checksum
from tooldock.core.errors import (
    ChecksumError,
    FetchChecksumError,
    FetchError,
    FetchExhaustedError,
    HttpStatusError,
    OperationCancelledError,
    TransportError,
)
from tooldock.integrations.time.abc import Time

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 1.0

ProgressSink = Callable[[bytes], None]


class FetchPhase(Enum):
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class RetrySchedule:
    """Linear backoff: wait ``(n - 1) * delay_unit`` before attempt ``n``."""

    max_attempts: int = MAX_ATTEMPTS
    delay_unit_seconds: float = RETRY_DELAY_SECONDS

    def delay_before(self, attempt: int) -> float:
        return (attempt - 1) * self.delay_unit_seconds


def create_http_client() -> httpx.Client:
    """Client used in production.

    No timeout: large toolchains may take arbitrarily long and the only way
    to abort is the cancellation token.
    """
    return httpx.Client(timeout=None, follow_redirects=True)


class Fetcher:
    """Downloads one asset and verifies it before returning the bytes."""

    def __init__(
        self,
        client: httpx.Client,
        time: Time,
        schedule: RetrySchedule | None = None,
    ) -> None:
        self._client = client
        self._time = time
        self._schedule = schedule if schedule is not None else RetrySchedule()

    def fetch(
        self,
        url: str,
        expected_checksum: "str | Digest",
        cancellation: CancellationToken,
        progress: ProgressSink | None = None,
    ) -> bytes:
        """Download ``url`` and verify it against ``expected_checksum``.

        Args:
            url: Asset URL
            expected_checksum: Digest or ``"sha256:<hex>"`` string
            cancellation: Aborts the download between chunks and retries
            progress: Receives every body chunk as it streams in

        Returns:
            The verified payload

        Raises:
            HttpStatusError: Non-2xx, non-5xx response (not retried)
            FetchChecksumError: Payload failed verification (not retried)
            FetchExhaustedError: Every attempt failed with a retryable error
            OperationCancelledError: The token fired
        """
        try:
            expected = (
                expected_checksum
                if isinstance(expected_checksum, Digest)
                else Digest.parse(expected_checksum)
            )
        except ChecksumError as e:
            raise FetchChecksumError(url, e) from e

        phase = FetchPhase.ATTEMPTING
        attempt = 1
        payload = b""

        while phase is not FetchPhase.SUCCEEDED:
            if phase is FetchPhase.WAITING:
                attempt += 1
                delay = self._schedule.delay_before(attempt)
                logger.debug("Waiting %.1fs before attempt %d for %s", delay, attempt, url)
                if self._time.sleep(delay, cancellation):
                    raise OperationCancelledError("download")
                phase = FetchPhase.ATTEMPTING
                continue

            cancellation.raise_if_cancelled("download")
            logger.debug("Fetching %s (attempt %d/%d)", url, attempt, self._schedule.max_attempts)
            try:
                payload = self._fetch_once(url, cancellation, progress)
            except FetchError as e:
                if not e.retryable:
                    raise
                logger.debug("Attempt %d for %s failed: %s", attempt, url, e)
                phase = self._next_phase_after_failure(attempt)
                if phase is FetchPhase.EXHAUSTED:
                    raise FetchExhaustedError(url, attempts=attempt, cause=e) from e
                continue
            phase = FetchPhase.SUCCEEDED

        try:
            verify_checksum(payload, expected)
        except ChecksumError as e:
            raise FetchChecksumError(url, e) from e

        logger.debug("Fetched %d bytes from %s (%s)", len(payload), url, expected)
        return payload

    def _next_phase_after_failure(self, attempt: int) -> FetchPhase:
        if attempt >= self._schedule.max_attempts:
            return FetchPhase.EXHAUSTED
        return FetchPhase.WAITING

    def _fetch_once(
        self,
        url: str,
        cancellation: CancellationToken,
        progress: ProgressSink | None,
    ) -> bytes:
        chunks: list[bytes] = []
        try:
            with self._client.stream("GET", url) as response:
                if not response.is_success:
                    raise HttpStatusError(url, response.status_code, response.reason_phrase)
                for chunk in response.iter_bytes():
                    cancellation.raise_if_cancelled("download")
                    chunks.append(chunk)
                    if progress is not None:
                        progress(chunk)
        except httpx.TransportError as e:
            raise TransportError(url, str(e) or type(e).__name__) from e
        return b"".join(chunks)

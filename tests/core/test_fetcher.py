"""Tests for the retrying, verifying fetcher.

HTTP is served by httpx.MockTransport; retry waits go through FakeTime so no
test actually sleeps.
"""

import hashlib

import httpx
import pytest

from tooldock.core.cancellation import CancellationToken
from tooldock.core.errors import (
    FetchChecksumError,
    FetchExhaustedError,
    HttpStatusError,
    OperationCancelledError,
    TransportError,
)
from tooldock.core.fetcher import MAX_ATTEMPTS, Fetcher, RetrySchedule
from tooldock.integrations.time.fake import FakeTime

URL = "https://downloads.example.com/tool.tar.gz"
PAYLOAD = b"hello, world"
CHECKSUM = f"sha256:{hashlib.sha256(PAYLOAD).hexdigest()}"


class ScriptedServer:
    """Replays a fixed sequence of responses and counts requests."""

    def __init__(self, responses: list[httpx.Response | Exception]) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _fetcher(server: ScriptedServer, time: FakeTime | None = None) -> Fetcher:
    client = httpx.Client(transport=httpx.MockTransport(server))
    return Fetcher(client, time if time is not None else FakeTime())


def test_fetch_returns_payload_unmodified() -> None:
    """Test that a 12-byte payload with a correct checksum is returned as-is."""
    server = ScriptedServer([httpx.Response(200, content=PAYLOAD)])

    content = _fetcher(server).fetch(URL, CHECKSUM, CancellationToken())

    assert content == PAYLOAD
    assert len(content) == 12
    assert len(server.requests) == 1


def test_fetch_retries_server_errors_with_linear_backoff() -> None:
    """Test that two 500s followed by a 200 succeed after exactly 3 attempts."""
    server = ScriptedServer(
        [
            httpx.Response(500),
            httpx.Response(500),
            httpx.Response(200, content=PAYLOAD),
        ]
    )
    time = FakeTime()

    content = _fetcher(server, time).fetch(URL, CHECKSUM, CancellationToken())

    assert content == PAYLOAD
    assert len(server.requests) == 3
    assert time.sleep_calls == [1.0, 2.0]


def test_fetch_retries_transport_errors() -> None:
    server = ScriptedServer(
        [
            httpx.ConnectError("connection refused"),
            httpx.Response(200, content=PAYLOAD),
        ]
    )

    content = _fetcher(server).fetch(URL, CHECKSUM, CancellationToken())

    assert content == PAYLOAD
    assert len(server.requests) == 2


def test_fetch_does_not_retry_client_errors() -> None:
    """Test that a 404 fails immediately without further attempts."""
    server = ScriptedServer([httpx.Response(404)])
    time = FakeTime()

    with pytest.raises(HttpStatusError) as exc_info:
        _fetcher(server, time).fetch(URL, CHECKSUM, CancellationToken())

    assert exc_info.value.status_code == 404
    assert len(server.requests) == 1
    assert time.sleep_calls == []


def test_fetch_gives_up_after_max_attempts() -> None:
    """Test that persistent 503s exhaust the attempts and keep the last cause."""
    server = ScriptedServer([httpx.Response(503) for _ in range(MAX_ATTEMPTS)])

    with pytest.raises(FetchExhaustedError) as exc_info:
        _fetcher(server).fetch(URL, CHECKSUM, CancellationToken())

    assert exc_info.value.attempts == MAX_ATTEMPTS
    assert isinstance(exc_info.value.cause, HttpStatusError)
    assert len(server.requests) == MAX_ATTEMPTS


def test_fetch_exhausted_on_transport_errors() -> None:
    server = ScriptedServer([httpx.ReadTimeout("timed out") for _ in range(MAX_ATTEMPTS)])

    with pytest.raises(FetchExhaustedError) as exc_info:
        _fetcher(server).fetch(URL, CHECKSUM, CancellationToken())

    assert isinstance(exc_info.value.cause, TransportError)


def test_fetch_checksum_mismatch_is_not_retried() -> None:
    """Test that a corrupted payload fails verification on the first attempt."""
    server = ScriptedServer([httpx.Response(200, content=b"hello, World")])

    with pytest.raises(FetchChecksumError):
        _fetcher(server).fetch(URL, CHECKSUM, CancellationToken())

    assert len(server.requests) == 1


def test_fetch_rejects_malformed_checksum_before_any_request() -> None:
    server = ScriptedServer([])

    with pytest.raises(FetchChecksumError):
        _fetcher(server).fetch(URL, "md5:abc", CancellationToken())

    assert server.requests == []


def test_fetch_reports_progress_chunks() -> None:
    server = ScriptedServer([httpx.Response(200, content=PAYLOAD)])
    received: list[bytes] = []

    _fetcher(server).fetch(URL, CHECKSUM, CancellationToken(), progress=received.append)

    assert b"".join(received) == PAYLOAD


def test_fetch_cancelled_before_start() -> None:
    server = ScriptedServer([httpx.Response(200, content=PAYLOAD)])
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCancelledError):
        _fetcher(server).fetch(URL, CHECKSUM, token)

    assert server.requests == []


def test_fetch_cancelled_during_backoff() -> None:
    """Test that cancelling while waiting between attempts stops the retries."""
    server = ScriptedServer([httpx.Response(500), httpx.Response(200, content=PAYLOAD)])
    time = FakeTime(cancel_on_sleep=True)

    with pytest.raises(OperationCancelledError):
        _fetcher(server, time).fetch(URL, CHECKSUM, CancellationToken())

    assert len(server.requests) == 1
    assert time.sleep_calls == [1.0]


def test_retry_schedule_delays() -> None:
    schedule = RetrySchedule(max_attempts=4, delay_unit_seconds=0.5)

    assert [schedule.delay_before(attempt) for attempt in (2, 3, 4)] == [0.5, 1.0, 1.5]

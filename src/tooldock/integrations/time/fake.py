"""Fake Time implementation for testing.

FakeTime is an in-memory implementation that tracks sleep() calls without
actually sleeping, enabling fast tests.
"""

from tooldock.core.cancellation import CancellationToken
from tooldock.integrations.time.abc import Time


class FakeTime(Time):
    """Fake implementation that tracks calls without sleeping.

    This class has NO public setup methods. All state is provided via constructor
    or captured during execution.
    """

    def __init__(self, *, cancel_on_sleep: bool = False) -> None:
        """Create FakeTime with empty call tracking.

        Args:
            cancel_on_sleep: Cancel the token as if a user interrupted the wait
        """
        self._cancel_on_sleep = cancel_on_sleep
        self._sleep_calls: list[float] = []

    @property
    def sleep_calls(self) -> list[float]:
        """Read-only access to tracked sleep calls for test assertions.

        Returns list of seconds values passed to sleep().
        """
        return self._sleep_calls

    def sleep(self, seconds: float, cancellation: CancellationToken) -> bool:
        """Track sleep call without actually sleeping."""
        self._sleep_calls.append(seconds)
        if self._cancel_on_sleep:
            cancellation.cancel()
        return cancellation.is_cancelled

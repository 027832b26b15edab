"""Time operations abstraction for testing.

Retry backoff waits go through this ABC so tests can observe the schedule
without actually sleeping.
"""

from abc import ABC, abstractmethod

from tooldock.core.cancellation import CancellationToken


class Time(ABC):
    """Abstract time operations for dependency injection."""

    @abstractmethod
    def sleep(self, seconds: float, cancellation: CancellationToken) -> bool:
        """Wait for ``seconds`` unless cancellation fires first.

        Args:
            seconds: Number of seconds to wait
            cancellation: Token that interrupts the wait when cancelled

        Returns:
            True if the wait was interrupted by cancellation
        """
        ...

"""Real time implementation backed by the cancellation token's event."""

from tooldock.core.cancellation import CancellationToken
from tooldock.integrations.time.abc import Time


class RealTime(Time):
    """Production implementation that blocks on the token's event."""

    def sleep(self, seconds: float, cancellation: CancellationToken) -> bool:
        if seconds <= 0:
            return cancellation.is_cancelled
        return cancellation.wait(seconds)

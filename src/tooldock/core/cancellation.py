"""Cooperative cancellation shared by the pipeline stages."""

import threading

from tooldock.core.errors import OperationCancelledError


class CancellationToken:
    """Thread-safe flag a caller sets to abort a running pipeline.

    Stages poll it at their suspension points (between download chunks,
    archive entries and relocations) and unwind through
    OperationCancelledError after removing their temporary state.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise OperationCancelledError(stage)

    def wait(self, seconds: float) -> bool:
        """Block for up to ``seconds``; return True if cancelled meanwhile."""
        return self._event.wait(timeout=seconds)

"""Cooperative cancellation for long-running batches."""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TypeVar

T = TypeVar("T")


class OperationCancelled(Exception):
    """Raised when work is stopped through a cancellation token."""


@dataclass
class CancellationToken:
    """Cancellation flag checked at chunk boundaries.

    The token also tracks the request currently in flight so that
    cancelling aborts it instead of waiting for it to settle.
    """

    _cancelled: bool = False
    _in_flight: "asyncio.Task | None" = field(default=None, repr=False)

    @property
    def cancelled(self) -> bool:
        """Return True once cancel() has been called."""
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation and abort the in-flight request, if any."""
        self._cancelled = True
        if self._in_flight is not None and not self._in_flight.done():
            self._in_flight.cancel()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await a request as the abortable in-flight operation."""
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelled
        task = asyncio.ensure_future(awaitable)
        self._in_flight = task
        try:
            return await task
        except asyncio.CancelledError:
            if self._cancelled and task.cancelled():
                raise OperationCancelled from None
            raise
        finally:
            self._in_flight = None

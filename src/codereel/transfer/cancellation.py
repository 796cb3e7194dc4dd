"""Cooperative cancellation for import and export pipelines."""

from __future__ import annotations

import asyncio

from codereel.core.errors import OperationCancelledError


class CancellationToken:
    """A flag set by the caller and observed by the pipeline at checkpoints."""

    def __init__(self, operation: str = "Operation"):
        self.operation = operation
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def check(self, stage: str | None = None) -> None:
        """
        Raises:
            OperationCancelledError: If cancellation was requested
        """
        if self._cancelled:
            raise OperationCancelledError(self.operation, stage)

    async def checkpoint(self, stage: str | None = None) -> None:
        """Yield to the event loop, then check for cancellation."""
        await asyncio.sleep(0)
        self.check(stage)

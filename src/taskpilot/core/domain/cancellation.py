"""Cooperative cancellation for agent runs."""

import asyncio
import contextlib
from collections.abc import Awaitable
from typing import TypeVar

from taskpilot.core.domain.errors import RunCancelledError

T = TypeVar("T")


class CancellationToken:
    """
    Explicit cancellation flag shared between a run and its controller.

    The run checks the token before each model call and before each retry
    suspension. The two suspension points (HTTP exchange and retry delay)
    are wrapped in ``guard`` so they abort as soon as the token fires.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelledError()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the token fires first.

        Raises:
            RunCancelledError: If the token is (or becomes) cancelled. The
                wrapped work is cancelled and its outcome discarded.
        """
        self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()

        if self._event.is_set():
            if not work.done():
                work.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await work
            raise RunCancelledError()

        return work.result()

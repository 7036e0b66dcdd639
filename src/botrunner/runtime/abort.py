"""Cancellation handle threaded into outbound calls."""

import asyncio
from typing import Awaitable, Optional, TypeVar

from ..errors import RequestCancelledError

T = TypeVar("T")


class CancellationHandle:
    """One-shot cancellation signal.

    A handle is created when the bot starts and cancelled when it
    stops. Anything awaited through :meth:`run` is interrupted with
    :class:`RequestCancelledError` once the handle fires.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    async def run(self, awaitable: Awaitable[T], method: str = "") -> T:
        """Await ``awaitable`` unless the handle fires first."""
        task = asyncio.ensure_future(awaitable)
        if self.cancelled:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise RequestCancelledError(method)

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise

        if task.done():
            waiter.cancel()
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise RequestCancelledError(method)


async def sleep(seconds: float, handle: Optional[CancellationHandle] = None) -> None:
    """Sleep for ``seconds``, waking early with an error if ``handle`` fires."""
    if handle is None:
        await asyncio.sleep(seconds)
        return
    await handle.run(asyncio.sleep(seconds), method="sleep")

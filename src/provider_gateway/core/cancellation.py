"""
Cooperative cancellation for in-flight provider calls.

A ``CancellationToken`` exposes a point-in-time ``is_cancelled`` flag
and a subscription hook. The transport binds a token to the asyncio
task that performs the request, so cancelling the token aborts the
pending network read.
"""

import asyncio
import logging
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """
    Caller-owned handle for aborting an operation.

    Not thread-safe: tokens are used from a single event loop. Child
    tokens are cancelled together with their parent.
    """

    def __init__(self, parent: Optional["CancellationToken"] = None):
        self._cancelled = False
        self._reason: Optional[str] = None
        self._callbacks: List[Callable[[], None]] = []
        if parent is not None:
            parent.on_cancelled(lambda: self.cancel(parent.reason))

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: Optional[str] = None) -> None:
        """Request cancellation and notify every subscriber once."""
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Cancellation callback failed: {e}")

    def on_cancelled(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Subscribe to cancellation.

        The callback runs immediately if the token is already
        cancelled. Returns a function that removes the subscription.
        """
        if self._cancelled:
            callback()
            return lambda: None

        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def child(self) -> "CancellationToken":
        """Create a token that is cancelled when this one is."""
        return CancellationToken(parent=self)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled}, reason={self._reason!r})"


async def run_cancellable(
    awaitable: Awaitable[T],
    token: Optional[CancellationToken],
) -> T:
    """
    Await ``awaitable`` while honouring ``token``.

    Raises ``asyncio.CancelledError`` when the token fires; callers
    check ``token.is_cancelled`` to tell that apart from cancellation
    of the enclosing task.
    """
    if token is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    if token.is_cancelled:
        task.cancel()
    unsubscribe = token.on_cancelled(task.cancel)
    try:
        return await task
    finally:
        unsubscribe()


_END = object()


async def _next_item(iterator: AsyncIterator[T]):
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _END


async def iterate_cancellable(
    iterable: AsyncIterable[T],
    token: Optional[CancellationToken],
) -> AsyncIterator[T]:
    """
    Iterate ``iterable`` with every pending ``__anext__`` bound to ``token``.

    A token cancelled while the source stalls raises
    ``asyncio.CancelledError`` without waiting for the next item.
    """
    if token is None:
        async for item in iterable:
            yield item
        return

    iterator = iterable.__aiter__()
    while True:
        item = await run_cancellable(_next_item(iterator), token)
        if item is _END:
            return
        yield item

"""
Caller-driven cancellation for in-flight HTTP calls.

A pipeline caller (for example a client that disconnected) sets an
``asyncio.Event``; the pending request is cancelled and surfaces as a
``RequestCancelledError`` instead of tearing down the caller's task.
"""
import asyncio
from typing import Awaitable, Optional, TypeVar

from .errors import RequestCancelledError

T = TypeVar("T")


async def run_cancellable(
    coro: Awaitable[T],
    cancel_event: Optional[asyncio.Event] = None,
) -> T:
    """
    Await ``coro`` unless ``cancel_event`` is set first.

    Raises:
        RequestCancelledError: If the event fires before the call completes
    """
    if cancel_event is None:
        return await coro

    if cancel_event.is_set():
        # Close the never-started coroutine so it does not warn
        if asyncio.iscoroutine(coro):
            coro.close()
        raise RequestCancelledError()

    call = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        call.cancel()
        waiter.cancel()
        raise

    if call in done:
        waiter.cancel()
        return call.result()

    call.cancel()
    try:
        await call
    except asyncio.CancelledError:
        pass
    raise RequestCancelledError()

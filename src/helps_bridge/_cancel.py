"""Cancellation helpers built on `asyncio.Event`."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from helps_bridge._exceptions import cancelled_error

__all__ = ["raise_if_cancelled", "run_cancellable", "sleep_cancellable"]

T = TypeVar("T")


def raise_if_cancelled(cancel: Optional[asyncio.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise cancelled_error()


async def run_cancellable(awaitable: Awaitable[T], cancel: Optional[asyncio.Event]) -> T:
    """Await *awaitable*, abandoning it if *cancel* is set first."""
    if cancel is None:
        return await awaitable
    raise_if_cancelled(cancel)

    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        waiter.cancel()
    if not work.done():
        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        raise cancelled_error()
    return work.result()


async def sleep_cancellable(delay: float, cancel: Optional[asyncio.Event]) -> None:
    """Sleep for *delay* seconds, waking early (and raising) on cancellation."""
    if cancel is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except TimeoutError:
        return
    raise cancelled_error()

import asyncio
import datetime
import inspect
import time
from functools import partial
from typing import Callable, Any

import anyio


def set_timeout(
    delay_seconds: float,
    func: Callable,
    *args: Any,
    **kwargs: Any
) -> asyncio.Task:
    async def _runner():
        await asyncio.sleep(delay_seconds)

        result = func(*args, **kwargs)
        if asyncio.iscoroutine(result):
            await result

    return asyncio.create_task(_runner())


async def call_maybe_async(fn, *args, **kwargs):
    """
    Await fn if it is async; otherwise run it in a worker thread so a
    blocking HTTP call does not stall the event loop. The thread is
    abandoned (not killed) if the caller is cancelled.
    """
    if inspect.iscoroutinefunction(fn):
        return await fn(*args, **kwargs)

    result = await anyio.to_thread.run_sync(partial(fn, *args, **kwargs), abandon_on_cancel=True)
    if inspect.isawaitable(result):
        return await result
    return result


async def call_listener(fn, *args):
    result = fn(*args)
    if asyncio.iscoroutine(result):
        await result


def now_ms() -> int:
    return int(time.time() * 1000)


def today_iso() -> str:
    return datetime.date.today().isoformat()

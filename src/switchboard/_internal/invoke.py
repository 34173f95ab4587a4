"""Invoke helpers — call sync or async user code uniformly.

Response bodies, hooks, and ``Interface.deliver`` can be ``def`` or
``async def``. Any code that calls user-provided functions must handle
both cases. This module keeps the sync/async check in one place.

Usage::

    from switchboard._internal.invoke import invoke, invoke_in_thread

    result = await invoke(body, input, output)
    result = await invoke_in_thread(body, input, output)
"""

import functools
import inspect
from typing import Any

import anyio
import anyio.to_thread


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a function and await the result if it's awaitable.

    Sync functions run inline on the calling task::

        def body(input, output):
            output["chat_text"] = "hi"

        async def body(input, output):
            output["chat_text"] = await fetch_greeting()
    """
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


async def invoke_in_thread(
    func: Any,
    *args: Any,
    limiter: anyio.CapacityLimiter | None = None,
    **kwargs: Any,
) -> Any:
    """Like ``invoke``, but sync functions run in a worker thread.

    Used for deferred work so a blocking body (``time.sleep``, a slow
    HTTP call) never stalls the event loop. Without a ``limiter`` the
    thread pool is anyio's default, capped at 40 threads.
    """
    if inspect.iscoroutinefunction(func):
        return await func(*args, **kwargs)
    call = functools.partial(func, *args, **kwargs)
    result = await anyio.to_thread.run_sync(call, limiter=limiter)
    if inspect.isawaitable(result):
        result = await result
    return result

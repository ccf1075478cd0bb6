"""Invoke helpers — call sync or async handlers uniformly.

Registered handlers can be ``def`` or ``async def``. The dispatcher calls
them through this helper so the sync/async check lives in one place.

Usage::

    from restbind._internal.invoke import invoke

    result = await invoke(handler, *args, **kwargs)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable.

    Works with both sync and async callables::

        def lookup(id: int) -> Item:
            return items[id]

        async def lookup(id: int) -> Item:
            return await store.fetch(id)
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result

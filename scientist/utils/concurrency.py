"""Helpers for calling user supplied callables from async code."""

import asyncio
import inspect
from typing import Any, Callable


def is_async_callable(fn: Any) -> bool:
    """Is ``fn`` a coroutine function, or an object with an async ``__call__``?"""
    return inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(
        getattr(fn, "__call__", None)
    )


async def call_off_loop(fn: Callable[..., Any], *args: Any) -> Any:
    """
    Call ``fn`` without blocking the running event loop.

    Async callables are awaited directly. Anything else runs in the default
    executor through ``asyncio.to_thread``; if it hands back an awaitable,
    that is awaited on the loop.
    """
    if is_async_callable(fn):
        return await fn(*args)

    outcome = await asyncio.to_thread(fn, *args)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return outcome

"""Helpers for invoking user callbacks that may or may not be coroutines."""
import inspect
from collections.abc import Callable
from typing import Any


async def call_maybe_async(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call ``func`` and await the result when it is awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result

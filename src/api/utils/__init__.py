"""Helpers for calling the synchronous conversion service from async routes."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")


async def run_sync(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """Run *func* in a worker thread so the event loop stays free during HTTP calls."""

    return await asyncio.to_thread(func, *args, **kwargs)


__all__ = ["run_sync"]

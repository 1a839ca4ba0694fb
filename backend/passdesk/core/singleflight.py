"""
In-process single-flight execution.

Concurrent callers asking for the same key share one running task and all
receive its result. The task is shielded, so a caller that goes away (client
disconnect, timeout) does not cancel the work the others are waiting on.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Hashable, TypeVar

T = TypeVar("T")


class SingleFlight:
    def __init__(self) -> None:
        self._calls: Dict[Hashable, asyncio.Task] = {}

    def in_flight(self, key: Hashable) -> bool:
        task = self._calls.get(key)
        return task is not None and not task.done()

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._calls.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(fn())
            self._calls[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        if self._calls.get(key) is task:
            del self._calls[key]

"""
Optimistic commands.

Local state is changed first and the backend call runs as a task on the
running loop. A failed call is logged as a ``PersistenceFailure`` and the local
state is left as it is.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Iterable, TypeVar

from .errors import PersistenceFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

# the loop only keeps weak references to tasks
_running: set[asyncio.Task] = set()


@dataclass
class CommandResult(Generic[T]):
    value: T
    pending: asyncio.Future


def spawn(action: str, call: Awaitable[Any]) -> asyncio.Task:
    async def guarded():
        try:
            return await call
        except Exception as exc:
            failure = PersistenceFailure(action, exc)
            logger.exception("%s", failure)
            return failure

    task = asyncio.get_running_loop().create_task(guarded())
    _running.add(task)
    task.add_done_callback(_running.discard)
    return task


def settle(tasks: Iterable[asyncio.Future]) -> asyncio.Future:
    tasks = list(tasks)
    if tasks:
        return asyncio.gather(*tasks)
    done = asyncio.get_running_loop().create_future()
    done.set_result([])
    return done

"""
Detached background work with shutdown draining.

Side effects that must not hold up (or fail) the request that triggered them,
such as sending a password reset mail, are spawned here. Each task gets its
own timeout; failures are logged and never reach the original caller.
`main.py` calls `wait()` during shutdown so outstanding work can finish.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any

logger = logging.getLogger(__name__)


class TaskRegistry:
    def __init__(self, *, default_timeout: timedelta) -> None:
        self._default_timeout = default_timeout.total_seconds()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        name: str,
        timeout: timedelta | None = None,
    ) -> asyncio.Task[None]:
        limit = timeout.total_seconds() if timeout is not None else self._default_timeout
        task = asyncio.get_running_loop().create_task(self._run(func, args, name, limit), name=name)
        # The loop only keeps weak references to tasks.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(
        self,
        func: Callable[..., Awaitable[Any]],
        args: tuple[Any, ...],
        name: str,
        timeout: float,
    ) -> None:
        try:
            await asyncio.wait_for(func(*args), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("background_task_timeout name=%s timeout_s=%s", name, timeout)
        except asyncio.CancelledError:
            logger.warning("background_task_cancelled name=%s", name)
            raise
        except Exception:
            logger.exception("background_task_failed name=%s", name)

    async def wait(self, timeout: timedelta | None = None) -> bool:
        """
        Wait for outstanding tasks. Returns False if some were still running at the deadline.
        """
        if not self._tasks:
            return True

        limit = timeout.total_seconds() if timeout is not None else None
        _, still_running = await asyncio.wait(set(self._tasks), timeout=limit)
        if still_running:
            logger.warning("background_tasks_not_drained count=%s", len(still_running))
            return False
        return True

    async def cancel(self) -> None:
        tasks = set(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

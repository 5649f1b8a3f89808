"""
Keyed one-shot timers running on the asyncio event loop
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, List

logger = logging.getLogger(__name__)

class TimerRegistry:
    """Fire-once callbacks keyed by an arbitrary hashable, e.g. ("checkin_timeout", party_id)"""

    def __init__(self):
        self._tasks: Dict[Hashable, asyncio.Task] = {}

    def schedule(
        self,
        key: Hashable,
        delay: float,
        callback: Callable[..., Awaitable[Any]],
        *args: Any
    ) -> asyncio.Task:
        """Run ``callback(*args)`` after ``delay`` seconds, replacing any timer under ``key``"""
        self.cancel(key)
        task = asyncio.get_running_loop().create_task(self._run(key, max(delay, 0), callback, args))
        self._tasks[key] = task
        return task

    async def _run(self, key, delay, callback, args):
        await asyncio.sleep(delay)
        if self._tasks.get(key) is asyncio.current_task():
            del self._tasks[key]
        try:
            await callback(*args)
        except Exception:
            logger.exception(f"Timer {key} callback failed")

    def cancel(self, key: Hashable) -> bool:
        task = self._tasks.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending timer, returning how many were cancelled"""
        keys = list(self._tasks)
        for key in keys:
            self.cancel(key)
        return len(keys)

    def pending(self) -> List[Hashable]:
        return list(self._tasks)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

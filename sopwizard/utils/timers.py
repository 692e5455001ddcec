"""
Cancellable periodic tasks on the asyncio event loop.
"""
import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger("timers")


class PeriodicTask:
    """
    Calls ``callback`` every ``interval`` seconds until cancelled.

    The callback runs on the event loop. Errors it raises are logged and the
    timer keeps running, so a broken observer can never stop the owner.
    """
    
    def __init__(self, interval: float, callback: Callable[[], None], name: str = "periodic"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.callback = callback
        self.name = name
        self._task: Optional[asyncio.Task] = None
    
    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
    
    def start(self) -> None:
        """Start ticking. Calling start on a running task is a no-op."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
    
    def cancel(self) -> None:
        """Stop ticking. Safe to call more than once."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
    
    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.callback()
            except Exception as e:
                logger.warning("Periodic task %s callback failed: %s", self.name, e)

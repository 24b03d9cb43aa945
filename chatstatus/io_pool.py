"""A set of asyncio event loops, each running on its own thread."""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading

logger = logging.getLogger(__name__)


class LoopPool:
    """Hands out event loops round-robin; every loop runs until ``stop``."""

    def __init__(self, size: int = 2) -> None:
        if size < 1:
            raise ValueError("pool size must be at least 1")
        self._loops = [asyncio.new_event_loop() for _ in range(size)]
        self._cycle = itertools.cycle(self._loops)
        self._cycle_lock = threading.Lock()
        self._stopped = False
        self._threads = [
            threading.Thread(
                target=self._run, args=(loop,), name=f"loop-pool-{i}", daemon=True
            )
            for i, loop in enumerate(self._loops)
        ]
        for thread in self._threads:
            thread.start()

    @staticmethod
    def _run(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        loop.run_forever()

    def next_loop(self) -> asyncio.AbstractEventLoop:
        """Return the next loop in round-robin order."""
        with self._cycle_lock:
            return next(self._cycle)

    def stop(self) -> None:
        """Stop every loop, wait for its thread and close it."""
        if self._stopped:
            return
        self._stopped = True
        for loop in self._loops:
            loop.call_soon_threadsafe(loop.stop)
        for thread in self._threads:
            thread.join()
        for loop in self._loops:
            loop.close()
        logger.debug("loop pool stopped")

    def __enter__(self) -> LoopPool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
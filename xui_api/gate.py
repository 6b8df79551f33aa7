import asyncio
import logging
from types import TracebackType
from typing import Optional, Self

logger = logging.getLogger(__name__)


class Gate:
    """The single mutual-exclusion gate of one client instance.

    Every critical section that touches the panel, the session token or the
    cache runs as ``async with gate:``. Waiters are admitted in FIFO order and
    the gate is released on every exit path, exceptions included. It is not
    re-entrant: code already inside the gate must call the ``_locked``
    helpers, never a public method that acquires it again.
    """

    def __init__(self, name: str = "gate") -> None:
        self.name = name
        self._lock = asyncio.Lock()
        self._waiting = 0
        self.acquisitions = 0

    @property
    def waiting(self) -> int:
        """Number of callers currently queued for the gate."""
        return self._waiting

    def locked(self) -> bool:
        return self._lock.locked()

    async def __aenter__(self) -> Self:
        self._waiting += 1
        try:
            await self._lock.acquire()
        finally:
            self._waiting -= 1
        self.acquisitions += 1
        logger.debug("%s acquired (%d waiting)", self.name, self._waiting)
        return self

    async def __aexit__(self,
                        exc_type: Optional[type[BaseException]],
                        exc_val: Optional[BaseException],
                        exc_tb: Optional[TracebackType]) -> None:
        self._lock.release()
        logger.debug("%s released", self.name)

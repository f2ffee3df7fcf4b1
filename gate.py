import asyncio
import logging
from typing import Optional

from errors import ConfigError, GateClosedError

logger = logging.getLogger(__name__)


class Permit:
    """One admission slot handed out by a ConcurrencyGate."""

    def __init__(self, gate: "ConcurrencyGate"):
        self._gate = gate
        self.released = False

    def release(self):
        if self.released:
            return
        self.released = True
        self._gate._release()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.release()


class ConcurrencyGate:
    """Counting admission control: at most ``concurrency`` permits outstanding."""

    def __init__(self, concurrency: int):
        if concurrency < 1:
            raise ConfigError(f"Concurrency must be at least 1, got {concurrency}")
        self.concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)
        self._in_flight = 0
        self._closed_reason: Optional[str] = None
        self._waiters_wakeup = asyncio.Event()

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def closed(self) -> bool:
        return self._closed_reason is not None

    async def acquire(self) -> Permit:
        if self.closed:
            raise GateClosedError(f"Concurrency gate closed: {self._closed_reason}")

        if self._semaphore.locked():
            await self._wait_for_slot()
        else:
            await self._semaphore.acquire()  # free slot, does not suspend

        if self.closed:
            self._semaphore.release()
            raise GateClosedError(f"Concurrency gate closed: {self._closed_reason}")

        self._in_flight += 1
        return Permit(self)

    async def _wait_for_slot(self):
        # Race the semaphore against close() so waiters are woken when the gate is poisoned
        acquire_task = asyncio.ensure_future(self._semaphore.acquire())
        closed_task = asyncio.ensure_future(self._waiters_wakeup.wait())
        try:
            await asyncio.wait({acquire_task, closed_task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            if acquire_task.done() and not acquire_task.cancelled():
                self._semaphore.release()
            raise
        finally:
            closed_task.cancel()
            if not acquire_task.done():
                acquire_task.cancel()
        if not acquire_task.done() or acquire_task.cancelled():
            raise GateClosedError(f"Concurrency gate closed: {self._closed_reason}")
        acquire_task.result()

    def _release(self):
        self._in_flight -= 1
        self._semaphore.release()

    def close(self, reason: str):
        """Poison the gate: every pending and later acquire() fails."""
        if self.closed:
            return
        self._closed_reason = reason
        self._waiters_wakeup.set()
        logger.warning(f"Concurrency gate closed: {reason}")

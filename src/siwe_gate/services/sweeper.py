"""Background expiry sweep for the nonce store.

Expired nonces already fail validation on their own; the sweep only
reclaims the memory or rows they occupy.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from siwe_gate.core.errors import InternalFault
from siwe_gate.services.nonce_store import NonceStore

logger = logging.getLogger(__name__)


class NonceSweepWorker:
    """Periodically deletes expired nonces from a store."""

    def __init__(self, store: NonceStore, interval_seconds: float) -> None:
        self.store = store
        self.interval = max(0.01, float(interval_seconds))
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def sweep_once(self) -> int:
        return await asyncio.to_thread(self.store.sweep)

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.sweep_once()
            except InternalFault as e:
                logger.warning("NonceSweepWorker could not reach the store: %s", e)
            except (ValueError, TypeError, RuntimeError) as e:
                logger.error("NonceSweepWorker failed: %s", e, exc_info=True)

            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)

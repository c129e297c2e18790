"""
Heartbeat: probe every connection on a fixed interval and evict the silent ones.

A connection that still has a probe outstanding when the next sweep comes
around is evicted, so a dead peer is detected within one to two intervals.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class LivenessMonitor:
    def __init__(self, registry: ConnectionRegistry, interval: float = 30.0,
                 clock: Callable[[], float] = time.monotonic):
        self.registry = registry
        self.interval = interval
        self._clock = clock
        self._task: Optional[asyncio.Task] = None

    def acknowledge(self, conn_id: int):
        conn = self.registry.get(conn_id)
        if conn is None:
            return
        conn.liveness.probe_outstanding = False
        conn.liveness.last_ack = self._clock()

    def sweep(self) -> List[int]:
        """Run one heartbeat cycle. Returns the ids that were evicted."""
        evicted = []
        now = self._clock()
        for conn in self.registry.connections():
            record = conn.liveness
            if record.probe_outstanding:
                logger.warning(
                    f"WS#{conn.id} role={conn.role.value} missed heartbeat "
                    f"(last ack {now - record.last_ack:.1f}s ago), evicting"
                )
                self.registry.evict(conn.id)
                evicted.append(conn.id)
                continue
            record.probe_outstanding = True
            record.last_probe = now
            conn.send({"type": "ping", "t": int(time.time() * 1000)})
        return evicted

    async def run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Heartbeat sweep failed: {e}")

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
            logger.info(f"Heartbeat started, interval={self.interval}s")
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Heartbeat stopped")

"""
Live connections and the producer/viewer role slots.
"""

import asyncio
import itertools
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from .messages import Role

logger = logging.getLogger(__name__)

_CLOSE = None  # outbox sentinel: close the transport and stop pumping


class Transport(Protocol):
    """What the registry needs from an accepted socket (Starlette's WebSocket fits)."""

    async def send_text(self, data: str) -> None: ...
    async def close(self, code: int = 1000) -> None: ...


@dataclass
class LivenessRecord:
    last_ack: float
    probe_outstanding: bool = False
    last_probe: Optional[float] = None


class Connection:
    """
    One accepted transport.

    Outbound messages go through a bounded queue drained by `pump()`, so
    sending never waits on the network. A full queue drops the message.
    """

    def __init__(self, conn_id: int, transport: Transport, outbox_size: int = 256):
        self.id = conn_id
        self.transport = transport
        self.role = Role.UNBOUND
        self.created_at = time.time()
        self.closed = False
        self.liveness = LivenessRecord(last_ack=time.monotonic())
        self.outbox: "asyncio.Queue[Optional[str]]" = asyncio.Queue(maxsize=max(1, outbox_size))
        self._pump_task: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Task] = None

    @property
    def alive(self) -> bool:
        return not self.closed and not self.liveness.probe_outstanding

    def __repr__(self):
        return f"<Connection #{self.id} role={self.role.value}>"

    def send(self, payload: Dict[str, Any]) -> bool:
        return self.send_raw(json.dumps(payload))

    def send_raw(self, text: str) -> bool:
        if self.closed:
            logger.warning(f"WS#{self.id} closed, dropping outbound message")
            return False
        try:
            self.outbox.put_nowait(text)
        except asyncio.QueueFull:
            logger.warning(f"WS#{self.id} outbox full, dropping outbound message")
            return False
        return True

    def start_pump(self) -> asyncio.Task:
        if self._pump_task is None:
            self._pump_task = asyncio.create_task(self.pump())
        return self._pump_task

    def terminate(self):
        """
        Discard anything queued and close the transport.

        A pump stuck in a send to a dead reader is cancelled rather than
        waited on. Without a running loop the close is left to the pump.
        """
        self.closed = True
        while not self.outbox.empty():
            self.outbox.get_nowait()
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self.outbox.put_nowait(_CLOSE)
            return
        if self._pump_task is not None and not self._pump_task.done():
            self._pump_task.cancel()
        if self._close_task is None:
            self._close_task = asyncio.create_task(self._close_transport())

    async def _close_transport(self):
        try:
            await self.transport.close(code=1001)
        except Exception as e:
            logger.warning(f"WS#{self.id} close failed: {e}")

    async def pump(self):
        while True:
            text = await self.outbox.get()
            if text is _CLOSE:
                await self._close_transport()
                return
            try:
                await self.transport.send_text(text)
            except Exception as e:
                # left registered; liveness or the close event cleans up
                logger.warning(f"WS#{self.id} send failed: {e}")


class ConnectionRegistry:
    """
    Owns every live Connection and the two role slots.

    All methods are synchronous and take the same lock, so two role claims
    racing for a slot resolve in call order and a slot is never half-updated.
    """

    def __init__(self, outbox_size: int = 256):
        self._outbox_size = outbox_size
        self._connections: Dict[int, Connection] = {}
        self._slots: Dict[Role, Optional[int]] = {Role.PRODUCER: None, Role.VIEWER: None}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def __len__(self):
        return len(self._connections)

    def register(self, transport: Transport) -> int:
        with self._lock:
            conn = Connection(next(self._ids), transport, self._outbox_size)
            self._connections[conn.id] = conn
            logger.info(f"New connection WS#{conn.id} role=unbound total={len(self._connections)}")
            return conn.id

    def get(self, conn_id: int) -> Optional[Connection]:
        return self._connections.get(conn_id)

    def connections(self) -> List[Connection]:
        with self._lock:
            return list(self._connections.values())

    def bind_role(self, conn_id: int, role: Role) -> Optional[Connection]:
        """
        Put `conn_id` in the `role` slot. Returns the displaced holder, if any.

        The displaced connection is left open but reverts to unbound.
        """
        if role not in self._slots:
            return None
        with self._lock:
            conn = self._connections.get(conn_id)
            if conn is None or conn.closed:
                return None

            # switching sides frees the old slot
            if conn.role in self._slots and self._slots[conn.role] == conn.id:
                self._slots[conn.role] = None

            displaced = None
            previous_id = self._slots[role]
            if previous_id is not None and previous_id != conn.id:
                displaced = self._connections.get(previous_id)
                if displaced is not None:
                    displaced.role = Role.UNBOUND

            before = conn.role
            self._slots[role] = conn.id
            conn.role = role

        logger.info(f"WS#{conn.id} role assigned: {role.value} (before={before.value})")
        if displaced is not None:
            logger.info(f"WS#{displaced.id} displaced from {role.value}, left open")
        return displaced

    def bound(self, role: Role) -> Optional[Connection]:
        with self._lock:
            conn_id = self._slots.get(role)
            return self._connections.get(conn_id) if conn_id is not None else None

    def is_bound(self, role: Role) -> bool:
        return self.bound(role) is not None

    def lookup_counterpart(self, role: Role) -> Optional[Connection]:
        if role is Role.UNBOUND:
            return None
        return self.bound(role.counterpart())

    def unregister(self, conn_id: int) -> Optional[Connection]:
        with self._lock:
            conn = self._connections.pop(conn_id, None)
            if conn is None:
                return None
            conn.closed = True
            for role, holder in self._slots.items():
                if holder == conn_id:
                    self._slots[role] = None
                    logger.info(f"{role.value.upper()} disconnected (WS#{conn_id})")
            remaining = len(self._connections)
        logger.info(f"WS#{conn_id} unregistered, total={remaining}")
        return conn

    def evict(self, conn_id: int) -> Optional[Connection]:
        with self._lock:
            conn = self._connections.get(conn_id)
            if conn is None:
                return None
            conn.terminate()
            return self.unregister(conn_id)

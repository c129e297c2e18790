"""
Hub: the single state object that owns the registry, stores, monitor and relay.
"""

import time
from typing import Any, Dict, List, Optional

from .liveness import LivenessMonitor
from .messages import Role
from .registry import Connection, ConnectionRegistry, Transport
from .relay import SignalingRelay
from .stores import CapabilityStore, ConfigStore


class Hub:
    def __init__(self, heartbeat_seconds: float = 30.0, outbox_size: int = 256):
        self.registry = ConnectionRegistry(outbox_size=outbox_size)
        self.config = ConfigStore()
        self.caps = CapabilityStore()
        self.monitor = LivenessMonitor(self.registry, interval=heartbeat_seconds)
        self.relay = SignalingRelay(self.registry, self.config, self.caps, self.monitor)

    def connect(self, transport: Transport) -> Optional[Connection]:
        return self.registry.get(self.registry.register(transport))

    def disconnect(self, conn_id: int):
        self.registry.unregister(conn_id)

    @property
    def producer_connected(self) -> bool:
        return self.registry.is_bound(Role.PRODUCER)

    @property
    def viewer_connected(self) -> bool:
        return self.registry.is_bound(Role.VIEWER)

    def config_view(self) -> Dict[str, Any]:
        return {
            "connected": self.producer_connected or self.viewer_connected,
            "androidConnected": self.producer_connected,
            "browserConnected": self.viewer_connected,
            **self.config.get().model_dump(),
        }

    def caps_view(self) -> Dict[str, Any]:
        return {
            **self.caps.get().model_dump(),
            "current": self.config.get().current(),
        }

    def connections_view(self) -> List[Dict[str, Any]]:
        now = time.time()
        mono = time.monotonic()
        views = []
        for conn in self.registry.connections():
            record = conn.liveness
            views.append({
                "id": conn.id,
                "role": conn.role.value,
                "age_seconds": round(now - conn.created_at, 1),
                "probe_outstanding": record.probe_outstanding,
                "last_ack_seconds_ago": round(mono - record.last_ack, 1),
                "last_probe_seconds_ago": (
                    round(mono - record.last_probe, 1) if record.last_probe is not None else None
                ),
            })
        return views

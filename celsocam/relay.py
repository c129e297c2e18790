"""
Signaling relay: classify each inbound frame and route it.

The relay does not look inside offers, answers or ICE candidates. It only
decides who gets them, which keeps it independent of the negotiation
protocol the two endpoints speak.
"""

import logging
from typing import Any, Dict, Union

from .liveness import LivenessMonitor
from .messages import (
    CapabilityReport,
    Orientation,
    Ping,
    ProbeReply,
    Role,
    RoleClaim,
    Signal,
    Unknown,
    ViewerReady,
    decode,
)
from .models import CaptureConfig
from .registry import Connection, ConnectionRegistry
from .stores import CapabilityStore, ConfigStore

logger = logging.getLogger(__name__)


class SignalingRelay:
    def __init__(self, registry: ConnectionRegistry, config: ConfigStore,
                 caps: CapabilityStore, monitor: LivenessMonitor):
        self.registry = registry
        self.config = config
        self.caps = caps
        self.monitor = monitor

    # ------------------ inbound ------------------

    def handle(self, conn_id: int, raw: Union[str, bytes]):
        """Process one frame from `conn_id`. Never raises on bad input."""
        conn = self.registry.get(conn_id)
        if conn is None:
            return
        msg = decode(raw)

        if isinstance(msg, RoleClaim):
            self._on_role_claim(conn, msg.role)
        elif isinstance(msg, CapabilityReport):
            doc = self.caps.replace(msg.report)
            logger.info(f"WS#{conn.id} capabilities updated, cameras={len(doc.cameras)}")
        elif isinstance(msg, Signal):
            self._forward(conn, msg.kind, msg.raw)
        elif isinstance(msg, Orientation):
            if conn.role is Role.PRODUCER:
                self._forward(conn, "orientation", msg.raw)
            else:
                logger.debug(f"WS#{conn.id} orientation from {conn.role.value} ignored")
        elif isinstance(msg, ViewerReady):
            self._on_viewer_ready(conn)
        elif isinstance(msg, Ping):
            self.monitor.acknowledge(conn.id)
            conn.send({"type": "pong"} if msg.t is None else {"type": "pong", "t": msg.t})
        elif isinstance(msg, ProbeReply):
            self.monitor.acknowledge(conn.id)
        elif isinstance(msg, Unknown):
            if msg.reason == "undecodable":
                logger.warning(f"WS#{conn.id} dropped undecodable frame")
            else:
                logger.debug(f"WS#{conn.id} dropped message type={msg.kind} ({msg.reason})")

    def _on_role_claim(self, conn: Connection, role: Role):
        self.registry.bind_role(conn.id, role)
        if role is Role.PRODUCER and conn.role is Role.PRODUCER:
            conn.send({"type": "request-caps"})
            conn.send(self._config_message(self.config.get()))

    def _on_viewer_ready(self, conn: Connection):
        producer = self.registry.bound(Role.PRODUCER)
        logger.info(f"WS#{conn.id} browser-ready -> producer ok={producer is not None}")
        if conn.role is Role.VIEWER and producer is not None:
            producer.send({"type": "browser-ready"})

    def _forward(self, conn: Connection, kind: str, raw: str):
        target = self.registry.lookup_counterpart(conn.role)
        if target is None:
            logger.info(f"WS#{conn.id} role={conn.role.value} {kind} dropped: no counterpart")
            return
        logger.debug(f"WS#{conn.id} -> WS#{target.id} {kind} bytes={len(raw)}")
        target.send_raw(raw)

    # ------------------ outbound triggers ------------------

    @staticmethod
    def _config_message(doc: CaptureConfig) -> Dict[str, Any]:
        return {"type": "config", **doc.model_dump()}

    def update_config(self, partial: Dict[str, Any]) -> CaptureConfig:
        """Apply a partial config and push the result to the producer, if bound."""
        doc = self.config.apply(partial)
        producer = self.registry.bound(Role.PRODUCER)
        if producer is not None:
            if not producer.send(self._config_message(doc)):
                logger.warning(f"Config push to producer WS#{producer.id} failed")
        return doc

    def request_capabilities(self) -> bool:
        producer = self.registry.bound(Role.PRODUCER)
        if producer is None:
            logger.info("Capability refresh requested with no producer bound")
            return False
        return producer.send({"type": "request-caps"})

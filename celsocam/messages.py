"""
Inbound message decoding.

Every frame a client sends is decoded into exactly one of the message
classes below. Anything that does not fit becomes `Unknown`; decoding never
raises.

    {"role": "producer" | "android"}          -> RoleClaim(PRODUCER)
    {"role": "viewer" | "browser"}            -> RoleClaim(VIEWER)
    {"type": "caps", "payload": {...}}        -> CapabilityReport
    {"type": "offer" | "answer" | "ice", ...} -> Signal (kept as raw text)
    {"type": "orientation", ...}              -> Orientation (kept as raw text)
    {"type": "browser-ready"}                 -> ViewerReady
    {"type": "ping", "t": ...}                -> Ping
    {"type": "pong"}                          -> ProbeReply
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


class Role(str, Enum):
    UNBOUND = "unbound"
    PRODUCER = "producer"
    VIEWER = "viewer"

    def counterpart(self) -> "Role":
        if self is Role.PRODUCER:
            return Role.VIEWER
        if self is Role.VIEWER:
            return Role.PRODUCER
        return Role.UNBOUND


# role names accepted on the wire; "android" and "browser" are what the phone app and web page send
ROLE_ALIASES: Dict[str, Role] = {
    "producer": Role.PRODUCER,
    "android": Role.PRODUCER,
    "viewer": Role.VIEWER,
    "browser": Role.VIEWER,
}

SIGNAL_TYPES = ("offer", "answer", "ice")


@dataclass(frozen=True)
class RoleClaim:
    role: Role


@dataclass(frozen=True)
class CapabilityReport:
    report: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Signal:
    kind: str
    raw: str


@dataclass(frozen=True)
class Orientation:
    raw: str


@dataclass(frozen=True)
class ViewerReady:
    pass


@dataclass(frozen=True)
class Ping:
    t: Any = None


@dataclass(frozen=True)
class ProbeReply:
    pass


@dataclass(frozen=True)
class Unknown:
    kind: Optional[str] = None
    reason: str = "unrecognized"


Message = Union[RoleClaim, CapabilityReport, Signal, Orientation, ViewerReady, Ping, ProbeReply, Unknown]


def decode(raw: Union[str, bytes]) -> Message:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return Unknown(reason="undecodable")
    try:
        msg = json.loads(raw)
    except (ValueError, TypeError, RecursionError):
        return Unknown(reason="undecodable")
    if not isinstance(msg, dict):
        return Unknown(reason="not an object")

    role = msg.get("role")
    if isinstance(role, str) and role in ROLE_ALIASES:
        return RoleClaim(ROLE_ALIASES[role])

    mtype = msg.get("type")
    if not isinstance(mtype, str):
        return Unknown(reason="missing type")

    if mtype == "caps":
        payload = msg.get("payload")
        return CapabilityReport(payload if isinstance(payload, dict) else msg)
    if mtype in SIGNAL_TYPES:
        # forwarded verbatim, never re-encoded
        return Signal(mtype, raw)
    if mtype == "orientation":
        return Orientation(raw)
    if mtype == "browser-ready":
        return ViewerReady()
    if mtype == "ping":
        return Ping(msg.get("t"))
    if mtype == "pong":
        return ProbeReply()
    return Unknown(kind=mtype)

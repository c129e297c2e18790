import json

import pytest

from celsocam.messages import (
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


@pytest.mark.parametrize("name,role", [
    ("producer", Role.PRODUCER),
    ("android", Role.PRODUCER),
    ("viewer", Role.VIEWER),
    ("browser", Role.VIEWER),
])
def test_role_claims(name, role):
    assert decode(json.dumps({"role": name})) == RoleClaim(role)


def test_unknown_role_falls_through_to_type():
    assert decode(json.dumps({"role": "toaster", "type": "pong"})) == ProbeReply()
    assert isinstance(decode(json.dumps({"role": "toaster"})), Unknown)


def test_signals_keep_raw_text():
    raw = '{"type": "ice",  "candidate": {"sdpMid": "0"}}'
    msg = decode(raw)
    assert msg == Signal("ice", raw)


def test_caps_payload_or_inline():
    assert decode(json.dumps({"type": "caps", "payload": {"cameras": []}})) == CapabilityReport({"cameras": []})
    inline = {"type": "caps", "cameras": [{"name": "0"}]}
    assert decode(json.dumps(inline)).report == inline


def test_control_messages():
    assert isinstance(decode('{"type": "orientation", "rotation": 90}'), Orientation)
    assert decode('{"type": "browser-ready"}') == ViewerReady()
    assert decode('{"type": "ping", "t": 12}') == Ping(12)
    assert decode(b'{"type": "pong"}') == ProbeReply()


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", "42", '{"sdp": "x"}', b"\xff\xfe"])
def test_garbage_is_unknown(raw):
    assert isinstance(decode(raw), Unknown)


def test_unrecognized_type_keeps_kind():
    assert decode('{"type": "selfie"}') == Unknown(kind="selfie")


def test_counterpart():
    assert Role.PRODUCER.counterpart() is Role.VIEWER
    assert Role.VIEWER.counterpart() is Role.PRODUCER
    assert Role.UNBOUND.counterpart() is Role.UNBOUND


def test_deeply_nested_frame_is_unknown():
    raw = "[" * 100000 + "]" * 100000
    assert decode(raw) == Unknown(reason="undecodable")

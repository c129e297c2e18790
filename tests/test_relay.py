import json

from celsocam.messages import Role
from celsocam.models import ASPECT_MODES


def send(hub, conn, payload):
    hub.relay.handle(conn.id, json.dumps(payload))


def test_producer_claim_gets_caps_request_and_config(hub, connect, drain):
    a = connect()
    send(hub, a, {"role": "producer"})
    out = drain(a)
    assert out[0] == {"type": "request-caps"}
    assert out[1]["type"] == "config"
    assert out[1]["width"] == 1280
    assert out[1]["bitrateKbps"] == 6000


def test_viewer_claim_gets_nothing(hub, connect, drain):
    b = connect()
    send(hub, b, {"role": "browser"})
    assert drain(b) == []
    assert hub.registry.bound(Role.VIEWER) is b


def test_signal_without_counterpart_goes_nowhere(hub, connect, drain):
    a = connect("producer")
    idle = connect()
    send(hub, a, {"type": "offer", "sdp": "x"})
    send(hub, idle, {"type": "ice", "candidate": "c"})
    assert drain(a) == []
    assert drain(idle) == []


def test_signal_forwarded_verbatim(hub, connect):
    a = connect("producer")
    b = connect("viewer")
    raw = '{"type":"answer",  "sdp":"v=0\\r\\n", "extra": [1, 2]}'
    hub.relay.handle(b.id, raw)
    assert a.outbox.get_nowait() == raw


def test_end_to_end_rebinding(hub, connect, drain):
    a = connect()
    send(hub, a, {"role": "producer"})
    assert [m["type"] for m in drain(a)] == ["request-caps", "config"]

    b = connect()
    send(hub, b, {"role": "viewer"})

    send(hub, a, {"type": "offer", "sdp": "x"})
    assert drain(b) == [{"type": "offer", "sdp": "x"}]
    send(hub, b, {"type": "answer", "sdp": "y"})
    assert drain(a) == [{"type": "answer", "sdp": "y"}]

    c = connect()
    send(hub, c, {"role": "producer"})
    assert [m["type"] for m in drain(c)] == ["request-caps", "config"]
    assert hub.registry.bound(Role.PRODUCER) is c
    assert not a.closed
    assert hub.registry.get(a.id) is a

    send(hub, a, {"type": "offer", "sdp": "stale"})
    assert drain(b) == []
    send(hub, b, {"type": "ice", "candidate": "c1"})
    assert drain(c) == [{"type": "ice", "candidate": "c1"}]
    assert drain(a) == []


def test_orientation_only_flows_producer_to_viewer(hub, connect, drain):
    a = connect("producer")
    b = connect("viewer")
    send(hub, b, {"type": "orientation", "rotation": 90})
    assert drain(a) == []
    send(hub, a, {"type": "orientation", "rotation": 270})
    assert drain(b) == [{"type": "orientation", "rotation": 270}]


def test_capability_report_replaces_document(hub, connect):
    a = connect("producer")
    send(hub, a, {"type": "caps", "payload": {
        "cameras": [{"name": "0", "label": "Back", "facing": "back"}],
        "supportedAspects": ["R16_9", "R4_3"],
    }})
    assert [c.name for c in hub.caps.get().cameras] == ["0"]
    assert hub.caps.get().supportedAspects == ["R16_9", "R4_3"]

    send(hub, a, {"type": "caps", "cameras": []})
    assert hub.caps.get().cameras == []
    assert hub.caps.get().supportedAspects == ASPECT_MODES


def test_browser_ready_reaches_producer(hub, connect, drain):
    b = connect("viewer")
    send(hub, b, {"type": "browser-ready"})
    a = connect("producer")
    send(hub, b, {"type": "browser-ready"})
    assert drain(a) == [{"type": "browser-ready"}]


def test_garbage_and_unknown_types_have_no_effect(hub, connect, drain):
    a = connect("producer")
    b = connect("viewer")
    before = (hub.config.get(), hub.caps.get())
    hub.relay.handle(a.id, "{not json")
    hub.relay.handle(a.id, b"\x00\x01")
    send(hub, a, {"type": "selfie"})
    send(hub, a, ["offer"])
    assert drain(a) == [] and drain(b) == []
    assert (hub.config.get(), hub.caps.get()) == before


def test_message_from_unregistered_connection_ignored(hub, connect, drain):
    b = connect("viewer")
    hub.relay.handle(999, json.dumps({"type": "offer"}))
    assert drain(b) == []


def test_update_config_pushes_to_producer(hub, connect, drain):
    a = connect("producer")
    b = connect("viewer")
    doc = hub.relay.update_config({"bitrateKbps": 99999, "width": "abc", "fps": 60})
    assert doc.bitrateKbps == 20000
    assert doc.width == 1280
    pushed = drain(a)
    assert len(pushed) == 1
    assert pushed[0]["type"] == "config"
    assert pushed[0]["bitrateKbps"] == 20000
    assert pushed[0]["fps"] == 60
    assert drain(b) == []


def test_update_config_without_producer_still_applies(hub):
    assert hub.relay.update_config({"bitrateKbps": 1}).bitrateKbps == 300
    assert hub.config.get().bitrateKbps == 300


def test_request_capabilities(hub, connect, drain):
    assert hub.relay.request_capabilities() is False
    a = connect("producer")
    assert hub.relay.request_capabilities() is True
    assert drain(a) == [{"type": "request-caps"}]


def test_ping_without_timestamp_gets_bare_pong(hub, connect, drain):
    a = connect()
    send(hub, a, {"type": "ping"})
    assert drain(a) == [{"type": "pong"}]


def test_deeply_nested_frame_keeps_producer_bound(hub, connect, drain):
    a = connect("producer")
    hub.relay.handle(a.id, "[" * 100000 + "]" * 100000)
    assert hub.registry.bound(Role.PRODUCER) is a
    assert drain(a) == []

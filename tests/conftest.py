import json

import pytest

from celsocam.hub import Hub


class FakeTransport:
    def __init__(self, fail=False):
        self.sent = []
        self.closed_with = None
        self.fail = fail

    async def send_text(self, data):
        if self.fail:
            raise ConnectionError("peer went away")
        self.sent.append(data)

    async def close(self, code=1000):
        self.closed_with = code


def drain_outbox(conn):
    """Pull every queued outbound message off a connection, decoded."""
    out = []
    while not conn.outbox.empty():
        item = conn.outbox.get_nowait()
        if item is not None:
            out.append(json.loads(item))
    return out


@pytest.fixture
def hub():
    return Hub(heartbeat_seconds=3600)


@pytest.fixture
def drain():
    return drain_outbox


@pytest.fixture
def connect(hub):
    def _connect(role=None):
        conn = hub.connect(FakeTransport())
        if role is not None:
            hub.relay.handle(conn.id, json.dumps({"role": role}))
            drain_outbox(conn)
        return conn
    return _connect

#!/usr/bin/env python3
"""
Smoke check against a running relay: REST endpoints plus a producer/viewer handshake.

    celsocam-smoke --url http://localhost:8080
"""

import argparse
import asyncio
import json
import sys

import requests
import websockets


def parse_args():
    ap = argparse.ArgumentParser(description="Smoke-test a running Celsocam relay.")
    ap.add_argument("--url", default="http://localhost:8080", help="Base HTTP URL of the relay")
    ap.add_argument("--timeout", type=float, default=5.0, help="Seconds to wait for each reply")
    return ap.parse_args()


def check_rest_api(base_url: str, timeout: float) -> bool:
    """Hit the read-only endpoints"""
    print("🌐 Testing REST API endpoints...")
    ok = True
    for path in ("/health", "/api/config", "/api/caps"):
        try:
            response = requests.get(f"{base_url}{path}", timeout=timeout)
            if response.status_code == 200:
                print(f"✅ {path} working")
            else:
                print(f"❌ {path} failed: {response.status_code}")
                ok = False
        except requests.RequestException as e:
            print(f"❌ {path} error: {e}")
            ok = False
    return ok


async def check_handshake(ws_url: str, timeout: float) -> bool:
    """Claim both roles and relay one offer producer -> viewer"""
    print("🔌 Testing producer/viewer handshake...")
    try:
        async with websockets.connect(ws_url) as producer, websockets.connect(ws_url) as viewer:
            await producer.send(json.dumps({"role": "producer"}))
            first = json.loads(await asyncio.wait_for(producer.recv(), timeout=timeout))
            if first.get("type") != "request-caps":
                print(f"❌ Expected request-caps, got {first}")
                return False
            config = json.loads(await asyncio.wait_for(producer.recv(), timeout=timeout))
            print(f"📨 Producer got config: {config}")

            await viewer.send(json.dumps({"role": "viewer"}))
            # round-trip a ping so the viewer claim is processed before the offer
            await viewer.send(json.dumps({"type": "ping", "t": 1}))
            await asyncio.wait_for(viewer.recv(), timeout=timeout)

            offer = {"type": "offer", "sdp": "smoke-test"}
            await producer.send(json.dumps(offer))
            received = json.loads(await asyncio.wait_for(viewer.recv(), timeout=timeout))
            if received != offer:
                print(f"❌ Viewer received {received}")
                return False
            print("✅ Offer relayed to viewer")
            return True
    except asyncio.TimeoutError:
        print("❌ Timed out waiting for the relay")
    except (OSError, websockets.exceptions.WebSocketException) as e:
        print(f"❌ WebSocket test failed: {e}")
    return False


def main():
    args = parse_args()
    base_url = args.url.rstrip("/")
    ws_url = base_url.replace("http", "ws", 1) + "/ws"

    print(f"📍 Relay URL: {base_url}")
    print("=" * 50)
    rest_ok = check_rest_api(base_url, args.timeout)
    ws_ok = asyncio.run(check_handshake(ws_url, args.timeout))
    print("=" * 50)
    print("🏁 Smoke check passed" if rest_ok and ws_ok else "💥 Smoke check failed")
    sys.exit(0 if rest_ok and ws_ok else 1)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
filterrelay demo — publish a few events and show who would receive them.

Run with: python examples/publish_demo.py
Relay must be running: filterrelay serve (http://localhost:3000)

Open a subscriber first (any WebSocket client), e.g. in a browser console:
    ws = new WebSocket("ws://localhost:3000/ws/orders")
    ws.onmessage = (e) => console.log(JSON.parse(e.data))
    ws.onopen = () => ws.send(JSON.stringify({type: "register_filters", data: {business_id: 1}}))
"""

import sys

import httpx

BASE = "http://localhost:3000/api/v1"


def main():
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    try:
        health = client.get("/health").json()
    except httpx.ConnectError:
        print(f"Relay not reachable at {BASE}")
        print("Start it with:  filterrelay serve")
        sys.exit(1)
    print(f"Relay {health['version']}: {health['total_subscribers']} subscriber(s) "
          f"in {health['total_scopes']} scope(s)")

    # ── Preview, then publish ─────────────────────────────────────
    for business_id in (1, "1", 2):
        criteria = {"business_id": business_id}
        preview = client.post("/subscribers/match", json={"scope": "orders", "filter": criteria}).json()
        print(f"\n{criteria!r} would reach {preview['matching_subscribers']} subscriber(s)")

        resp = client.post("/publish", json={
            "scope": "orders",
            "filter": criteria,
            "event_type": "order.created",
            "payload": {"business_id": business_id, "total": 19.99},
        })
        assert resp.status_code == 200, f"Publish failed: {resp.text}"
        result = resp.json()
        print(f"  published: delivered {result['delivered']}/{result['attempted']}")


if __name__ == "__main__":
    main()

"""Simple GET API smoke test against a running server."""

from __future__ import annotations

import json
import os
import urllib.error
import urllib.request
from typing import Any


BASE_URL = os.environ.get("SMOKE_BASE_URL", "http://127.0.0.1:5000")


def http_get_json(url: str) -> tuple[int, Any]:
    req = urllib.request.Request(url, method="GET")
    try:
        with urllib.request.urlopen(req, timeout=10) as resp:
            status = int(resp.status)
            body = resp.read().decode("utf-8")
            return status, json.loads(body) if body else {}
    except urllib.error.HTTPError as exc:
        body = exc.read().decode("utf-8")
        payload = json.loads(body) if body else {}
        return int(exc.code), payload


def assert_status(status: int, expected: int | set[int], url: str) -> None:
    allowed = expected if isinstance(expected, set) else {expected}
    if status not in allowed:
        raise AssertionError(f"GET {url} expected {sorted(allowed)}, got {status}")


def main() -> int:
    print("Testing GET endpoints:")
    url = f"{BASE_URL}/conversations"
    status, payload = http_get_json(url)
    assert_status(status, 200, url)
    print(f"OK: {url}")

    conversations = payload.get("conversations", [])
    if not isinstance(conversations, list) or not conversations:
        print("No conversations available to test detail endpoints.")
        return 0

    conversation_id = str(conversations[0].get("conversation_id") or "")
    if not conversation_id:
        raise AssertionError("conversation_id missing in conversations response.")

    for suffix, expected in (
        ("", 200),
        ("/questions", {200, 400}),
        ("/document", {200, 400}),
    ):
        url = f"{BASE_URL}/conversations/{conversation_id}{suffix}"
        status, _ = http_get_json(url)
        assert_status(status, expected, url)
        print(f"OK: {url} ({status})")

    url = f"{BASE_URL}/conversations/does-not-exist"
    status, _ = http_get_json(url)
    assert_status(status, 404, url)
    print(f"OK: {url} ({status})")

    print("API GET smoke test passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

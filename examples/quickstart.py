#!/usr/bin/env python3
"""
bday Quickstart — a whole session lifecycle in one script.

Register → login → /me → refresh (rotation) → replay rejected → logout.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:8080
"""

import sys

import httpx

from _common import BASE, bearer, check_backend, demo_credentials


def main():
    check_backend()
    client = httpx.Client(base_url=BASE, timeout=10)
    email, password = demo_credentials()

    # ── Register ──────────────────────────────────────────────────
    print(f"\n1. Registering {email}...")
    resp = client.post("/auth/register", json={"email": email, "password": password, "name": "Demo"})
    assert resp.status_code == 201, f"Failed: {resp.text}"
    registered = resp.json()
    print(f"   Access token expires at {registered['expires_at']}")

    # ── Duplicate registration ────────────────────────────────────
    resp = client.post("/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 409, f"Expected 409, got {resp.status_code}"
    print("   Second registration rejected (409) ✓")

    # ── Login ─────────────────────────────────────────────────────
    print("\n2. Logging in...")
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    tokens = resp.json()

    resp = client.post("/auth/login", json={"email": email, "password": "wrong-password"})
    assert resp.status_code == 401
    print("   Wrong password rejected (401) ✓")

    # ── Current user ──────────────────────────────────────────────
    print("\n3. Fetching /auth/me...")
    me = client.get("/auth/me", headers=bearer(tokens)).json()
    print(f"   {me['email']} ({me['id'][:8]}...) via {', '.join(me['providers'])}")

    # ── Refresh ───────────────────────────────────────────────────
    print("\n4. Refreshing...")
    old_refresh = tokens["refresh_token"]
    resp = client.post("/auth/refresh", json={"refresh_token": old_refresh})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    tokens = resp.json()
    print("   New pair issued, old refresh token revoked")

    resp = client.post("/auth/refresh", json={"refresh_token": old_refresh})
    assert resp.status_code == 401
    print("   Replaying the old refresh token rejected (401) ✓")

    # ── Logout ────────────────────────────────────────────────────
    print("\n5. Logging out...")
    resp = client.post("/auth/logout", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 204
    resp = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 401
    print("   Session ended ✓")

    print("\nDone.")


if __name__ == "__main__":
    try:
        main()
    except AssertionError as e:
        print(f"\nFAILED: {e}")
        sys.exit(1)

"""
Shared helpers for bday examples.

Handles the health check and a throwaway account so each example can
focus on its specific flow.
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8080/api/v1"


def check_backend() -> None:
    """Verify the backend is reachable and healthy."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  bday serve --reload")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Postgres: {'✓' if health['postgres'] == 'ok' else '✗'}")

    if health["postgres"] != "ok":
        print("\nERROR: Postgres is not connected. Start it and run: alembic upgrade head")
        sys.exit(1)


def demo_credentials() -> tuple[str, str]:
    """A unique email per run so examples are idempotent."""
    run_id = uuid.uuid4().hex[:8]
    return f"demo-{run_id}@example.com", "demo-password-123"


def bearer(tokens: dict) -> dict:
    return {"Authorization": f"Bearer {tokens['access_token']}"}

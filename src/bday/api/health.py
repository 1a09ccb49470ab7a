"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running
and Postgres is reachable.
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from bday import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with request.app.state.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["postgres"] = "ok"
    except Exception as e:
        checks["postgres"] = f"error: {type(e).__name__}"

    status = "healthy" if checks["postgres"] == "ok" else "degraded"
    return {"status": status, **checks}

"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Every long-lived collaborator (engine, token signer, social
verifier) is built here from one Settings value and parked on app.state;
request dependencies pick them up from there.

Lifespan only handles shutdown: dispose the DB pool and close the HTTP
client used for Google/Apple key fetches.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bday import __version__
from bday.api import api_router
from bday.auth.social import build_social_verifier
from bday.auth.tokens import TokenSettings, TokenSigner
from bday.config import Settings, get_settings
from bday.db.engine import build_engine, build_session_factory
from bday.middleware.request_id import RequestIdMiddleware
from bday.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    settings: Settings = app.state.settings
    logger.info(
        "bday.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        google_enabled=bool(settings.google_client_id),
        apple_enabled=bool(settings.apple_client_id),
    )

    yield

    logger.info("bday.shutdown")
    await app.state.http_client.aclose()
    await app.state.engine.dispose()


async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    """Anything the routes didn't map becomes a bare 500 — no details leak."""
    logger.exception("bday.unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="bday API",
        description="Accounts and sessions for the birthday reminder app",
        version=__version__,
        lifespan=lifespan,
    )

    engine = build_engine(settings)
    http_client = httpx.AsyncClient(timeout=settings.identity_http_timeout_seconds)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.http_client = http_client
    app.state.token_signer = TokenSigner(TokenSettings.from_settings(settings))
    app.state.social_verifier = build_social_verifier(settings, http_client=http_client)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → Security → RequestId → handler
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(Exception, unhandled_error)
    app.include_router(api_router)

    return app

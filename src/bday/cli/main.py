"""bday CLI — run the API and do session housekeeping.

Usage:
    bday serve                          # Run the API with uvicorn
    bday purge-tokens                   # Delete expired refresh tokens (cron this)
    bday revoke-sessions alice@x.com    # Sign a user out everywhere
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

import click

from bday import __version__
from bday.auth.social import build_social_verifier
from bday.auth.tokens import TokenSettings, TokenSigner
from bday.config import Settings, get_settings
from bday.db.engine import build_engine, build_session_factory
from bday.repositories.sql import SqlAccountRepository
from bday.services.auth_service import AuthService


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


@asynccontextmanager
async def _auth_service(settings: Settings) -> AsyncIterator[AuthService]:
    """An AuthService on a one-off engine, disposed on exit."""
    engine = build_engine(settings)
    try:
        async with build_session_factory(engine)() as session:
            yield AuthService(
                SqlAccountRepository(session),
                TokenSigner(TokenSettings.from_settings(settings)),
                build_social_verifier(settings),
                bcrypt_rounds=settings.bcrypt_rounds,
            )
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="bday")
def main():
    """bday — accounts and sessions for the birthday reminder app."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: BDAY_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: BDAY_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "bday.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("purge-tokens")
def purge_tokens():
    """Delete refresh tokens past their expiry."""
    count = _run(_purge_tokens_impl(get_settings()))
    click.secho(f"Deleted {count} expired refresh token(s)", fg="green")


async def _purge_tokens_impl(settings: Settings) -> int:
    async with _auth_service(settings) as svc:
        return await svc.purge_expired_tokens()


@main.command("revoke-sessions")
@click.argument("email")
def revoke_sessions(email: str):
    """Revoke every refresh token held by the user with EMAIL."""
    count = _run(_revoke_sessions_impl(get_settings(), email))
    if count is None:
        click.secho(f"No user with email {email}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Revoked {count} session(s) for {email}", fg="green")


async def _revoke_sessions_impl(settings: Settings, email: str) -> int | None:
    async with _auth_service(settings) as svc:
        user = await svc.repo.get_user_by_email(email)
        if user is None:
            return None
        return await svc.revoke_all_sessions(user.id)


if __name__ == "__main__":
    main()

"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to build the
services for a request and to resolve the caller from the
`Authorization: Bearer <access token>` header.

get_account_repository is the single seam between HTTP and storage —
tests override it with an in-memory repository.
"""

import uuid
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bday.auth.errors import InvalidTokenError
from bday.auth.social import SocialVerifier
from bday.auth.tokens import TokenSigner
from bday.db.engine import get_db
from bday.repositories.base import AccountRepository
from bday.repositories.sql import SqlAccountRepository
from bday.services.auth_service import AuthService
from bday.services.user_service import UserService


@dataclass(frozen=True)
class CurrentIdentity:
    """The caller, as proven by a valid access token."""

    user_id: uuid.UUID
    email: str


def get_token_signer(request: Request) -> TokenSigner:
    return request.app.state.token_signer


def get_social_verifier(request: Request) -> SocialVerifier:
    return request.app.state.social_verifier


def get_account_repository(db: AsyncSession = Depends(get_db)) -> AccountRepository:
    return SqlAccountRepository(db)


def get_auth_service(
    request: Request,
    repo: AccountRepository = Depends(get_account_repository),
    signer: TokenSigner = Depends(get_token_signer),
    social: SocialVerifier = Depends(get_social_verifier),
) -> AuthService:
    return AuthService(
        repo,
        signer,
        social,
        bcrypt_rounds=request.app.state.settings.bcrypt_rounds,
    )


def get_user_service(
    repo: AccountRepository = Depends(get_account_repository),
) -> UserService:
    return UserService(repo)


def get_current_user(
    authorization: str | None = Header(None),
    signer: TokenSigner = Depends(get_token_signer),
) -> CurrentIdentity:
    """Resolve the caller from a Bearer access token (401 otherwise)."""
    if not authorization:
        raise _unauthorized("Missing authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token:
        raise _unauthorized("Invalid authorization format")

    try:
        claims = signer.verify_access_token(token)
    except InvalidTokenError as e:
        raise _unauthorized(str(e))
    return CurrentIdentity(user_id=claims.user_id, email=claims.email)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

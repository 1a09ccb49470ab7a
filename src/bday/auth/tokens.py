"""Access token signing and refresh secret generation.

Learn: Two very different credentials come out of here.
- Access token: short-lived (15min) HMAC-signed JWT carrying the user id
  and email. Verified by signature + expiry alone, no DB lookup.
- Refresh token: long-lived (7 days) random opaque string. It carries no
  claims — it only means something once looked up in refresh_tokens.

TokenSigner gets its secret and TTLs through TokenSettings at
construction. Nothing here reads global config.
"""

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog

from bday.auth.errors import InvalidTokenError
from bday.config import Settings

logger = structlog.get_logger()

ACCESS_TOKEN_TYPE = "access"
REFRESH_SECRET_BYTES = 32  # 256 bits of entropy


@dataclass(frozen=True)
class TokenSettings:
    """Immutable signing configuration, built once at startup."""

    secret: str
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenSettings":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        )


@dataclass(frozen=True)
class AccessClaims:
    """Verified contents of an access token."""

    user_id: uuid.UUID
    email: str
    issued_at: datetime
    expires_at: datetime


class TokenSigner:
    """Mints and verifies access tokens, mints refresh secrets."""

    def __init__(self, config: TokenSettings):
        self.config = config

    def issue_access_token(
        self,
        user_id: uuid.UUID,
        email: str,
        now: Optional[datetime] = None,
    ) -> tuple[str, datetime]:
        """Create a signed access token. Returns (token, expires_at).

        Timestamps are whole seconds, so the same claims signed at the
        same second with the same secret give the same token.
        """
        issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        expires_at = issued_at + self.config.access_ttl
        payload = {
            "sub": str(user_id),
            "user_id": str(user_id),
            "email": email,
            "type": ACCESS_TOKEN_TYPE,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self.config.secret, algorithm=self.config.algorithm)
        return token, expires_at

    def issue_refresh_secret(
        self, now: Optional[datetime] = None
    ) -> tuple[str, datetime]:
        """Create an opaque refresh secret. Returns (secret, expires_at)."""
        secret = secrets.token_hex(REFRESH_SECRET_BYTES)
        expires_at = (now or datetime.now(timezone.utc)) + self.config.refresh_ttl
        return secret, expires_at

    def verify_access_token(self, token: str) -> AccessClaims:
        """Verify signature and expiry of an access token.

        Raises InvalidTokenError with the same message whatever the cause.
        """
        try:
            payload = jwt.decode(
                token,
                self.config.secret,
                algorithms=[self.config.algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
            if payload.get("type") != ACCESS_TOKEN_TYPE:
                raise InvalidTokenError()
            return AccessClaims(
                user_id=uuid.UUID(payload["sub"]),
                email=payload.get("email", ""),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except jwt.InvalidTokenError as e:
            logger.debug("auth.access_token.rejected", reason=type(e).__name__)
            raise InvalidTokenError() from None
        except (ValueError, TypeError) as e:
            logger.debug("auth.access_token.rejected", reason=type(e).__name__)
            raise InvalidTokenError() from None

"""Identity token verifier base.

Learn: Google and Apple both hand the app an RS256-signed JWT (an
"identity token"). Checking one is the same dance for both:

1. Read the unverified header to find the signing key id (kid)
2. Fetch that public key from the provider's JWKS (cached)
3. Verify signature, expiry and audience (our client id)
4. Check the issuer is the provider
5. Pull the stable subject id + profile claims out

Only step 5 differs, so subclasses implement `extract()`. There are
exactly two subclasses — no plugin registry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import jwt
import structlog

from bday.auth.errors import InvalidTokenError
from bday.auth.social.jwks import JWKSCache
from bday.db.models import AuthProvider

logger = structlog.get_logger()


@dataclass(frozen=True)
class IdentityClaims:
    """What a verified identity token tells us about the user.

    `subject` is always set. `email` can be empty (Apple omits it on
    repeat sign-ins) and so can `name`.
    """

    email: str
    name: str
    subject: str


class IdentityTokenVerifier(ABC):
    """Verifies one provider's identity tokens."""

    provider: AuthProvider
    issuers: tuple[str, ...]
    algorithms: tuple[str, ...] = ("RS256",)

    def __init__(self, client_id: str, keys: JWKSCache):
        self.client_id = client_id
        self.keys = keys

    async def verify(self, token: str) -> IdentityClaims:
        """Verify `token` and return its identity claims.

        Raises InvalidTokenError on any validation failure.
        """
        if not self.client_id:
            # Provider not configured for this deployment.
            logger.warning("auth.social.not_configured", provider=self.provider.value)
            raise InvalidTokenError()

        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError:
            raise InvalidTokenError() from None

        kid = header.get("kid")
        if not kid:
            raise InvalidTokenError()

        signing_key = await self.keys.get_signing_key(kid)

        try:
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=list(self.algorithms),
                audience=self.client_id,
                options={"require": ["exp", "iss", "aud", "sub"]},
            )
        except jwt.InvalidTokenError as e:
            logger.info(
                "auth.social.token_rejected",
                provider=self.provider.value,
                reason=type(e).__name__,
            )
            raise InvalidTokenError() from None

        if claims.get("iss") not in self.issuers:
            logger.info("auth.social.issuer_mismatch", provider=self.provider.value)
            raise InvalidTokenError()

        return self.extract(claims)

    @abstractmethod
    def extract(self, claims: dict) -> IdentityClaims:
        """Map verified claims to IdentityClaims, or raise InvalidTokenError."""

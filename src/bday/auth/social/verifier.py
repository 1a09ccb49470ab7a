"""Composite social verifier — one entry point for both providers."""

from typing import Optional

import httpx

from bday.auth.social.apple import AppleVerifier
from bday.auth.social.base import IdentityClaims
from bday.auth.social.google import GoogleVerifier
from bday.auth.social.jwks import JWKSCache
from bday.config import Settings


class SocialVerifier:
    """Routes identity tokens to the Google or Apple verifier."""

    def __init__(self, google: GoogleVerifier, apple: AppleVerifier):
        self.google = google
        self.apple = apple

    async def verify_google(self, id_token: str) -> IdentityClaims:
        return await self.google.verify(id_token)

    async def verify_apple(self, identity_token: str) -> IdentityClaims:
        return await self.apple.verify(identity_token)


def build_social_verifier(
    settings: Settings, http_client: Optional[httpx.AsyncClient] = None
) -> SocialVerifier:
    """Wire both verifiers with their own JWKS caches from settings."""

    def _keys(url: str) -> JWKSCache:
        return JWKSCache(
            url,
            ttl_seconds=settings.jwks_cache_ttl_seconds,
            timeout_seconds=settings.identity_http_timeout_seconds,
            http_client=http_client,
        )

    return SocialVerifier(
        google=GoogleVerifier(settings.google_client_id, _keys(settings.google_jwks_url)),
        apple=AppleVerifier(settings.apple_client_id, _keys(settings.apple_jwks_url)),
    )

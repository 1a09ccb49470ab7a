"""JSON Web Key Set fetching with a TTL cache.

Learn: Google and Apple sign their identity tokens with rotating RSA
keys and publish the public halves as a JWKS document. Fetching that
document on every sign-in is slow and hammers the provider, so we
keep the parsed keys for `ttl_seconds`.

When a token names a key id we don't have, the provider has probably
rotated keys — refetch once (at most every `min_refresh_seconds`, so a
flood of garbage kids can't turn into a flood of fetches).
"""

import asyncio
import time
from typing import Optional

import httpx
import jwt
import structlog
from jwt.exceptions import PyJWKSetError

from bday.auth.errors import IdentityProviderError, InvalidTokenError

logger = structlog.get_logger()


class JWKSCache:
    """Caches one provider's signing keys, indexed by key id."""

    def __init__(
        self,
        url: str,
        *,
        ttl_seconds: float = 3600,
        timeout_seconds: float = 5.0,
        min_refresh_seconds: float = 60,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds
        self.min_refresh_seconds = min_refresh_seconds
        self._http_client = http_client
        self._keys: dict[str, jwt.PyJWK] = {}
        self._fetched_at: Optional[float] = None
        self._lock = asyncio.Lock()

    async def get_signing_key(self, kid: str) -> jwt.PyJWK:
        """Return the key for `kid`, refetching on a miss.

        Raises InvalidTokenError if the provider doesn't publish that key,
        IdentityProviderError if the key set can't be fetched.
        """
        keys = await self._get_keys()
        if kid not in keys:
            keys = await self._get_keys(force=True)
        if kid not in keys:
            logger.info("auth.jwks.unknown_kid", url=self.url, kid=kid)
            raise InvalidTokenError()
        return keys[kid]

    async def _get_keys(self, force: bool = False) -> dict[str, jwt.PyJWK]:
        async with self._lock:
            now = time.monotonic()
            age = None if self._fetched_at is None else now - self._fetched_at
            stale = age is None or age >= self.ttl_seconds
            may_refresh = age is None or age >= self.min_refresh_seconds
            if stale or (force and may_refresh):
                self._keys = await self._fetch()
                self._fetched_at = time.monotonic()
            return self._keys

    async def _fetch(self) -> dict[str, jwt.PyJWK]:
        try:
            if self._http_client is not None:
                resp = await self._http_client.get(self.url, timeout=self.timeout_seconds)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    resp = await client.get(self.url)
            resp.raise_for_status()
            jwk_set = jwt.PyJWKSet.from_dict(resp.json())
        except (httpx.HTTPError, ValueError, PyJWKSetError) as e:
            logger.warning("auth.jwks.fetch_failed", url=self.url, error=str(e))
            raise IdentityProviderError(f"Failed to fetch signing keys from {self.url}") from e

        keys = {k.key_id: k for k in jwk_set.keys if k.key_id}
        logger.debug("auth.jwks.fetched", url=self.url, keys=len(keys))
        return keys

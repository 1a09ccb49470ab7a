"""Google ID token verification."""

from bday.auth.errors import InvalidTokenError
from bday.auth.social.base import IdentityClaims, IdentityTokenVerifier
from bday.db.models import AuthProvider

GOOGLE_JWKS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class GoogleVerifier(IdentityTokenVerifier):
    """Google always includes email; name is optional."""

    provider = AuthProvider.GOOGLE
    issuers = GOOGLE_ISSUERS

    def extract(self, claims: dict) -> IdentityClaims:
        email = claims.get("email") or ""
        subject = claims.get("sub") or ""
        if not email or not subject:
            raise InvalidTokenError()
        return IdentityClaims(
            email=email,
            name=claims.get("name") or "",
            subject=subject,
        )

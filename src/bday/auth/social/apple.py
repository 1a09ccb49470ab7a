"""Sign in with Apple identity token verification.

Learn: Apple only sends the user's email on the *first* sign-in (and
never a name in the token), so a returning user's token may carry
nothing but the subject. The subject is the only required claim.
"""

from bday.auth.errors import InvalidTokenError
from bday.auth.social.base import IdentityClaims, IdentityTokenVerifier
from bday.db.models import AuthProvider

APPLE_JWKS_URL = "https://appleid.apple.com/auth/keys"
APPLE_ISSUER = "https://appleid.apple.com"


class AppleVerifier(IdentityTokenVerifier):
    provider = AuthProvider.APPLE
    issuers = (APPLE_ISSUER,)

    def extract(self, claims: dict) -> IdentityClaims:
        subject = claims.get("sub") or ""
        if not subject:
            raise InvalidTokenError()
        return IdentityClaims(
            email=claims.get("email") or "",
            name="",
            subject=subject,
        )

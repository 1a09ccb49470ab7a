"""Google and Apple identity token verification."""

from bday.auth.social.apple import AppleVerifier
from bday.auth.social.base import IdentityClaims, IdentityTokenVerifier
from bday.auth.social.google import GoogleVerifier
from bday.auth.social.jwks import JWKSCache
from bday.auth.social.verifier import SocialVerifier, build_social_verifier

__all__ = [
    "AppleVerifier",
    "GoogleVerifier",
    "IdentityClaims",
    "IdentityTokenVerifier",
    "JWKSCache",
    "SocialVerifier",
    "build_social_verifier",
]

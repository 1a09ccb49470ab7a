"""Authentication error taxonomy.

Learn: Only three errors are meant for the caller:

- EmailAlreadyExistsError → registration conflict (409)
- InvalidCredentialsError → password login failed (401). Unknown email,
  social-only account and wrong password all raise the same error so
  the response can't be used to enumerate accounts.
- InvalidTokenError → any token problem (401): bad/expired access token,
  unknown/revoked/expired refresh token, failed Google/Apple check.
  Collapsed on purpose so callers can't tell which check failed.

Everything else (HashError, IdentityProviderError, database errors) is
internal and surfaces as a generic 500.
"""


class AuthError(Exception):
    """Base class for authentication failures shown to the caller."""

    message = "Authentication failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class EmailAlreadyExistsError(AuthError):
    message = "Email already registered"


class InvalidCredentialsError(AuthError):
    message = "Invalid email or password"


class InvalidTokenError(AuthError):
    message = "Invalid or expired token"


class HashError(Exception):
    """Raised when the password hasher fails internally."""


class IdentityProviderError(Exception):
    """Raised when a provider's signing keys can't be fetched or parsed."""

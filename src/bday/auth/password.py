"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks. The salt
is embedded in the hash string, so no separate salt column is needed.
The work factor (rounds=12) takes ~100ms per hash on modern hardware.
"""

import bcrypt

from bday.auth.errors import HashError

DEFAULT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of input.
_MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password with bcrypt.

    Learn: bcrypt includes a random salt automatically and produces
    hashes starting with "$2b$". Passwords are truncated to 72 bytes
    (bcrypt's limit) so newer bcrypt releases don't reject them.
    """
    pw_bytes = password.encode("utf-8")[:_MAX_PASSWORD_BYTES]
    try:
        salt = bcrypt.gensalt(rounds=rounds)
        return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")
    except (ValueError, TypeError) as e:
        raise HashError(f"Password hashing failed: {e}") from e


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash.

    A mismatch is a normal False, and so is a malformed stored hash.
    """
    try:
        pw_bytes = password.encode("utf-8")[:_MAX_PASSWORD_BYTES]
        return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False

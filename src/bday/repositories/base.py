"""Account repository contract.

Learn: The auth service never talks to SQLAlchemy directly. It goes
through this interface, so the session logic can be tested against an
in-memory implementation and the storage engine stays swappable.

Rules every implementation must follow:
- Lookups return None (or an empty list) for "not found", never raise
- create_user raises EmailAlreadyExistsError on a duplicate email, even
  when two inserts race past the service's existence check
- revoke_refresh_token is atomic: exactly one concurrent caller gets
  True for a given token, everybody else gets False
"""

import uuid
from abc import ABC, abstractmethod
from typing import Optional

from bday.db.models import AuthProvider, AuthProviderLink, RefreshToken, User


class AccountRepository(ABC):
    """Persistence for users, provider links and refresh tokens."""

    # ─── Users ──────────────────────────────────────────

    @abstractmethod
    async def create_user(self, user: User) -> User:
        """Insert a user. Raises EmailAlreadyExistsError on duplicate email."""

    @abstractmethod
    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    async def update_user(self, user: User) -> User:
        """Persist name, avatar_url and updated_at."""

    # ─── Provider links ─────────────────────────────────

    @abstractmethod
    async def create_provider_link(self, link: AuthProviderLink) -> AuthProviderLink:
        ...

    @abstractmethod
    async def get_link_by_provider_subject(
        self, provider: AuthProvider, provider_uid: str
    ) -> Optional[AuthProviderLink]:
        ...

    @abstractmethod
    async def get_links_by_user(self, user_id: uuid.UUID) -> list[AuthProviderLink]:
        ...

    # ─── Refresh tokens ─────────────────────────────────

    @abstractmethod
    async def create_refresh_token(self, record: RefreshToken) -> RefreshToken:
        ...

    @abstractmethod
    async def get_refresh_token(self, token: str) -> Optional[RefreshToken]:
        ...

    @abstractmethod
    async def revoke_refresh_token(self, token: str) -> bool:
        """Revoke one token. False if it was missing or already revoked."""

    @abstractmethod
    async def revoke_all_refresh_tokens_for_user(self, user_id: uuid.UUID) -> int:
        """Revoke every live token of a user. Returns how many were revoked."""

    @abstractmethod
    async def delete_expired_refresh_tokens(self) -> int:
        """Delete expired tokens. Returns how many rows were removed."""

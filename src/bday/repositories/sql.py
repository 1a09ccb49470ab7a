"""SQLAlchemy implementation of the account repository.

Learn: Every write commits on its own — there's no transaction spanning
several repository calls. If registration creates the user and then the
provider-link insert fails, the user row stays. That window is accepted;
the service doesn't try to roll it back.

The two race-sensitive operations lean on the database:
- users.email is UNIQUE, and the IntegrityError becomes EmailAlreadyExistsError
- revocation is `UPDATE ... WHERE revoked = false`, so rowcount tells
  us whether *this* caller was the one that revoked the token
"""

import uuid
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bday.auth.errors import EmailAlreadyExistsError
from bday.db.models import AuthProvider, AuthProviderLink, RefreshToken, User, utcnow
from bday.repositories.base import AccountRepository

_EMAIL_CONSTRAINT_HINTS = ("users_email", "email")


class SqlAccountRepository(AccountRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Users ──────────────────────────────────────────

    async def create_user(self, user: User) -> User:
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if _is_email_conflict(e):
                raise EmailAlreadyExistsError() from e
            raise
        return user

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def update_user(self, user: User) -> User:
        merged = await self.db.merge(user)
        await self.db.commit()
        return merged

    # ─── Provider links ─────────────────────────────────

    async def create_provider_link(self, link: AuthProviderLink) -> AuthProviderLink:
        self.db.add(link)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        return link

    async def get_link_by_provider_subject(
        self, provider: AuthProvider, provider_uid: str
    ) -> Optional[AuthProviderLink]:
        result = await self.db.execute(
            select(AuthProviderLink).where(
                AuthProviderLink.provider == AuthProvider(provider).value,
                AuthProviderLink.provider_uid == provider_uid,
            )
        )
        return result.scalars().first()

    async def get_links_by_user(self, user_id: uuid.UUID) -> list[AuthProviderLink]:
        result = await self.db.execute(
            select(AuthProviderLink)
            .where(AuthProviderLink.user_id == user_id)
            .order_by(AuthProviderLink.created_at)
        )
        return list(result.scalars().all())

    # ─── Refresh tokens ─────────────────────────────────

    async def create_refresh_token(self, record: RefreshToken) -> RefreshToken:
        self.db.add(record)
        await self.db.commit()
        return record

    async def get_refresh_token(self, token: str) -> Optional[RefreshToken]:
        result = await self.db.execute(
            select(RefreshToken)
            .where(RefreshToken.token == token)
            # Revokes are bulk UPDATEs, so refresh any copy already in the session.
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def revoke_refresh_token(self, token: str) -> bool:
        result = await self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.token == token, RefreshToken.revoked.is_(False))
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount == 1

    async def revoke_all_refresh_tokens_for_user(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount

    async def delete_expired_refresh_tokens(self) -> int:
        result = await self.db.execute(
            delete(RefreshToken)
            .where(RefreshToken.expires_at < utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount


def _is_email_conflict(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "unique" in message and any(h in message for h in _EMAIL_CONSTRAINT_HINTS)

"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Constraints and indexes defined here; Alembic
migrations mirror them.

Key concepts:
- UUID primary keys, assigned in Python (new_uuid) so objects have an id
  before they're flushed — repositories and tests rely on that
- Uniqueness lives in the database (email, provider+subject, refresh
  token), so concurrent writers can't both win a check-then-insert race
- Models work detached from a session, so an in-memory repository can
  hand them around too
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class AuthProvider(str, enum.Enum):
    """Ways a user can sign in. Stored as plain strings."""

    EMAIL = "email"
    GOOGLE = "google"
    APPLE = "apple"


class User(Base):
    """An account. Password hash is NULL for social-only accounts."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=new_uuid
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )  # NULL only for Apple accounts that never shared an email
    name: Mapped[str] = mapped_column(
        String(100), nullable=False, default="", server_default=""
    )
    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )  # nullable for Google/Apple-only accounts
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None


class AuthProviderLink(Base):
    """Maps a sign-in method (provider + provider-side subject) to a user.

    Learn: (provider, provider_uid) is how we recognise a returning
    Google/Apple user. For the email provider the uid is the email
    itself. A user has at most one link per provider.
    """

    __tablename__ = "auth_providers"
    __table_args__ = (
        UniqueConstraint("provider", "provider_uid", name="uq_auth_providers_provider_uid"),
        UniqueConstraint("user_id", "provider", name="uq_auth_providers_user_provider"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=new_uuid
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    provider: Mapped[str] = mapped_column(String(20), nullable=False)  # email, google, apple
    provider_uid: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


class RefreshToken(Base):
    """A server-side session credential.

    Learn: The token column holds the opaque secret handed to the client.
    A row is usable until it's revoked (logout, rotation, bulk revoke) or
    expires. Expired rows are deleted by `bday purge-tokens`, not by
    the request path.
    """

    __tablename__ = "refresh_tokens"
    __table_args__ = (
        Index("ix_refresh_tokens_user_id", "user_id"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=new_uuid
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        return not self.revoked and (now or utcnow()) < self.expires_at

"""Auth service — registration, sign-in, social sign-in, token refresh.

Learn: This is the session state machine. Every successful path ends in
_issue_tokens(), the one place a token pair gets minted and its refresh
half persisted. No flow builds tokens on its own.

Social sign-in resolves the account in order of signal strength:
1. (provider, subject) link → returning user
2. same email as an existing user → merge: attach a new link to that user
3. otherwise → brand-new user without a password, plus the link

Refresh rotation is fail-closed: the presented token is revoked *before*
the new pair is issued. If issuance then fails, the client has no valid
refresh token and must sign in again — never two live sessions from
one redemption.

The service keeps no state between calls and takes no locks. Races
(duplicate registration, refresh replay) are settled by the repository's
unique constraints and conditional revoke.
"""

import uuid

import structlog

from bday.auth.errors import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidTokenError,
)
from bday.auth.password import DEFAULT_ROUNDS, hash_password, verify_password
from bday.auth.social import IdentityClaims, SocialVerifier
from bday.auth.tokens import TokenSigner
from bday.db.models import (
    AuthProvider,
    AuthProviderLink,
    RefreshToken,
    User,
    new_uuid,
    utcnow,
)
from bday.repositories.base import AccountRepository
from bday.schemas.auth import TokenPair

logger = structlog.get_logger()


class AuthService:
    """Business logic for authentication and session lifecycle."""

    def __init__(
        self,
        repo: AccountRepository,
        signer: TokenSigner,
        social: SocialVerifier,
        *,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ):
        self.repo = repo
        self.signer = signer
        self.social = social
        self.bcrypt_rounds = bcrypt_rounds

    # ─── Email + password ───────────────────────────────

    async def register(self, email: str, password: str, name: str) -> TokenPair:
        """Create a password account and sign it in.

        Writes user → email link → refresh token, each committed on its own.
        """
        if await self.repo.get_user_by_email(email) is not None:
            raise EmailAlreadyExistsError()

        now = utcnow()
        user = User(
            id=new_uuid(),
            email=email,
            name=name,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
            created_at=now,
            updated_at=now,
        )
        user = await self.repo.create_user(user)
        await self._link(user, AuthProvider.EMAIL, user.email)

        logger.info("auth.register.succeeded", user_id=str(user.id), email=user.email)
        return await self._issue_tokens(user)

    async def login(self, email: str, password: str) -> TokenPair:
        user = await self.repo.get_user_by_email(email)
        if user is None or not user.has_password:
            raise InvalidCredentialsError()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        logger.info("auth.login.succeeded", user_id=str(user.id))
        return await self._issue_tokens(user)

    # ─── Social ─────────────────────────────────────────

    async def google_login(self, id_token: str) -> TokenPair:
        identity = await self.social.verify_google(id_token)
        return await self._social_login(AuthProvider.GOOGLE, identity)

    async def apple_login(self, identity_token: str) -> TokenPair:
        identity = await self.social.verify_apple(identity_token)
        return await self._social_login(AuthProvider.APPLE, identity)

    async def _social_login(
        self, provider: AuthProvider, identity: IdentityClaims
    ) -> TokenPair:
        link = await self.repo.get_link_by_provider_subject(provider, identity.subject)
        if link is not None:
            user = await self.repo.get_user_by_id(link.user_id)
            if user is None:
                raise InvalidTokenError()
            logger.info("auth.social.returning", provider=provider.value, user_id=str(user.id))
            return await self._issue_tokens(user)

        user = None
        if identity.email:
            user = await self.repo.get_user_by_email(identity.email)

        if user is not None:
            logger.info("auth.social.merged", provider=provider.value, user_id=str(user.id))
        else:
            now = utcnow()
            user = await self.repo.create_user(
                User(
                    id=new_uuid(),
                    email=identity.email or None,
                    name=identity.name,
                    password_hash=None,
                    created_at=now,
                    updated_at=now,
                )
            )
            logger.info("auth.social.created", provider=provider.value, user_id=str(user.id))

        await self._link(user, provider, identity.subject)
        return await self._issue_tokens(user)

    # ─── Refresh / logout ───────────────────────────────

    async def refresh_token(self, token: str) -> TokenPair:
        """Redeem a refresh token for a new pair. Each token works once."""
        record = await self.repo.get_refresh_token(token)
        if record is None or not record.is_usable(utcnow()):
            raise InvalidTokenError()

        if not await self.repo.revoke_refresh_token(token):
            # Someone else redeemed it between our read and our revoke.
            logger.warning("auth.refresh.replay_rejected", user_id=str(record.user_id))
            raise InvalidTokenError()

        user = await self.repo.get_user_by_id(record.user_id)
        if user is None:
            raise InvalidTokenError()

        logger.info("auth.refresh.rotated", user_id=str(user.id))
        return await self._issue_tokens(user)

    async def logout(self, token: str) -> None:
        """Revoke a refresh token. Silent if it's unknown or already revoked."""
        if await self.repo.revoke_refresh_token(token):
            logger.info("auth.logout")

    async def revoke_all_sessions(self, user_id: uuid.UUID) -> int:
        """Revoke every refresh token a user holds (e.g. after a password change)."""
        count = await self.repo.revoke_all_refresh_tokens_for_user(user_id)
        logger.info("auth.sessions.revoked", user_id=str(user_id), count=count)
        return count

    async def purge_expired_tokens(self) -> int:
        count = await self.repo.delete_expired_refresh_tokens()
        logger.info("auth.refresh.purged", count=count)
        return count

    # ─── Internals ──────────────────────────────────────

    async def _link(
        self, user: User, provider: AuthProvider, provider_uid: str
    ) -> AuthProviderLink:
        return await self.repo.create_provider_link(
            AuthProviderLink(
                id=new_uuid(),
                user_id=user.id,
                provider=provider.value,
                provider_uid=provider_uid,
                created_at=utcnow(),
            )
        )

    async def _issue_tokens(self, user: User) -> TokenPair:
        now = utcnow()
        access_token, access_expires = self.signer.issue_access_token(
            user.id, user.email or "", now=now
        )
        secret, refresh_expires = self.signer.issue_refresh_secret(now=now)

        await self.repo.create_refresh_token(
            RefreshToken(
                id=new_uuid(),
                user_id=user.id,
                token=secret,
                expires_at=refresh_expires,
                revoked=False,
                created_at=now,
            )
        )

        return TokenPair(
            access_token=access_token,
            refresh_token=secret,
            expires_at=int(access_expires.timestamp()),
        )

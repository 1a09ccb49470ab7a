"""User service — profile reads and updates for the signed-in user."""

import uuid
from typing import Optional

from bday.db.models import User, utcnow
from bday.repositories.base import AccountRepository


class UserNotFoundError(Exception):
    pass


class UserService:
    def __init__(self, repo: AccountRepository):
        self.repo = repo

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.repo.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def get_providers(self, user_id: uuid.UUID) -> list[str]:
        """Sign-in methods linked to the user, oldest first."""
        links = await self.repo.get_links_by_user(user_id)
        return [link.provider for link in links]

    async def update_profile(
        self,
        user_id: uuid.UUID,
        *,
        name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> User:
        user = await self.get_user(user_id)
        if name is not None:
            user.name = name
        if avatar_url is not None:
            user.avatar_url = avatar_url
        user.updated_at = utcnow()
        return await self.repo.update_user(user)

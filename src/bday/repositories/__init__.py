"""Account persistence: the repository contract and its SQL implementation."""

from bday.repositories.base import AccountRepository
from bday.repositories.sql import SqlAccountRepository

__all__ = ["AccountRepository", "SqlAccountRepository"]

"""
FamHub - User Repository
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from famhub.db.models.user import User


class UserRepository:
    """Account lookups for bearer-token authentication."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """The user a token was issued for, or None once the account is gone."""
        return await self.session.get(User, user_id)

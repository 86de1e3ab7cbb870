"""User repository for database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User


class UserRepository:
    """Lookups against the identity provider's user mirror."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def exists_by_id(self, user_id: str) -> bool:
        """Check if a user with this id exists."""
        result = await self._session.execute(select(User.id).where(User.id == user_id))
        return result.scalar_one_or_none() is not None

    async def create(
        self,
        user_id: str,
        email: str,
        name: str,
        display_name: str | None = None,
    ) -> User:
        """Insert a user row with an id issued by the identity provider."""
        user = User(id=user_id, email=email, name=name, display_name=display_name)
        self._session.add(user)
        await self._session.flush()
        return user

"""Chat repository for session and message database operations."""

from datetime import datetime

from sqlalchemy import and_, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.chat_message import ChatMessage
from app.models.chat_session import ChatSession


class ChatRepository:
    """Encapsulates chat session and message database queries."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_session_by_id(self, session_id: str) -> ChatSession | None:
        """Find a chat session by its primary key."""
        result = await self._session.execute(
            select(ChatSession).where(ChatSession.id == session_id)
        )
        return result.scalar_one_or_none()

    async def find_sessions_by_user(
        self,
        user_id: str,
        limit: int,
        session_type: str | None = None,
    ) -> list[ChatSession]:
        """Fetch a user's sessions, most recently updated first."""
        stmt = select(ChatSession).where(ChatSession.user_id == user_id)
        if session_type is not None:
            stmt = stmt.where(ChatSession.type == session_type)
        stmt = stmt.order_by(
            ChatSession.updated_at.desc(),
            ChatSession.id.desc(),
        ).limit(limit)

        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def find_latest_session(
        self,
        user_id: str,
        session_type: str,
        context_id: str,
    ) -> ChatSession | None:
        """Most recently updated session for (user, type, context)."""
        result = await self._session.execute(
            select(ChatSession)
            .where(
                and_(
                    ChatSession.user_id == user_id,
                    ChatSession.type == session_type,
                    ChatSession.context_id == context_id,
                )
            )
            .order_by(ChatSession.updated_at.desc(), ChatSession.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_session(
        self,
        user_id: str,
        session_type: str,
        context_id: str,
        title: str,
    ) -> ChatSession:
        """Create a new chat session."""
        session = ChatSession(
            user_id=user_id,
            type=session_type,
            context_id=context_id,
            title=title,
        )
        self._session.add(session)
        await self._session.flush()
        await self._session.refresh(session)
        return session

    async def find_messages_by_session_id(self, session_id: str) -> list[ChatMessage]:
        """Retrieve all messages for a session in insertion order."""
        result = await self._session.execute(
            select(ChatMessage)
            .where(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.id.asc())
        )
        return list(result.scalars().all())

    async def create_message(
        self,
        session_id: str,
        role: str,
        content: str,
    ) -> ChatMessage:
        """Create a single chat message."""
        message = ChatMessage(
            session_id=session_id,
            role=role,
            content=content,
        )
        self._session.add(message)
        await self._session.flush()
        await self._session.refresh(message)
        return message

    async def update_session_activity(
        self,
        session_id: str,
        preview: str,
        updated_at: datetime,
    ) -> None:
        """Record the latest message preview and bump ``updated_at``."""
        await self._session.execute(
            update(ChatSession)
            .where(ChatSession.id == session_id)
            .values(preview=preview, updated_at=updated_at)
        )

    async def update_session_title(self, session_id: str, title: str) -> None:
        """Update the title of an existing session."""
        await self._session.execute(
            update(ChatSession).where(ChatSession.id == session_id).values(title=title)
        )

    async def delete_session(self, session_id: str) -> None:
        """Hard-delete a session; messages go with it via ON DELETE CASCADE."""
        await self._session.execute(
            delete(ChatSession).where(ChatSession.id == session_id)
        )

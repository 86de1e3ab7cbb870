"""Best-effort background writes for chat history.

These run as FastAPI BackgroundTasks after the response is sent, each in its
own DB session. They are at-most-once: a failure is logged and the write is
dropped, never retried or queued.
"""

from collections.abc import Callable, Sequence

import structlog
from langchain_core.language_models import BaseChatModel

from app.core.database import async_session_factory
from app.repositories.chat_repo import ChatRepository
from app.repositories.user_repo import UserRepository
from app.schemas.chat_history_schema import ConversationTurn
from app.services.chat_history_service import (
    ChatHistoryService,
    is_temporary_session_id,
)

logger = structlog.get_logger()


async def save_messages_best_effort(
    session_id: str,
    messages: Sequence[ConversationTurn],
    owner_id: str | None = None,
) -> bool:
    """Append ``messages`` to a session in order; ``False`` if they were dropped.

    With ``owner_id`` set, nothing is written unless that user owns the session.
    """
    if is_temporary_session_id(session_id):
        return False
    try:
        async with async_session_factory() as session:
            service = ChatHistoryService(
                chat_repo=ChatRepository(session),
                user_repo=UserRepository(session),
            )
            if owner_id is not None and not await _is_owner(service, session_id, owner_id):
                return False
            for message in messages:
                await service.append_message(session_id, message.role, message.content)
            await session.commit()
    except Exception:
        logger.exception(
            "Dropped chat messages",
            session_id=session_id,
            count=len(messages),
        )
        return False
    return True


async def generate_title_in_background(
    session_id: str,
    messages: Sequence[ConversationTurn],
    llm_provider: Callable[[], BaseChatModel],
    owner_id: str | None = None,
) -> str | None:
    """Generate and persist a session title in an independent DB session."""
    if is_temporary_session_id(session_id):
        return None
    try:
        async with async_session_factory() as session:
            service = ChatHistoryService(
                chat_repo=ChatRepository(session),
                user_repo=UserRepository(session),
                llm_provider=llm_provider,
            )
            if owner_id is not None and not await _is_owner(service, session_id, owner_id):
                return None
            title = await service.generate_session_title(session_id, messages)
            await session.commit()
    except Exception:
        logger.exception("Failed to store session title", session_id=session_id)
        return None
    return title


async def _is_owner(service: ChatHistoryService, session_id: str, owner_id: str) -> bool:
    session = await service.get_session(session_id)
    if session is None or session.user_id != owner_id:
        logger.warning(
            "Skipping write to chat session not owned by user",
            session_id=session_id,
            user_id=owner_id,
        )
        return False
    return True

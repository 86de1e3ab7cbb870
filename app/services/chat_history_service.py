"""Chat session store: persistence, get-or-create and title upkeep."""

import uuid
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import structlog
from langchain_core.language_models import BaseChatModel
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import SessionCreationError
from app.repositories.chat_repo import ChatRepository
from app.repositories.user_repo import UserRepository
from app.schemas.chat_history_schema import (
    ChatMessageResponse,
    ChatSessionDetail,
    ChatSessionResponse,
    ConversationTurn,
    GetOrCreateSessionResponse,
)
from app.services.title_service import TitleService

logger = structlog.get_logger()

PREVIEW_LENGTH = 100
TEMPORARY_SESSION_PREFIX = "temp-"


def build_preview(content: str) -> str:
    """First 100 characters of a message, with an ellipsis if cut."""
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH] + "..."
    return content


def is_temporary_session_id(session_id: str) -> bool:
    """Temporary sessions were never persisted."""
    return session_id.startswith(TEMPORARY_SESSION_PREFIX)


class ChatHistoryService:
    """Single entry point for chat session and message persistence.

    Get-or-create is a plain check-then-act sequence: two concurrent first
    messages for the same (user, type, context) may create two sessions.
    Later calls converge on the most recently updated one.
    """

    def __init__(
        self,
        chat_repo: ChatRepository,
        user_repo: UserRepository,
        llm_provider: Callable[[], BaseChatModel] | None = None,
    ) -> None:
        self._chat_repo = chat_repo
        self._user_repo = user_repo
        self._llm_provider = llm_provider

    async def list_sessions(
        self,
        user_id: str,
        session_type: str | None = None,
        limit: int = 20,
    ) -> list[ChatSessionResponse]:
        """Sessions owned by ``user_id``, newest ``updated_at`` first."""
        sessions = await self._chat_repo.find_sessions_by_user(
            user_id=user_id,
            limit=limit,
            session_type=session_type,
        )
        return [ChatSessionResponse.model_validate(s) for s in sessions]

    async def get_session(self, session_id: str) -> ChatSessionResponse | None:
        """Session row without messages, or ``None``."""
        session = await self._chat_repo.find_session_by_id(session_id)
        if session is None:
            return None
        return ChatSessionResponse.model_validate(session)

    async def get_session_with_messages(
        self, session_id: str
    ) -> ChatSessionDetail | None:
        """Session plus all of its messages oldest first, or ``None``."""
        session = await self._chat_repo.find_session_by_id(session_id)
        if session is None:
            return None
        messages = await self._chat_repo.find_messages_by_session_id(session_id)
        return ChatSessionDetail(
            **ChatSessionResponse.model_validate(session).model_dump(),
            messages=[ChatMessageResponse.model_validate(m) for m in messages],
        )

    async def create_session(
        self,
        user_id: str,
        session_type: str,
        context_id: str,
        title: str,
    ) -> ChatSessionResponse:
        """Insert a new session. Duplicates are not checked here."""
        try:
            session = await self._chat_repo.create_session(
                user_id=user_id,
                session_type=session_type,
                context_id=context_id,
                title=title,
            )
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to create chat session",
                user_id=user_id,
                type=session_type,
                context_id=context_id,
                error=str(exc),
            )
            raise SessionCreationError(str(getattr(exc, "orig", exc))) from exc

        logger.info(
            "Chat session created",
            session_id=session.id,
            user_id=user_id,
            type=session_type,
        )
        return ChatSessionResponse.model_validate(session)

    async def append_message(
        self,
        session_id: str,
        role: str,
        content: str,
    ) -> ChatMessageResponse:
        """Store a message and refresh the session preview and ``updated_at``.

        A missing session surfaces as the storage layer's foreign key error.
        """
        message = await self._chat_repo.create_message(
            session_id=session_id,
            role=role,
            content=content,
        )
        await self._chat_repo.update_session_activity(
            session_id=session_id,
            preview=build_preview(content),
            updated_at=datetime.now(UTC),
        )
        return ChatMessageResponse.model_validate(message)

    async def update_title(self, session_id: str, title: str) -> None:
        """Overwrite the title only."""
        await self._chat_repo.update_session_title(session_id, title)

    async def delete_session(self, session_id: str) -> None:
        """Delete a session and its messages. Unknown ids are a no-op."""
        await self._chat_repo.delete_session(session_id)
        logger.info("Chat session deleted", session_id=session_id)

    async def get_or_create_session(
        self,
        user_id: str,
        session_type: str,
        context_id: str,
        title: str,
    ) -> GetOrCreateSessionResponse:
        """Continue the latest matching conversation or start a new one.

        If the user cannot be verified (lookup error or unknown id, e.g. the
        identity provider has not synced yet) a temporary, unsaved session is
        returned instead of failing the request.
        """
        try:
            user_exists = await self._user_repo.exists_by_id(user_id)
        except Exception:
            logger.exception("User lookup failed", user_id=user_id)
            user_exists = False

        if not user_exists:
            logger.warning(
                "Unknown user, returning temporary chat session",
                user_id=user_id,
                type=session_type,
                context_id=context_id,
            )
            return self._temporary_session(user_id, session_type, context_id, title)

        existing = await self._chat_repo.find_latest_session(
            user_id=user_id,
            session_type=session_type,
            context_id=context_id,
        )
        if existing is not None:
            messages = await self._chat_repo.find_messages_by_session_id(existing.id)
            return GetOrCreateSessionResponse(
                **ChatSessionResponse.model_validate(existing).model_dump(),
                messages=[ChatMessageResponse.model_validate(m) for m in messages],
                is_new=False,
            )

        created = await self.create_session(
            user_id=user_id,
            session_type=session_type,
            context_id=context_id,
            title=title,
        )
        return GetOrCreateSessionResponse(
            **created.model_dump(),
            messages=[],
            is_new=True,
        )

    async def generate_session_title(
        self,
        session_id: str,
        messages: Sequence[ConversationTurn],
    ) -> str | None:
        """Derive a title from the opening messages and store it.

        Never raises: on any failure the stored title is left as it was and
        ``None`` is returned.
        """
        if not messages:
            return None
        try:
            if self._llm_provider is None:
                raise RuntimeError("No LLM configured for title generation")
            title_service = TitleService(self._llm_provider())
            title = await title_service.generate_title(messages)
            await self.update_title(session_id, title)
        except Exception:
            logger.exception("Failed to generate session title", session_id=session_id)
            return None

        logger.info("Session title generated", session_id=session_id, title=title)
        return title

    @staticmethod
    def _temporary_session(
        user_id: str,
        session_type: str,
        context_id: str,
        title: str,
    ) -> GetOrCreateSessionResponse:
        now = datetime.now(UTC)
        return GetOrCreateSessionResponse(
            id=f"{TEMPORARY_SESSION_PREFIX}{uuid.uuid4().hex}",
            user_id=user_id,
            type=session_type,
            context_id=context_id,
            title=title,
            preview=None,
            created_at=now,
            updated_at=now,
            messages=[],
            is_new=True,
            is_temporary=True,
        )

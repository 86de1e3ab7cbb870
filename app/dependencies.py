"""Global dependencies for the application."""

from collections.abc import Callable
from functools import lru_cache

from fastapi import Depends, Request
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_async_session
from app.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    LLMConfigurationError,
)
from app.repositories.chat_repo import ChatRepository
from app.repositories.user_repo import UserRepository
from app.services.chat_history_service import ChatHistoryService
from app.services.stock_analysis_service import StockAnalysisService
from app.services.stock_chat_service import StockChatService


@lru_cache
def get_llm() -> BaseChatModel:
    """Get the LLM instance based on the configured provider."""
    llm_config = settings.llm
    if not llm_config.active_api_key.get_secret_value():
        raise LLMConfigurationError(llm_config.provider)

    match llm_config.provider:
        case "gemini":
            return ChatGoogleGenerativeAI(
                model=llm_config.gemini_model,
                google_api_key=llm_config.gemini_api_key,
            )
        case "openai":
            return ChatOpenAI(
                model=llm_config.openai_model,
                api_key=llm_config.openai_api_key,
            )
        case "anthropic":
            return ChatAnthropic(  # type: ignore[call-arg]
                model_name=llm_config.anthropic_model,
                api_key=llm_config.anthropic_api_key,
            )
        case _:
            raise ValueError(f"Unsupported LLM provider: {llm_config.provider}")


# --- Auth dependencies ---


class CurrentUser(BaseModel):
    """Authenticated user extracted from request state."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    role: str


def get_current_user(request: Request) -> CurrentUser:
    """Extract the authenticated user from middleware-populated state."""
    state = getattr(request, "state", None)
    user_id = getattr(state, "user_id", None) if state else None
    if user_id is None:
        raise AuthenticationError(message="Not authenticated")
    return CurrentUser(
        id=state.user_id,
        email=state.email,
        role=state.role,
    )


def require_role(*allowed_roles: str) -> Callable[..., CurrentUser]:
    """Dependency factory that enforces role-based access control."""

    def _check(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if current_user.role not in allowed_roles:
            raise AuthorizationError(
                message=f"Role '{current_user.role}' is not permitted"
            )
        return current_user

    return _check


# --- Repositories and services ---


def get_user_repository(
    session: AsyncSession = Depends(get_async_session),
) -> UserRepository:
    """Get UserRepository bound to the current session."""
    return UserRepository(session)


def get_chat_repository(
    session: AsyncSession = Depends(get_async_session),
) -> ChatRepository:
    """Get ChatRepository bound to the current session."""
    return ChatRepository(session)


def get_chat_history_service(
    chat_repo: ChatRepository = Depends(get_chat_repository),
    user_repo: UserRepository = Depends(get_user_repository),
) -> ChatHistoryService:
    """Get ChatHistoryService; the LLM is only built if a title is requested."""
    return ChatHistoryService(
        chat_repo=chat_repo,
        user_repo=user_repo,
        llm_provider=get_llm,
    )


def get_stock_analysis_service() -> StockAnalysisService:
    return StockAnalysisService(llm=get_llm())


def get_stock_chat_service() -> StockChatService:
    return StockChatService(llm=get_llm())

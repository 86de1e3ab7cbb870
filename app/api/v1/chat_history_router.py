"""Chat session API router."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.core.exceptions import AuthorizationError, SessionNotFoundError
from app.dependencies import CurrentUser, get_chat_history_service, require_role
from app.schemas.chat_history_schema import (
    AppendMessageRequest,
    ChatMessageResponse,
    ChatSessionDetail,
    ChatSessionListResponse,
    ChatSessionResponse,
    CreateSessionRequest,
    GeneratedTitleResponse,
    GenerateTitleRequest,
    GetOrCreateSessionResponse,
    SessionType,
    UpdateTitleRequest,
)
from app.schemas.response_schema import (
    ERROR_RESPONSES,
    ApiResponse,
    success_response,
)
from app.services.chat_history_service import ChatHistoryService

router = APIRouter(
    prefix="/api/v1/chat-sessions",
    tags=["chat-sessions"],
    responses=ERROR_RESPONSES,
)

ChatHistoryServiceDep = Annotated[
    ChatHistoryService, Depends(get_chat_history_service)
]
UserDep = Annotated[CurrentUser, Depends(require_role("user", "admin"))]


async def _get_owned_session(
    service: ChatHistoryService,
    session_id: str,
    user: CurrentUser,
) -> ChatSessionResponse:
    session = await service.get_session(session_id)
    if session is None:
        raise SessionNotFoundError()
    if session.user_id != user.id:
        raise AuthorizationError(message="Not the owner of this chat session")
    return session


@router.get("", response_model=ApiResponse[ChatSessionListResponse])
async def list_sessions(
    service: ChatHistoryServiceDep,
    user: UserDep,
    type: SessionType | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
) -> dict:
    """List the current user's sessions, most recently active first."""
    sessions = await service.list_sessions(
        user_id=user.id,
        session_type=type,
        limit=limit,
    )
    return success_response(ChatSessionListResponse(sessions=sessions))


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[ChatSessionResponse],
)
async def create_session(
    body: CreateSessionRequest,
    service: ChatHistoryServiceDep,
    user: UserDep,
) -> dict:
    """Start a new session unconditionally."""
    session = await service.create_session(
        user_id=user.id,
        session_type=body.type,
        context_id=body.context_id,
        title=body.title,
    )
    return success_response(session, status=201, message="Session created")


@router.post(
    "/get-or-create",
    response_model=ApiResponse[GetOrCreateSessionResponse],
)
async def get_or_create_session(
    body: CreateSessionRequest,
    service: ChatHistoryServiceDep,
    user: UserDep,
) -> dict:
    """Resume the latest session for this context or start one."""
    result = await service.get_or_create_session(
        user_id=user.id,
        session_type=body.type,
        context_id=body.context_id,
        title=body.title,
    )
    return success_response(result)


@router.get("/{session_id}", response_model=ApiResponse[ChatSessionDetail])
async def get_session(
    session_id: str,
    service: ChatHistoryServiceDep,
    user: UserDep,
) -> dict:
    """Get a session with its full message history."""
    await _get_owned_session(service, session_id, user)
    detail = await service.get_session_with_messages(session_id)
    return success_response(detail)


@router.post(
    "/{session_id}/messages",
    status_code=201,
    response_model=ApiResponse[ChatMessageResponse],
)
async def append_message(
    session_id: str,
    body: AppendMessageRequest,
    service: ChatHistoryServiceDep,
    user: UserDep,
) -> dict:
    """Append a message and refresh the session preview."""
    await _get_owned_session(service, session_id, user)
    message = await service.append_message(session_id, body.role, body.content)
    return success_response(message, status=201, message="Message saved")


@router.patch("/{session_id}/title", response_model=ApiResponse[None])
async def update_title(
    session_id: str,
    body: UpdateTitleRequest,
    service: ChatHistoryServiceDep,
    user: UserDep,
) -> dict:
    """Rename a session."""
    await _get_owned_session(service, session_id, user)
    await service.update_title(session_id, body.title)
    return success_response(None, message="Title updated")


@router.post(
    "/{session_id}/summary",
    response_model=ApiResponse[GeneratedTitleResponse],
)
async def generate_title(
    session_id: str,
    body: GenerateTitleRequest,
    service: ChatHistoryServiceDep,
    user: UserDep,
) -> dict:
    """Generate a title from the conversation; ``title`` is null on failure."""
    await _get_owned_session(service, session_id, user)
    title = await service.generate_session_title(session_id, body.messages)
    return success_response(GeneratedTitleResponse(title=title))


@router.delete("/{session_id}", response_model=ApiResponse[None])
async def delete_session(
    session_id: str,
    service: ChatHistoryServiceDep,
    user: UserDep,
) -> dict:
    """Delete a session and its messages. Deleting twice is not an error."""
    session = await service.get_session(session_id)
    if session is not None:
        if session.user_id != user.id:
            raise AuthorizationError(message="Not the owner of this chat session")
        await service.delete_session(session_id)
    return success_response(None, message="Session deleted")

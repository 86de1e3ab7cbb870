"""Stock research API router."""

from typing import Annotated

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Request

from app.core.config import settings
from app.core.rate_limit import limiter
from app.dependencies import (
    CurrentUser,
    get_chat_history_service,
    get_llm,
    get_stock_analysis_service,
    get_stock_chat_service,
    require_role,
)
from app.schemas.chat_history_schema import ConversationTurn
from app.schemas.response_schema import ApiResponse, success_response
from app.schemas.stock_schema import (
    StockAnalysisRequest,
    StockAnalysisResponse,
    StockChatRequest,
    StockChatResponse,
)
from app.services.chat_history_service import (
    ChatHistoryService,
    is_temporary_session_id,
)
from app.services.chat_history_task import (
    generate_title_in_background,
    save_messages_best_effort,
)
from app.services.stock_analysis_service import (
    StockAnalysisService,
    format_analysis_summary,
)
from app.services.stock_chat_service import StockChatService

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/stocks", tags=["stocks"])

UserDep = Annotated[CurrentUser, Depends(require_role("user", "admin"))]
ChatHistoryServiceDep = Annotated[
    ChatHistoryService, Depends(get_chat_history_service)
]


@router.post("/analysis", response_model=ApiResponse[StockAnalysisResponse])
@limiter.limit(settings.llm.rate_limit)
async def analyze_stock(
    request: Request,
    body: StockAnalysisRequest,
    user: UserDep,
    history: ChatHistoryServiceDep,
    analysis_service: Annotated[
        StockAnalysisService, Depends(get_stock_analysis_service)
    ],
) -> dict:
    """Analyse a stock and open (or resume) its chat session."""
    analysis = await analysis_service.generate_stock_analysis(body.query)

    session = await history.get_or_create_session(
        user_id=user.id,
        session_type="stock",
        context_id=analysis.symbol,
        title=f"{analysis.symbol} AI-Powered Analysis",
    )
    if session.is_temporary:
        logger.warning(
            "Stock analysis not saved, user missing from database",
            user_id=user.id,
            symbol=analysis.symbol,
        )
    elif session.is_new or not session.messages:
        # An empty existing session means an earlier save was lost.
        await history.append_message(
            session.id, "model", format_analysis_summary(analysis)
        )

    return success_response(
        StockAnalysisResponse(
            analysis=analysis,
            session_id=session.id,
            is_new_session=session.is_new,
            is_temporary=session.is_temporary,
        )
    )


@router.post("/chat", response_model=ApiResponse[StockChatResponse])
@limiter.limit(settings.llm.rate_limit)
async def chat_about_stock(
    request: Request,
    body: StockChatRequest,
    user: UserDep,
    chat_service: Annotated[StockChatService, Depends(get_stock_chat_service)],
    background_tasks: BackgroundTasks,
) -> dict:
    """Answer a follow-up question and store the exchange in the background."""
    reply = await chat_service.chat(body.symbol, body.context, body.messages)

    session_id = body.session_id
    if session_id and not is_temporary_session_id(session_id):
        user_turns = [m for m in body.messages if m.role == "user"]
        reply_turn = ConversationTurn(role="model", content=reply)
        if user_turns:
            background_tasks.add_task(
                save_messages_best_effort,
                session_id=session_id,
                messages=[user_turns[-1], reply_turn],
                owner_id=user.id,
            )
        if len(user_turns) == 1:
            background_tasks.add_task(
                generate_title_in_background,
                session_id=session_id,
                messages=[*body.messages, reply_turn],
                llm_provider=get_llm,
                owner_id=user.id,
            )

    return success_response(StockChatResponse(message=reply, session_id=session_id))

"""Follow-up Q&A with the AI analyst about an analysed stock."""

from collections.abc import Sequence

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from app.core.exceptions import AnalysisError
from app.core.retry import ai_error_to_app_exception, retry_ai_call
from app.schemas.chat_history_schema import ConversationTurn
from app.services.llm_output import message_text

logger = structlog.get_logger()

SYSTEM_INSTRUCTION_TEMPLATE = """You are an expert equity research analyst discussing {symbol} stock.

Here is the analysis context gathered so far:
{context}

Answer questions specifically about this stock: its business, valuation, risks and catalysts.
Be concise but thorough and use data when available.
If asked about something not in the context, use your own knowledge but note that it may not be current.

Formatting:
- Use standard Markdown with "###" headers for distinct sections.
- Use bullet points for lists and **bold** for key terms.
- No conversational filler; short paragraphs only."""

PRIMER_REPLY = (
    "Understood. I'm ready to discuss this stock analysis. "
    "What would you like to know?"
)


class StockChatService:
    """Answers questions about a stock given its analysis context."""

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm

    @staticmethod
    def build_messages(
        symbol: str,
        context: str,
        messages: Sequence[ConversationTurn],
    ) -> list[BaseMessage]:
        """Instruction and primer exchange followed by the conversation."""
        history: list[BaseMessage] = [
            HumanMessage(
                content=SYSTEM_INSTRUCTION_TEMPLATE.format(
                    symbol=symbol, context=context
                )
            ),
            AIMessage(content=PRIMER_REPLY),
        ]
        for turn in messages:
            if turn.role == "user":
                history.append(HumanMessage(content=turn.content))
            else:
                history.append(AIMessage(content=turn.content))
        return history

    async def chat(
        self,
        symbol: str,
        context: str,
        messages: Sequence[ConversationTurn],
    ) -> str:
        """Return the analyst's reply to the latest user message."""
        history = self.build_messages(symbol, context, messages)

        try:
            response = await retry_ai_call(lambda: self._llm.ainvoke(history))
        except Exception as exc:
            logger.exception("Stock chat call failed", symbol=symbol)
            raise ai_error_to_app_exception(exc) from exc

        reply = message_text(response).strip()
        if not reply:
            logger.error("Empty stock chat response", symbol=symbol)
            raise AnalysisError("failed to get a response from the AI service")
        return reply

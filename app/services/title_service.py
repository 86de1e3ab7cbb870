"""Service for generating chat session titles via LLM."""

from collections.abc import Sequence

from langchain_core.language_models import BaseChatModel

from app.core.retry import retry_ai_call
from app.schemas.chat_history_schema import ConversationTurn
from app.services.llm_output import message_text

TITLE_SOURCE_MESSAGES = 3
TITLE_MAX_LENGTH = 255
QUOTE_CHARS = "\"'`“”‘’"

_SPEAKERS = {"user": "User", "model": "Analyst"}


class TitleService:
    """Generates short descriptive titles for research conversations."""

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm

    @staticmethod
    def build_prompt(messages: Sequence[ConversationTurn]) -> str:
        """Prompt built from the opening turns of a conversation."""
        transcript = "\n".join(
            f"{_SPEAKERS.get(m.role, m.role)}: {m.content[:500]}"
            for m in messages[:TITLE_SOURCE_MESSAGES]
        )
        return (
            "Write a descriptive title of at most 6 words for this investment "
            "research conversation. Reply with the title only.\n\n"
            f"{transcript}"
        )

    @staticmethod
    def clean_title(raw: str) -> str:
        """Strip whitespace and surrounding quote characters."""
        return raw.strip().strip(QUOTE_CHARS).strip()[:TITLE_MAX_LENGTH]

    async def generate_title(self, messages: Sequence[ConversationTurn]) -> str:
        """Ask the model for a title. Raises ``ValueError`` on an empty answer."""
        prompt = self.build_prompt(messages)
        response = await retry_ai_call(lambda: self._llm.ainvoke(prompt))
        title = self.clean_title(message_text(response))
        if not title:
            raise ValueError("Model returned an empty title")
        return title

"""Stock research request and response schemas."""

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.chat_history_schema import ConversationTurn

# The model may answer with camelCase keys; accept both spellings on input
# and always serialise snake_case.
_AI_PAYLOAD_CONFIG = ConfigDict(
    alias_generator=AliasGenerator(validation_alias=to_camel),
    populate_by_name=True,
)


class Catalyst(BaseModel):
    """Upcoming event that could move the stock."""

    model_config = _AI_PAYLOAD_CONFIG

    event: str
    date: str
    impact: str


class ComparableCompany(BaseModel):
    """Competitor used for relative valuation."""

    model_config = _AI_PAYLOAD_CONFIG

    ticker: str
    name: str
    pe_ratio: str
    ev_ebitda: str
    premium: str


class StockAnalysis(BaseModel):
    """Structured research summary produced by the AI analyst."""

    model_config = _AI_PAYLOAD_CONFIG

    symbol: str
    company_name: str
    business_summary: str
    moat_analysis: str
    key_risks: list[str] = Field(default_factory=list)
    growth_catalysts: str
    financial_health: str
    valuation_commentary: str
    capital_allocation: str
    earnings_quality: str
    short_interest: str | None = None
    upcoming_catalysts: list[Catalyst] = Field(default_factory=list)
    comparable_multiples: list[ComparableCompany] = Field(default_factory=list)


class StockAnalysisRequest(BaseModel):
    """Ticker or company name to analyse."""

    query: str = Field(..., min_length=1, max_length=100)


class StockAnalysisResponse(BaseModel):
    """Analysis plus the chat session it was stored in."""

    analysis: StockAnalysis
    session_id: str | None = None
    is_new_session: bool = False
    is_temporary: bool = False


class StockChatRequest(BaseModel):
    """Follow-up question about an analysed stock."""

    symbol: str = Field(..., min_length=1, max_length=20)
    context: str = Field(..., min_length=1)
    messages: list[ConversationTurn] = Field(..., min_length=1)
    session_id: str | None = None


class StockChatResponse(BaseModel):
    """AI analyst reply."""

    message: str
    session_id: str | None = None

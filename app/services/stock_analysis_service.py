"""AI-generated equity research summaries."""

import structlog
from langchain_core.language_models import BaseChatModel
from pydantic import ValidationError

from app.core.exceptions import AnalysisError, AppException
from app.core.retry import ai_error_to_app_exception, retry_ai_call
from app.schemas.stock_schema import StockAnalysis
from app.services.llm_output import message_text, strip_code_fences

logger = structlog.get_logger()

ANALYSIS_PROMPT_TEMPLATE = """You are a senior equity research analyst. Analyze the stock "{query}" and provide an institutional-grade investment summary.

Cover:
1. business_summary: how the company makes money (2-3 sentences, plain English).
2. moat_analysis: what protects the business from competition.
3. key_risks: the top 3 risks, one array item each.
4. growth_catalysts: near-term drivers that could push the stock higher.
5. financial_health: margins, balance sheet strength and debt levels.
6. valuation_commentary: is the stock cheap or expensive versus its 5-year P/E and EV/EBITDA history.
7. capital_allocation: how management deploys capital and whether it is shareholder-friendly.
8. earnings_quality: operating cash flow compared with net income.
9. short_interest: only if notable (above 5% of float or far from its norm), otherwise null.
10. upcoming_catalysts: array of objects with event, date (approximate if needed), impact (bullish/bearish/neutral and why).
11. comparable_multiples: 3-4 competitors, each with ticker, name, pe_ratio (e.g. "25.3x"), ev_ebitda (e.g. "15.2x"), premium (why it trades at a premium or discount).

Also return symbol and company_name.
Respond with a single JSON object using exactly these snake_case keys and nothing else."""


class StockAnalysisService:
    """Produces a structured research summary for a ticker or company name."""

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm

    async def generate_stock_analysis(self, query: str) -> StockAnalysis:
        """Run one (retried) AI call and parse its JSON answer."""
        query = query.strip()
        if not query:
            raise AppException(
                message="Query parameter required",
                code="QUERY_REQUIRED",
                status_code=400,
            )

        logger.info("Generating stock analysis", query=query)
        prompt = ANALYSIS_PROMPT_TEMPLATE.format(query=query)

        try:
            response = await retry_ai_call(lambda: self._llm.ainvoke(prompt))
        except Exception as exc:
            logger.exception("Stock analysis call failed", query=query)
            raise ai_error_to_app_exception(exc) from exc

        text = message_text(response)
        if not text.strip():
            logger.error("Empty stock analysis response", query=query)
            raise AnalysisError("empty response from the AI service")

        payload = strip_code_fences(text)
        try:
            analysis = StockAnalysis.model_validate_json(payload)
        except ValidationError as exc:
            logger.error(
                "Unparseable stock analysis response",
                query=query,
                preview=payload[:200],
            )
            raise AnalysisError("response was not a valid analysis object") from exc

        logger.info(
            "Stock analysis generated",
            query=query,
            symbol=analysis.symbol,
        )
        return analysis


def format_analysis_summary(analysis: StockAnalysis) -> str:
    """Markdown starter message stored as the first reply of a stock chat."""
    comparables = "\n".join(
        f"| **{c.ticker}** | {c.name} | {c.pe_ratio} | {c.ev_ebitda} | {c.premium} |"
        for c in analysis.comparable_multiples
    )
    risks = "\n".join(f"> - **{risk}**" for risk in analysis.key_risks)
    catalysts = "\n".join(
        f"- **{c.event}** ({c.date}): {c.impact}"
        for c in analysis.upcoming_catalysts
    )

    sections = [
        f"## {analysis.company_name} ({analysis.symbol}) AI-Powered Analysis",
        f"> **Business Summary**\n> {analysis.business_summary}",
        f"### Competitive Moat\n**{analysis.moat_analysis}**",
        f"### Valuation & Comparables\n{analysis.valuation_commentary}",
    ]
    if comparables:
        sections.append(
            "| Ticker | Name | P/E | EV/EBITDA | Premium/Discount |\n"
            "| :--- | :--- | :--- | :--- | :--- |\n"
            f"{comparables}"
        )
    sections.append(
        "### Capital & Management\n\n"
        f"- **Strategy**: {analysis.capital_allocation}\n\n"
        f"- **Financial Health**: {analysis.financial_health}\n\n"
        f"- **Earnings Quality**: {analysis.earnings_quality}"
    )
    if risks:
        sections.append(f"### Key Risks\n{risks}")
    sections.append(f"### Growth Catalysts\n{analysis.growth_catalysts}")
    if catalysts:
        sections.append(f"### Upcoming Catalysts\n{catalysts}")
    if analysis.short_interest:
        sections.append(f"### Short Interest\n{analysis.short_interest}")
    return "\n\n".join(sections)

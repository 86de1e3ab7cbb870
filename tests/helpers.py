"""Shared test database, token and payload helpers."""

from datetime import UTC, datetime, timedelta

import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings
from app.core.database import enable_sqlite_foreign_keys
from app.models.user import User

# --- Test DB (SQLite in-memory) ---

test_engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
enable_sqlite_foreign_keys(test_engine)
session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


async def seed_user(
    user_id: str = "user-1",
    email: str | None = None,
    name: str = "Test User",
) -> None:
    """Insert a user row, as the identity provider sync would."""
    async with session_factory() as session:
        session.add(User(id=user_id, email=email or f"{user_id}@test.com", name=name))
        await session.commit()


# --- Token helpers ---


def make_token(
    user_id: str = "user-1",
    email: str = "test@test.com",
    role: str = "user",
    expires_in: timedelta = timedelta(minutes=15),
) -> str:
    """Sign a token the way the identity provider does."""
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "exp": datetime.now(UTC) + expires_in,
    }
    return jwt.encode(
        payload,
        settings.auth.secret_key.get_secret_value(),
        algorithm=settings.auth.algorithm,
    )


def make_auth_headers(
    user_id: str = "user-1",
    email: str = "test@test.com",
    role: str = "user",
) -> dict[str, str]:
    """Generate Authorization headers with a valid access token."""
    return {"Authorization": f"Bearer {make_token(user_id, email, role)}"}


# --- Sample AI payloads ---


def analysis_payload(symbol: str = "AAPL") -> dict:
    """Stock analysis as the model returns it (camelCase keys)."""
    return {
        "symbol": symbol,
        "companyName": "Apple Inc.",
        "businessSummary": "Sells iPhones and services.",
        "moatAnalysis": "Ecosystem lock-in.",
        "keyRisks": ["China exposure", "Regulation", "Smartphone saturation"],
        "growthCatalysts": "Services growth.",
        "financialHealth": "Net cash, high margins.",
        "valuationCommentary": "Above its 5-year average P/E.",
        "capitalAllocation": "Large buybacks.",
        "earningsQuality": "Cash flow exceeds net income.",
        "shortInterest": None,
        "upcomingCatalysts": [
            {"event": "WWDC", "date": "June", "impact": "Bullish on AI features"}
        ],
        "comparableMultiples": [
            {
                "ticker": "MSFT",
                "name": "Microsoft",
                "peRatio": "35.1x",
                "evEbitda": "24.0x",
                "premium": "Cloud growth premium",
            }
        ],
    }

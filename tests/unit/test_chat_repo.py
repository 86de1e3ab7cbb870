"""Unit tests for ChatRepository."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.chat_session import ChatSession
from app.repositories.chat_repo import ChatRepository
from tests.helpers import seed_user


@pytest.fixture
async def chat_repo(db_session: AsyncSession) -> ChatRepository:
    """Create a ChatRepository backed by the test DB session."""
    await seed_user("user-1")
    await seed_user("user-2")
    return ChatRepository(db_session)


async def _create_session_with_ts(
    db_session: AsyncSession,
    updated_at: datetime,
    user_id: str = "user-1",
    session_type: str = "stock",
    context_id: str = "AAPL",
) -> ChatSession:
    """Helper: insert a session with an explicit ``updated_at``."""
    session = ChatSession(
        user_id=user_id,
        type=session_type,
        context_id=context_id,
        title=f"{context_id} chat",
        updated_at=updated_at,
    )
    db_session.add(session)
    await db_session.flush()
    await db_session.refresh(session)
    return session


class TestCreateSession:
    """Tests for ChatRepository.create_session."""

    @pytest.mark.asyncio
    async def test_create_session_assigns_uuid(self, chat_repo: ChatRepository) -> None:
        session = await chat_repo.create_session(
            user_id="user-1",
            session_type="fund",
            context_id="VTSAX",
            title="Vanguard chat",
        )

        assert len(session.id) == 36
        assert session.type == "fund"
        assert session.preview is None
        assert session.created_at is not None

    @pytest.mark.asyncio
    async def test_find_session_by_id(self, chat_repo: ChatRepository) -> None:
        created = await chat_repo.create_session("user-1", "stock", "MSFT", "MSFT")

        found = await chat_repo.find_session_by_id(created.id)
        assert found is not None
        assert found.context_id == "MSFT"
        assert await chat_repo.find_session_by_id("missing") is None


class TestFindSessions:
    """Tests for session listing and latest-session lookup."""

    @pytest.mark.asyncio
    async def test_sessions_ordered_by_updated_at_desc(
        self, chat_repo: ChatRepository, db_session: AsyncSession
    ) -> None:
        base = datetime(2026, 1, 1, tzinfo=UTC)
        old = await _create_session_with_ts(db_session, base, context_id="A")
        new = await _create_session_with_ts(
            db_session, base + timedelta(hours=1), context_id="B"
        )

        sessions = await chat_repo.find_sessions_by_user("user-1", limit=10)

        assert [s.id for s in sessions] == [new.id, old.id]

    @pytest.mark.asyncio
    async def test_filters_by_type_and_user(
        self, chat_repo: ChatRepository, db_session: AsyncSession
    ) -> None:
        now = datetime.now(UTC)
        await _create_session_with_ts(db_session, now, session_type="stock")
        fund = await _create_session_with_ts(db_session, now, session_type="fund")
        await _create_session_with_ts(db_session, now, user_id="user-2")

        sessions = await chat_repo.find_sessions_by_user(
            "user-1", limit=10, session_type="fund"
        )

        assert [s.id for s in sessions] == [fund.id]

    @pytest.mark.asyncio
    async def test_limit(
        self, chat_repo: ChatRepository, db_session: AsyncSession
    ) -> None:
        base = datetime(2026, 1, 1, tzinfo=UTC)
        for i in range(5):
            await _create_session_with_ts(
                db_session, base + timedelta(minutes=i), context_id=f"T{i}"
            )

        sessions = await chat_repo.find_sessions_by_user("user-1", limit=2)

        assert [s.context_id for s in sessions] == ["T4", "T3"]

    @pytest.mark.asyncio
    async def test_find_latest_session(
        self, chat_repo: ChatRepository, db_session: AsyncSession
    ) -> None:
        base = datetime(2026, 1, 1, tzinfo=UTC)
        await _create_session_with_ts(db_session, base)
        latest = await _create_session_with_ts(db_session, base + timedelta(days=1))
        await _create_session_with_ts(
            db_session, base + timedelta(days=2), context_id="TSLA"
        )

        found = await chat_repo.find_latest_session("user-1", "stock", "AAPL")

        assert found is not None
        assert found.id == latest.id

    @pytest.mark.asyncio
    async def test_find_latest_session_none(self, chat_repo: ChatRepository) -> None:
        assert await chat_repo.find_latest_session("user-1", "stock", "AAPL") is None


class TestMessages:
    """Tests for message persistence."""

    @pytest.mark.asyncio
    async def test_messages_in_insertion_order(
        self, chat_repo: ChatRepository
    ) -> None:
        session = await chat_repo.create_session("user-1", "stock", "AAPL", "t")
        for i in range(3):
            await chat_repo.create_message(session.id, "user", f"m{i}")

        messages = await chat_repo.find_messages_by_session_id(session.id)

        assert [m.content for m in messages] == ["m0", "m1", "m2"]

    @pytest.mark.asyncio
    async def test_update_session_activity(
        self, chat_repo: ChatRepository, db_session: AsyncSession
    ) -> None:
        session = await chat_repo.create_session("user-1", "stock", "AAPL", "t")
        later = datetime(2030, 1, 1, tzinfo=UTC)

        await chat_repo.update_session_activity(session.id, "preview", later)
        await db_session.refresh(session)

        assert session.preview == "preview"
        assert session.updated_at.replace(tzinfo=None) == later.replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_update_title_only(
        self, chat_repo: ChatRepository, db_session: AsyncSession
    ) -> None:
        session = await chat_repo.create_session("user-1", "stock", "AAPL", "old")
        before = session.updated_at

        await chat_repo.update_session_title(session.id, "new")
        await db_session.refresh(session)

        assert session.title == "new"
        assert session.updated_at == before


class TestDeleteSession:
    """Tests for ChatRepository.delete_session."""

    @pytest.mark.asyncio
    async def test_delete_cascades_to_messages(
        self, chat_repo: ChatRepository
    ) -> None:
        session = await chat_repo.create_session("user-1", "stock", "AAPL", "t")
        await chat_repo.create_message(session.id, "user", "hello")

        await chat_repo.delete_session(session.id)

        assert await chat_repo.find_session_by_id(session.id) is None
        assert await chat_repo.find_messages_by_session_id(session.id) == []

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, chat_repo: ChatRepository) -> None:
        await chat_repo.delete_session("does-not-exist")

"""Tests for the AI retry wrapper and error classification."""

from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import (
    AIServiceUnavailableError,
    AnalysisError,
    AppException,
    SessionNotFoundError,
)
from app.core.retry import (
    ai_error_to_app_exception,
    is_transient_ai_error,
    retry_ai_call,
)


class _StatusError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class _Response:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code


class _ResponseError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.response = _Response(status_code)


class TestIsTransientAIError:
    @pytest.mark.parametrize(
        "message",
        [
            "503 Service Unavailable",
            "The model is overloaded. Please try again later.",
            "Backend UNAVAILABLE",
        ],
    )
    def test_message_markers(self, message: str) -> None:
        assert is_transient_ai_error(Exception(message)) is True

    @pytest.mark.parametrize(
        "message",
        ["400 Bad Request", "API key not valid", "quota exceeded"],
    )
    def test_non_transient_messages(self, message: str) -> None:
        assert is_transient_ai_error(Exception(message)) is False

    def test_structured_status_code(self) -> None:
        assert is_transient_ai_error(_StatusError("boom", 503)) is True
        assert is_transient_ai_error(_ResponseError("boom", 503)) is True

    def test_structured_status_beats_message(self) -> None:
        assert is_transient_ai_error(_StatusError("service unavailable", 400)) is False


class TestRetryAICall:
    """Tests for retry_ai_call."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, no_retry_sleep: list[float]) -> None:
        fn = AsyncMock(return_value="ok")

        assert await retry_ai_call(fn) == "ok"
        assert fn.await_count == 1
        assert no_retry_sleep == []

    @pytest.mark.asyncio
    async def test_transient_then_success(self, no_retry_sleep: list[float]) -> None:
        fn = AsyncMock(side_effect=[Exception("503 overloaded"), "ok"])

        result = await retry_ai_call(fn, max_retries=3, initial_delay_ms=1000)

        assert result == "ok"
        assert fn.await_count == 2
        assert no_retry_sleep == [1.0]

    @pytest.mark.asyncio
    async def test_exhausts_retries_and_reraises_last_error(
        self, no_retry_sleep: list[float]
    ) -> None:
        errors = [Exception(f"503 attempt {i}") for i in range(4)]
        fn = AsyncMock(side_effect=errors)

        with pytest.raises(Exception) as exc_info:
            await retry_ai_call(fn, max_retries=3)

        assert exc_info.value is errors[-1]
        assert fn.await_count == 4

    @pytest.mark.asyncio
    async def test_non_transient_fails_fast(
        self, no_retry_sleep: list[float]
    ) -> None:
        error = ValueError("API key not valid")
        fn = AsyncMock(side_effect=error)

        with pytest.raises(ValueError) as exc_info:
            await retry_ai_call(fn, max_retries=3)

        assert exc_info.value is error
        assert fn.await_count == 1
        assert no_retry_sleep == []

    @pytest.mark.asyncio
    async def test_backoff_schedule_is_capped(
        self, no_retry_sleep: list[float]
    ) -> None:
        fn = AsyncMock(side_effect=Exception("overloaded"))

        with pytest.raises(Exception):
            await retry_ai_call(
                fn,
                max_retries=4,
                initial_delay_ms=1000,
                max_delay_ms=5000,
                backoff_multiplier=2.0,
            )

        assert no_retry_sleep == [1.0, 2.0, 4.0, 5.0]

    @pytest.mark.asyncio
    async def test_zero_retries(self, no_retry_sleep: list[float]) -> None:
        fn = AsyncMock(side_effect=Exception("503"))

        with pytest.raises(Exception):
            await retry_ai_call(fn, max_retries=0)

        assert fn.await_count == 1
        assert no_retry_sleep == []

    @pytest.mark.asyncio
    async def test_defaults_from_settings(self, no_retry_sleep: list[float]) -> None:
        fn = AsyncMock(side_effect=Exception("503"))

        with pytest.raises(Exception):
            await retry_ai_call(fn)

        # 3 retries, 1s initial, doubled, capped at 10s
        assert fn.await_count == 4
        assert no_retry_sleep == [1.0, 2.0, 4.0]


class TestRetryAICallWithLambda:
    """Callers hand over ``lambda: llm.ainvoke(...)``, not a coroutine function."""

    @pytest.mark.asyncio
    async def test_lambda_result_is_awaited(self) -> None:
        inner = AsyncMock(return_value="ok")

        result = await retry_ai_call(lambda: inner())

        assert result == "ok"
        assert inner.await_count == 1

    @pytest.mark.asyncio
    async def test_two_overloads_then_success_with_defaults(
        self, no_retry_sleep: list[float]
    ) -> None:
        inner = AsyncMock(
            side_effect=[Exception("503"), Exception("503"), "ok"]
        )

        result = await retry_ai_call(lambda: inner())

        assert result == "ok"
        assert inner.await_count == 3
        assert no_retry_sleep == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_max_retries_two_makes_three_calls(
        self, no_retry_sleep: list[float]
    ) -> None:
        error = Exception("503 Service Unavailable")
        inner = AsyncMock(side_effect=error)

        with pytest.raises(Exception) as exc_info:
            await retry_ai_call(lambda: inner(), max_retries=2)

        assert exc_info.value is error
        assert inner.await_count == 3
        assert no_retry_sleep == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_non_transient_from_lambda_fails_fast(
        self, no_retry_sleep: list[float]
    ) -> None:
        inner = AsyncMock(side_effect=ValueError("API key not valid"))

        with pytest.raises(ValueError):
            await retry_ai_call(lambda: inner())

        assert inner.await_count == 1
        assert no_retry_sleep == []


class TestAIErrorToAppException:
    def test_transient_maps_to_503(self) -> None:
        exc = ai_error_to_app_exception(Exception("model overloaded"))
        assert isinstance(exc, AIServiceUnavailableError)
        assert exc.status_code == 503

    def test_other_maps_to_502(self) -> None:
        exc = ai_error_to_app_exception(RuntimeError("bad request"))
        assert isinstance(exc, AnalysisError)
        assert exc.status_code == 502
        assert "bad request" in exc.message

    def test_app_exception_passes_through(self) -> None:
        original = SessionNotFoundError()
        assert ai_error_to_app_exception(original) is original
        assert isinstance(original, AppException)

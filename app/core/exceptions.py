"""Application exception classes and handlers."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.schemas.response_schema import error_body


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


# --- Authentication (401) ---


class AuthenticationError(AppException):
    """Base authentication error."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message=message, code="AUTHENTICATION_ERROR", status_code=401)


# --- Authorization (403) ---


class AuthorizationError(AppException):
    """Insufficient permissions."""

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message=message, code="AUTHORIZATION_ERROR", status_code=403)


# --- Not Found (404) ---


class SessionNotFoundError(AppException):
    """Chat session not found."""

    def __init__(self) -> None:
        super().__init__(
            message="Chat session not found",
            code="SESSION_NOT_FOUND",
            status_code=404,
        )


# --- Server side (5xx) ---


class SessionCreationError(AppException):
    """Persisting a new chat session failed."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            message=f"Failed to create chat session: {detail}",
            code="SESSION_CREATION_FAILED",
            status_code=500,
        )


class LLMConfigurationError(AppException):
    """The configured AI provider has no credentials."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            message=f"Missing API key for AI provider '{provider}'",
            code="LLM_NOT_CONFIGURED",
            status_code=500,
        )


class AnalysisError(AppException):
    """The AI service returned an error or an unusable answer."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            message=f"AI analysis failed: {detail}",
            code="AI_ANALYSIS_FAILED",
            status_code=502,
        )


class AIServiceUnavailableError(AppException):
    """The AI service stayed overloaded after all retries."""

    def __init__(self) -> None:
        super().__init__(
            message="The AI service is busy right now. Please try again.",
            code="AI_SERVICE_UNAVAILABLE",
            status_code=503,
        )


# --- Exception Handlers ---


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Central exception handler for AppException."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.message, exc.code),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation errors in the common error shape."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    detail = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content=error_body(
            422,
            f"{location}: {detail}" if location else detail,
            "VALIDATION_ERROR",
        ),
    )

"""Application configuration using Pydantic Settings V2."""

from functools import cached_property
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.settings import (
    AppConfig,
    AuthConfig,
    DatabaseConfig,
    LLMConfig,
    RetryConfig,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Flat fields are loaded directly from environment variables.
    Domain properties provide grouped access (e.g. settings.llm.provider).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LLM Provider
    llm_provider: Literal["gemini", "openai", "anthropic"] = Field(
        default="gemini",
        description="LLM provider to use",
    )

    # Gemini
    gemini_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Google Gemini API key",
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model name",
    )

    # OpenAI
    openai_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="OpenAI API key",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model name",
    )

    # Anthropic
    anthropic_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Anthropic API key",
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Anthropic model name",
    )

    ai_rate_limit: str = Field(
        default="20/minute",
        description="Rate limit for endpoints that call the AI service",
    )

    # AI retry policy
    ai_retry_max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries after the first attempt for transient AI errors",
    )
    ai_retry_initial_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Delay before the first retry in milliseconds",
    )
    ai_retry_max_delay_ms: int = Field(
        default=10000,
        ge=0,
        description="Upper bound for a single retry delay in milliseconds",
    )
    ai_retry_backoff_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="Exponential backoff multiplier",
    )

    # App
    app_name: str = Field(
        default="research-chat",
        description="Application name",
    )
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Debug mode",
    )
    cors_origins: str = Field(
        default="",
        description="Comma-separated CORS origins outside development",
    )

    # JWT Auth (tokens issued by the identity provider)
    jwt_secret_key: SecretStr = Field(
        description="Shared secret used to verify identity provider tokens",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm",
    )

    # Database
    database_url: SecretStr = Field(
        description="Async database URL (mysql+aiomysql://...)",
    )

    # --- Domain properties ---

    @cached_property
    def llm(self) -> LLMConfig:
        """LLM provider configuration."""
        return LLMConfig(
            provider=self.llm_provider,
            gemini_api_key=self.gemini_api_key,
            gemini_model=self.gemini_model,
            openai_api_key=self.openai_api_key,
            openai_model=self.openai_model,
            anthropic_api_key=self.anthropic_api_key,
            anthropic_model=self.anthropic_model,
            rate_limit=self.ai_rate_limit,
        )

    @cached_property
    def retry(self) -> RetryConfig:
        """Backoff policy for generative-AI calls."""
        return RetryConfig(
            max_retries=self.ai_retry_max_retries,
            initial_delay_ms=self.ai_retry_initial_delay_ms,
            max_delay_ms=self.ai_retry_max_delay_ms,
            backoff_multiplier=self.ai_retry_backoff_multiplier,
        )

    @cached_property
    def app(self) -> AppConfig:
        """Application environment configuration."""
        return AppConfig(
            name=self.app_name,
            env=self.app_env,
            debug=self.debug,
            cors_origins=self.cors_origins,
        )

    @cached_property
    def auth(self) -> AuthConfig:
        """JWT verification configuration."""
        return AuthConfig(
            secret_key=self.jwt_secret_key,
            algorithm=self.jwt_algorithm,
        )

    @cached_property
    def database(self) -> DatabaseConfig:
        """Database connection configuration."""
        return DatabaseConfig(url=self.database_url)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app.is_development


# Global settings instance
settings = Settings()

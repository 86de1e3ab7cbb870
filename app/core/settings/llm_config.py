"""LLM provider configuration."""

from typing import Literal

from pydantic import BaseModel, SecretStr


class LLMConfig(BaseModel, frozen=True):
    """LLM provider settings."""

    provider: Literal["gemini", "openai", "anthropic"]
    gemini_api_key: SecretStr
    gemini_model: str
    openai_api_key: SecretStr
    openai_model: str
    anthropic_api_key: SecretStr
    anthropic_model: str
    rate_limit: str

    @property
    def active_api_key(self) -> SecretStr:
        """API key of the configured provider."""
        match self.provider:
            case "gemini":
                return self.gemini_api_key
            case "openai":
                return self.openai_api_key
            case _:
                return self.anthropic_api_key

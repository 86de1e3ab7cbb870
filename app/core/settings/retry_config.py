"""Retry policy for generative-AI calls."""

from pydantic import BaseModel, Field


class RetryConfig(BaseModel, frozen=True):
    """Exponential backoff settings for transient AI failures."""

    max_retries: int = Field(ge=0)
    initial_delay_ms: int = Field(ge=0)
    max_delay_ms: int = Field(ge=0)
    backoff_multiplier: float = Field(ge=1)

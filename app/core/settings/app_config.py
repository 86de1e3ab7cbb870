"""Application environment configuration."""

from typing import Literal

from pydantic import BaseModel


class AppConfig(BaseModel, frozen=True):
    """Application environment settings."""

    name: str
    env: Literal["development", "staging", "production"]
    debug: bool
    cors_origins: str = ""

    @property
    def is_development(self) -> bool:
        return self.env == "development"

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """Allowed CORS origins; everything in development."""
        if self.is_development:
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

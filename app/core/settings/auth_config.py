"""JWT verification configuration."""

from pydantic import BaseModel, SecretStr


class AuthConfig(BaseModel, frozen=True):
    """Settings for verifying tokens issued by the identity provider."""

    secret_key: SecretStr
    algorithm: str

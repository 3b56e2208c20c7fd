from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "some-secret-1213123"
HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Built once at startup by ``create_app`` and handed to the components
    that need it. Instances are frozen.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    api_title: str = Field("Event API", description="Title shown in the OpenAPI schema")
    host: str = Field("0.0.0.0", description="Address uvicorn binds to")
    port: int = Field(8080, description="Port uvicorn listens on")
    log_level: str = Field("INFO", description="Root logger level")

    database_url: str = Field("sqlite:///eventapp.db", description="SQLAlchemy database URL")
    db_timeout_seconds: float = Field(3.0, gt=0, description="Upper bound for a single store operation")

    jwt_secret: str = Field(DEFAULT_JWT_SECRET, description="HMAC secret used to sign bearer tokens")
    jwt_algorithm: str = Field("HS256", description="HMAC algorithm used to sign bearer tokens")
    token_lifetime_hours: int = Field(72, gt=0, description="Bearer token lifetime")

    argon2_time_cost: int = Field(3, gt=0, description="Argon2 iterations")
    argon2_memory_cost: int = Field(65536, gt=0, description="Argon2 memory in KiB")
    argon2_parallelism: int = Field(4, gt=0, description="Argon2 lanes")

    event_access_policy: Literal["open", "owner"] = Field(
        "open", description="Who may modify an event: any authenticated caller or only its owner"
    )

    @field_validator("jwt_algorithm")
    @classmethod
    def _require_hmac(cls, value: str) -> str:
        value = value.upper()
        if value not in HMAC_ALGORITHMS:
            raise ValueError(f"jwt_algorithm must be one of {', '.join(HMAC_ALGORITHMS)}")
        return value

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET

from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import quote_plus

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: Literal["dev", "staging", "prod"] = "dev"
    app_name: str = "Prompt Arena API"
    api_prefix: str = "/api/v1"
    debug: bool = True
    cors_allow_origins: str = "http://localhost:5173,http://localhost:3000"

    database_url: str = ""
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "prompt_arena"
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_sslmode: Literal["disable", "allow", "prefer", "require", "verify-ca", "verify-full"] = "disable"
    redis_url: str = "redis://localhost:6379/0"

    # Tokens are issued by the external identity provider; we only verify them.
    identity_jwt_secret: str = Field(default="change-me-identity-provider-shared-secret", min_length=32)
    identity_jwks_url: str = ""
    identity_issuer: str = ""
    identity_audience: str = ""
    identity_role_claim: str = "role"

    profile_cache_ttl_seconds: int = 60
    profile_cache_max_size: int = 512

    submission_max_bytes: int = 1024 * 1024
    submission_rate_limit: int = 5
    submission_rate_window_seconds: int = 60

    distribution_max_per_challenge: int = 0
    evaluation_stale_lock_seconds: int = 3600
    evaluation_batch_size: int = 5

    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_api_key: str = ""
    llm_models: str = "meta-llama/llama-3-8b-instruct,openai/gpt-3.5-turbo,anthropic/claude-3-haiku"
    llm_max_tokens: int = Field(default=300, ge=100)
    llm_temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    llm_retry_attempts: int = Field(default=2, ge=1, le=5)
    llm_retry_delay_ms: int = Field(default=500, ge=100, le=5000)
    llm_timeout_seconds: float = 60.0
    llm_http_referer: str = "http://localhost:3000"
    llm_app_title: str = "Prompt Engineering Competition"

    @property
    def llm_model_names(self) -> list[str]:
        return [item.strip() for item in self.llm_models.split(",") if item.strip()]

    @property
    def async_database_url(self) -> str:
        if self.database_url:
            if self.database_url.startswith("postgresql+asyncpg://"):
                return self.database_url
            if self.database_url.startswith("postgresql://"):
                return "postgresql+asyncpg://" + self.database_url.removeprefix("postgresql://")
            return self.database_url
        user = quote_plus(self.db_user)
        password = quote_plus(self.db_password)
        ssl_query = ""
        if self.db_sslmode == "require":
            ssl_query = "?ssl=require"
        return (
            f"postgresql+asyncpg://{user}:{password}@{self.db_host}:{self.db_port}/{self.db_name}"
            f"{ssl_query}"
        )

    @property
    def sync_database_url(self) -> str:
        url = self.async_database_url
        if url.startswith("postgresql+asyncpg://"):
            converted = "postgresql+psycopg2://" + url.removeprefix("postgresql+asyncpg://")
        else:
            converted = url
        return converted.replace("ssl=require", "sslmode=require")


@lru_cache
def get_settings() -> Settings:
    return Settings()

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, PostgresDsn, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CustomSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


class AppSettings(CustomSettings):
    ENVIRONMENT: Literal["local", "dev", "prod"] = Field(default="local")
    LOG_LEVEL: str = Field(default="INFO")
    JSON_LOGS: bool = Field(default=False)
    API_PREFIX: str = Field(default="/api")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "prod"


class PgDbSettings(CustomSettings):
    POSTGRES_ENGINE: str = Field(default="postgresql+asyncpg")
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: SecretStr = Field(default="postgres")
    POSTGRES_DB: str = Field(default="agrichat")
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)
    DATABASE_URL: PostgresDsn | str = Field(default="")
    # Bounded pool: requests beyond POOL_SIZE + MAX_OVERFLOW wait up to POOL_TIMEOUT
    POOL_SIZE: int = Field(default=10, ge=1)
    MAX_OVERFLOW: int = Field(default=0, ge=0)
    POOL_TIMEOUT: float = Field(default=60.0, gt=0)
    CREATE_TABLES: bool = Field(default=False)

    @model_validator(mode="before")
    def validate_postgres_dsn(cls, data: dict):
        if isinstance(data, dict) and not data.get("DATABASE_URL"):
            password = data.get("POSTGRES_PASSWORD", "postgres")
            if isinstance(password, SecretStr):
                password = password.get_secret_value()
            _built_uri = PostgresDsn.build(
                scheme=data.get("POSTGRES_ENGINE", "postgresql+asyncpg"),
                username=data.get("POSTGRES_USER", "postgres"),
                password=password,
                host=data.get("POSTGRES_HOST", "localhost"),
                port=int(data.get("POSTGRES_PORT", 5432)),
                path=data.get("POSTGRES_DB", "agrichat"),
            ).unicode_string()
            data["DATABASE_URL"] = _built_uri
        return data


class RateLimitSettings(CustomSettings):
    """Per-client write limits.

    Set via env vars:
    - RATE_LIMIT_ENABLED
    - RATE_LIMIT_WRITES (a `limits` string, e.g. "100 per 15 minutes")
    """

    RATE_LIMIT_ENABLED: bool = Field(default=True)
    RATE_LIMIT_WRITES: str = Field(default="100 per 15 minutes")


class CorsSettings(CustomSettings):
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:5000", "http://localhost:3000"]
    )


class ClientSettings(CustomSettings):
    """Configuration for the persistence client used by the chat frontend.

    Set via env vars:
    - API_BASE_URL
    - HEALTH_ENDPOINT
    - LOCAL_STORAGE_PATH
    - LOCAL_STORAGE_QUOTA_BYTES
    - REQUEST_TIMEOUT
    - DEMOTE_ON_FAILURE
    """

    API_BASE_URL: str = Field(default="http://localhost:3000/api")
    HEALTH_ENDPOINT: str = Field(default="/health")
    LOCAL_STORAGE_PATH: str = Field(default=".agrichat/local_storage.json")
    LOCAL_STORAGE_QUOTA_BYTES: int = Field(default=5 * 1024 * 1024, gt=0)
    REQUEST_TIMEOUT: Optional[float] = Field(default=10.0)
    DEMOTE_ON_FAILURE: bool = Field(default=True)


class Settings(BaseModel):
    APP: AppSettings = Field(default_factory=AppSettings)
    DATABASE: PgDbSettings = Field(default_factory=PgDbSettings)
    RATE_LIMIT: RateLimitSettings = Field(default_factory=RateLimitSettings)
    CORS: CorsSettings = Field(default_factory=CorsSettings)
    CLIENT: ClientSettings = Field(default_factory=ClientSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()


SETTINGS = get_settings()

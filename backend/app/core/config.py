import warnings
from typing import Annotated, Any, Literal

from pydantic import (
    AnyUrl,
    BeforeValidator,
    HttpUrl,
    PostgresDsn,
    computed_field,
    model_validator,
)
from pydantic_core import MultiHostUrl
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


def parse_upper_list(v: Any) -> list[str]:
    """Comma-separated (or list) value -> list of upper-cased, trimmed items."""
    items = parse_cors(v)
    if isinstance(items, str):
        items = [items]
    return [str(i).strip().upper() for i in items if str(i).strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Use top level .env file (one level above ./backend/)
        env_file="../.env",
        env_ignore_empty=True,
        extra="ignore",
    )
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "SQL Gateway"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: HttpUrl | None = None

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []
    FRONTEND_HOST: str = "http://localhost:5173"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    # Comma-separated list of accepted X-API-Key values
    API_KEYS: Annotated[list[str] | str, BeforeValidator(parse_cors)] = []

    # Template store (application database)
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> PostgresDsn:
        return MultiHostUrl.build(
            scheme="postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    # Query datasource (the relational backend queries are executed against)
    QUERY_DB_PRODUCT_TYPE: Literal["postgres", "mysql", "trino"] = "postgres"
    QUERY_DB_HOST: str = "localhost"
    QUERY_DB_PORT: int = 5432
    QUERY_DB_NAME: str = ""
    QUERY_DB_USER: str = "postgres"
    QUERY_DB_PASSWORD: str = ""
    QUERY_DB_USE_SSL: bool = False
    QUERY_DB_DEFAULT_SCHEMA: str = "public"
    QUERY_DB_CONNECT_TIMEOUT: int = 10
    QUERY_DB_POOL_SIZE: int = 5
    QUERY_DB_POOL_MAX_AGE_SEC: int = 600

    # Query policy
    QUERY_TIMEOUT_SECONDS: int = 30
    QUERY_MAX_ROWS: int = 1000
    QUERY_MAX_PAGE_SIZE: int = 1000
    QUERY_VALIDATION_ENABLED: bool = True
    QUERY_ALLOWED_COMMANDS: Annotated[
        list[str] | str, BeforeValidator(parse_upper_list)
    ] = ["SELECT"]

    # Redis (container cache)
    CACHE_ENABLED: bool = True
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str | None = None
    REDIS_DB: int = 0

    @property
    def redis_url(self) -> str:
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    CONTAINER_CACHE_SCHEDULER_ENABLED: bool = True
    # Six fields: second minute hour day-of-month month day-of-week
    CONTAINER_CACHE_CRON: str = "0 */5 * * * *"
    CONTAINER_CACHE_SOURCE_QUERY: str = "SELECT * FROM containers"
    CONTAINER_CACHE_SOURCE_TIMEOUT: int = 60
    CONTAINER_CACHE_SCAN_PAGE_SIZE: int = 1000

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        if not value:
            message = (
                f'The value of {var_name} is empty, '
                "for security, please set it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("POSTGRES_PASSWORD", self.POSTGRES_PASSWORD)
        self._check_default_secret("API_KEYS", ",".join(self.API_KEYS))
        return self


settings = Settings()  # type: ignore

from typing import Any, Literal

from pydantic import computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

_ASYNC_DRIVERS = {"sqlite": "sqlite+aiosqlite", "postgresql": "postgresql+asyncpg"}


def _with_async_driver(url: str) -> str:
    parsed = make_url(url)
    driver = _ASYNC_DRIVERS.get(parsed.drivername)
    if driver is None:
        return url
    return parsed.set(drivername=driver).render_as_string(hide_password=False)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", "novablick/.env"), env_ignore_empty=True, extra="ignore"
    )
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Novablick"
    ENVIRONMENT: Literal["local", "staging", "development", "production"] = "local"

    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ENABLED: bool = True
    CORS_ORIGINS: list[str] = ["*"]

    # Dataset storage. DATABASE_URL wins over the POSTGRES_* parts; local
    # environments fall back to a SQLite file.
    DATABASE_URL: str | None = None
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = ""
    LOCAL_DB: str = "local.db"
    DATABASE_ECHO: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_ASYNC_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return _with_async_driver(self.DATABASE_URL)
        if self.ENVIRONMENT == "local":
            return f"sqlite+aiosqlite:///./{self.LOCAL_DB}"
        return URL.create(
            "postgresql+asyncpg",
            username=self.POSTGRES_USER or None,
            password=self.POSTGRES_PASSWORD or None,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            database=self.POSTGRES_DB or None,
        ).render_as_string(hide_password=False)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def DATABASE_BACKEND(self) -> str:
        return make_url(self.SQLALCHEMY_ASYNC_DATABASE_URI).get_backend_name()

    LLM_PROVIDER: str = "openai"
    LLM_API_KEY: str = ""
    # Plan generation and step execution
    REASONING_MODEL: str = "gpt-5-nano"
    # Planning decision, direct responses and synthesis
    NON_REASONING_MODEL: str = "gpt-4.1"
    LLM_CONFIGURATION: dict[str, Any] = {}

    AGENT_MAX_TOOL_ROUNDS: int = 5
    EVENT_QUEUE_SIZE: int = 64

    QUERY_ROW_CAP: int = 1000
    QUERY_ROWS_TABLE: str = "dataset_rows"
    QUERY_SCOPE_COLUMN: str = "dataset_id"

    CODE_EXECUTION_TIMEOUT_SECONDS: float = 30.0

    @field_validator("AGENT_MAX_TOOL_ROUNDS")
    @classmethod
    def _validate_max_tool_rounds(cls, value: int) -> int:
        if value < 1:
            raise ValueError("AGENT_MAX_TOOL_ROUNDS must be at least 1.")
        return value


settings = Settings()  # type: ignore

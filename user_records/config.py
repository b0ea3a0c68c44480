"""
Configuration settings for the user records service.

Uses Pydantic Settings to load environment variables for the database
connection, the connection pool, the HTTP listener, and logging. Every value
has a development default that boots against a co-located PostgreSQL;
production deployments are expected to override the credentials.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, Dict, List, Optional

from psycopg.conninfo import make_conninfo
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Database and table names are interpolated into DDL/DML, so only plain
# identifiers are accepted.
IDENTIFIER_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]{0,62}$"


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("simple_webapp", alias="DB_NAME", pattern=IDENTIFIER_PATTERN)
    db_table: str = Field("users", alias="DB_TABLE", pattern=IDENTIFIER_PATTERN)
    db_admin_database: str = Field(
        "postgres", alias="DB_ADMIN_DATABASE", pattern=IDENTIFIER_PATTERN
    )

    # Pool
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE", ge=0)
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE", ge=1)
    db_pool_timeout: float = Field(10.0, alias="DB_POOL_TIMEOUT", gt=0)

    # Application
    app_host: str = Field("0.0.0.0", alias="APP_HOST")
    app_port: int = Field(3000, alias="PORT")
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["*"], alias="CORS_ORIGINS"
    )
    seed_sample_data: bool = Field(True, alias="SEED_SAMPLE_DATA")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        # CORS_ORIGINS=http://a.example,http://b.example
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    def conninfo(self, database: Optional[str] = None) -> str:
        """
        Compose a libpq connection string for `database` (defaults to db_name).
        """
        return make_conninfo(
            host=self.db_host,
            port=self.db_port,
            user=self.db_user,
            password=self.db_password,
            dbname=database or self.db_name,
        )

    def safe_summary(self) -> Dict[str, Any]:
        """Connection details that are safe to log (no password)."""
        return {
            "host": self.db_host,
            "port": self.db_port,
            "user": self.db_user,
            "database": self.db_name,
            "table": self.db_table,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["IDENTIFIER_PATTERN", "Settings", "get_settings"]

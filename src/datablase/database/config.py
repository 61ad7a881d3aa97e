"""Database configuration management.

Supports configuration from:
1. Environment variables (DATABLASE_URI / DATABASE_URL or individual params)
2. Explicit parameters
3. Defaults for local development
"""

import os
from dataclasses import dataclass
from typing import Optional

URL_ENV_VARS = ("DATABLASE_URI", "DATABASE_URL")


def _url_from_env() -> Optional[str]:
    for name in URL_ENV_VARS:
        value = os.getenv(name)
        if value:
            return value
    return None


@dataclass
class DatabaseConfig:
    """Database connection configuration.

    A full connection URL, when given, takes precedence over the
    individual host/port/database/user/password fields.
    """

    host: str = "localhost"
    port: int = 5432
    database: str = "blaseball"
    user: str = "datablase"
    password: str = "datablase_dev_password"
    url: Optional[str] = None

    # Connection pool settings
    min_connections: int = 1
    max_connections: int = 10
    connection_timeout: int = 30

    echo: bool = False  # Log all SQL issued by init-db

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Create configuration from environment variables.

        Environment variables:
        - DATABLASE_URI / DATABASE_URL: Full connection URL (takes precedence)
        - POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DB, POSTGRES_USER, POSTGRES_PASSWORD
        - DB_POOL_SIZE: Maximum pool connections
        - DB_ECHO: Enable SQL logging (true/false)

        Returns:
            DatabaseConfig instance
        """
        return cls(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", "blaseball"),
            user=os.getenv("POSTGRES_USER", "datablase"),
            password=os.getenv("POSTGRES_PASSWORD", "datablase_dev_password"),
            url=_url_from_env(),
            max_connections=int(os.getenv("DB_POOL_SIZE", "10")),
            echo=os.getenv("DB_ECHO", "false").lower() == "true",
        )

    def get_conninfo(self) -> str:
        """Get a psycopg connection string."""
        if self.url:
            return _strip_driver(self.url)
        return (
            f"postgresql://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    def get_connection_url(self) -> str:
        """Get SQLAlchemy connection URL (postgresql+psycopg://...)."""
        conninfo = self.get_conninfo()
        scheme, sep, rest = conninfo.partition("://")
        if not sep:
            return conninfo
        return f"postgresql+psycopg://{rest}"

    def __repr__(self) -> str:
        """String representation (hides password)."""
        target = "url=*****" if self.url else f"host={self.host}, port={self.port}"
        return (
            f"DatabaseConfig({target}, database={self.database}, user={self.user}, "
            f"password=*****, max_connections={self.max_connections})"
        )


def _strip_driver(url: str) -> str:
    """Turn postgresql+driver://... into postgresql://... for libpq."""
    scheme, sep, rest = url.partition("://")
    if not sep:
        return url
    return f"{scheme.split('+', 1)[0]}://{rest}"

"""Run configuration, read from the environment and overridden by the CLI."""
from pathlib import Path
from typing import Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.common.errors import ConfigurationError

PACKAGE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Collector settings (env prefix ``MECM_HEALTH_``)."""

    model_config = SettingsConfigDict(env_prefix="MECM_HEALTH_", env_file=".env", extra="ignore")

    # Data source
    sql_server: Optional[str] = None
    database: Optional[str] = None
    odbc_driver: str = "ODBC Driver 17 for SQL Server"
    trusted_connection: bool = True
    username: Optional[str] = None
    password: Optional[str] = None
    database_url_override: Optional[str] = None  # full SQLAlchemy URL, bypasses the ODBC builder
    query_timeout_seconds: float = 120.0

    # Output
    output_path: Path = Path("data") / "mock_data.json"
    sample_path: Path = PACKAGE_DIR / "data" / "sample_snapshot.json"

    # Trend filler; None means a non-deterministic seed
    trend_seed: Optional[int] = None

    log_level: str = "INFO"

    def require_source(self) -> None:
        """Raise ConfigurationError unless a data source is configured."""
        if self.database_url_override:
            return
        missing = [name for name in ("sql_server", "database") if not getattr(self, name)]
        if missing:
            raise ConfigurationError(
                f"Missing required setting(s): {', '.join(missing)} "
                f"(pass --sql-server/--database or use --use-sample)"
            )
        if not self.trusted_connection and not self.username:
            raise ConfigurationError("SQL authentication requires a username")

    def database_url(self) -> str:
        """SQLAlchemy URL for the configured SQL Server (pyodbc)."""
        if self.database_url_override:
            return self.database_url_override
        self.require_source()
        parts = [
            f"Driver={{{self.odbc_driver}}}",
            f"Server={self.sql_server}",
            f"Database={self.database}",
        ]
        if self.trusted_connection:
            parts.append("Trusted_Connection=yes")
        else:
            parts.append(f"UID={self.username}")
            parts.append(f"PWD={self.password or ''}")
        parts.append("TrustServerCertificate=yes")
        odbc = ";".join(parts) + ";"
        return f"mssql+pyodbc:///?odbc_connect={quote_plus(odbc)}"


settings = Settings()

"""
Database engine setup for the management database using SQLAlchemy.

The collector only reads, so there is no session factory or declarative
base: queries are plain text executed on short-lived connections.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError

from .config import Settings
from .domain.common.errors import ConfigurationError


def create_source_engine(settings: Settings) -> Engine:
    """
    Create an engine for the configured data source.

    For SQL Server the ODBC login timeout comes from
    ``settings.query_timeout_seconds``; the per-statement timeout is set
    by the query executor on each attempt.

    Raises:
        ConfigurationError: if no data source is configured, the URL is
            malformed, or its dialect or driver is not installed
    """
    url = settings.database_url()

    if url.startswith("mssql"):
        options = dict(
            connect_args={"timeout": int(settings.query_timeout_seconds)},
            pool_pre_ping=True,
        )
    else:
        options = dict(
            connect_args={"check_same_thread": False} if "sqlite" in url else {},
        )

    try:
        return create_engine(url, echo=False, **options)  # echo=True for SQL query logging
    except ArgumentError as e:
        # NoSuchModuleError (unknown dialect) is an ArgumentError too
        raise ConfigurationError(f"Invalid database URL: {e}") from e
    except ImportError as e:
        raise ConfigurationError(f"Database driver not installed: {e}") from e

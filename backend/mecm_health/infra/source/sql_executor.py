"""SQLAlchemy implementation of the QueryExecutor port.

Each call opens a short-lived connection, runs one text query and
returns plain dict rows.  SQLAlchemy errors are translated into the two
domain ``SourceError`` kinds; nothing driver-specific leaks out.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Mapping
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError, ProgrammingError, SQLAlchemyError

from mecm_health.domain.common.errors import ConnectionFailureError, SourceUnavailableError
from mecm_health.domain.health.ports import QueryExecutor
from mecm_health.infra.serialization import convert_db_types

logger = logging.getLogger(__name__)

# Driver messages meaning "this schema does not have it" (or the query
# is malformed for it) rather than "the server is not there".  SQL
# Server: 208 invalid object, 207 invalid column, 102 bad syntax;
# SQLite reports all of these as OperationalError.
_SCHEMA_ERROR = re.compile(
    r"invalid object name|invalid column name|no such table|no such column"
    r"|syntax error|incorrect syntax|\(208\)|\(207\)|\(102\)|42S02|42S22|42000",
    re.IGNORECASE,
)


def _is_schema_error(exc: DBAPIError) -> bool:
    return bool(_SCHEMA_ERROR.search(str(exc.orig) if exc.orig else str(exc)))


class SqlQueryExecutor(QueryExecutor):
    """Run text queries on a SQLAlchemy engine."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def execute(self, sql: str, timeout_seconds: float) -> list[Mapping[str, Any]]:
        started = time.monotonic()
        try:
            with self._engine.connect() as conn:
                if conn.dialect.name == "mssql":
                    # pyodbc: seconds before a running statement is cancelled
                    conn.connection.dbapi_connection.timeout = int(timeout_seconds)
                result = conn.execute(text(sql))
                rows = [convert_db_types(dict(r)) for r in result.mappings()]
        except ProgrammingError as exc:
            raise SourceUnavailableError(_summarize(exc), sql=sql) from exc
        except OperationalError as exc:
            if _is_schema_error(exc):
                raise SourceUnavailableError(_summarize(exc), sql=sql) from exc
            raise ConnectionFailureError(_summarize(exc), sql=sql) from exc
        except DBAPIError as exc:
            if _is_schema_error(exc):
                raise SourceUnavailableError(_summarize(exc), sql=sql) from exc
            raise ConnectionFailureError(_summarize(exc), sql=sql) from exc
        except SQLAlchemyError as exc:
            raise SourceUnavailableError(_summarize(exc), sql=sql) from exc

        elapsed = time.monotonic() - started
        if elapsed > timeout_seconds:
            # The driver finished anyway; treat it like a timed-out attempt
            raise ConnectionFailureError(
                f"Query exceeded {timeout_seconds:.0f}s timeout ({elapsed:.1f}s)", sql=sql
            )
        logger.debug("Query returned %d row(s) in %.2fs", len(rows), elapsed)
        return rows


def _summarize(exc: SQLAlchemyError) -> str:
    """First line of the driver message, without the echoed SQL."""
    orig = getattr(exc, "orig", None)
    message = str(orig) if orig is not None else str(exc)
    return message.strip().splitlines()[0][:300] if message.strip() else type(exc).__name__

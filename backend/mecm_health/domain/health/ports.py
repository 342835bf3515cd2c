"""Ports (abstract interfaces) for the health snapshot domain.

These define WHAT the domain needs from the outside world without
specifying HOW it's provided.  Concrete implementations live in infra/.

Note: No infrastructure types (Engine, Connection, Path) appear here.
"""

from __future__ import annotations

import abc
from collections.abc import Mapping
from typing import Any


class QueryExecutor(abc.ABC):
    """Submit one query string to the management database.

    Implementations raise ``SourceUnavailableError`` when the query
    references something this schema does not have, and
    ``ConnectionFailureError`` when the server cannot be reached or the
    attempt exceeds ``timeout_seconds``.
    """

    @abc.abstractmethod
    def execute(self, sql: str, timeout_seconds: float) -> list[Mapping[str, Any]]:
        ...


class SnapshotStore(abc.ABC):
    """Persist the serialized snapshot document."""

    @abc.abstractmethod
    def save(self, document: Mapping[str, Any]) -> str:
        """Write *document* atomically; return the final location."""
        ...

    @abc.abstractmethod
    def copy_sample(self, sample_location: str) -> str:
        """Publish a canned snapshot instead of a collected one."""
        ...

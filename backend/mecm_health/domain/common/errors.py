"""Domain-level error hierarchy.

All domain exceptions inherit from DomainError so that the CLI can catch
a single base class and translate it into an exit code without leaking
driver internals.  Query failures are split into the two kinds the
fallback chain cares about: the view is not there, or the server is not
reachable.
"""


class DomainError(Exception):
    """Base class for all domain errors."""


class ConfigurationError(DomainError):
    """Required run configuration is missing or contradictory."""


class SourceError(DomainError):
    """A single query attempt against the management database failed."""

    def __init__(self, message: str, *, sql: str | None = None) -> None:
        self.sql = sql
        super().__init__(message)


class SourceUnavailableError(SourceError):
    """The queried view/column does not exist for this schema version."""


class ConnectionFailureError(SourceError):
    """The data source could not be reached, authenticated, or timed out."""


class SnapshotWriteError(DomainError):
    """The snapshot document could not be persisted."""

    def __init__(self, path: object, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write snapshot to {path}: {reason}")

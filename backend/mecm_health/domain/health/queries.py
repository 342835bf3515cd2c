"""Query descriptors and the tagged outcome of running one.

A SourceQueryDescriptor is an ordered fallback chain for a single
logical fact ("client counts", "failed packages", ...).  The variants
are tried in order and the first one that executes wins.  The chain is
never empty and always ends in a variant that does not depend on an
optional view, so degradation always terminates.

No SQL is executed here; the catalog of concrete T-SQL lives in infra.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .models import OutcomeStatus


Row = Mapping[str, Any]


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QueryVariant:
    """One candidate query for a fact.

    ``optional`` marks variants that read non-standard views (hardware
    inventory extensions, client health views, Edge management views)
    which may be absent on a given site.

    ``placeholder`` marks a view-free stand-in that only proves the
    chain terminates.  When it is the variant that executes, the fact
    counts as skipped.
    """

    name: str
    sql: str
    optional: bool = False
    placeholder: bool = False


@dataclass(frozen=True)
class SourceQueryDescriptor:
    """Ordered fallback chain for a single logical fact."""

    key: str
    domain: str
    description: str
    variants: tuple[QueryVariant, ...]

    def __post_init__(self) -> None:
        if not self.variants:
            raise ValueError(f"Descriptor {self.key!r} has no query variants")
        if self.variants[-1].optional:
            raise ValueError(
                f"Descriptor {self.key!r}: final variant "
                f"{self.variants[-1].name!r} must not depend on an optional view"
            )
        if any(v.placeholder for v in self.variants[:-1]):
            raise ValueError(
                f"Descriptor {self.key!r}: only the final variant may be a placeholder"
            )
        names = [v.name for v in self.variants]
        if len(set(names)) != len(names):
            raise ValueError(f"Descriptor {self.key!r} has duplicate variant names")


def descriptor(
    key: str,
    domain: str,
    description: str,
    *variants: QueryVariant,
) -> SourceQueryDescriptor:
    """Shorthand constructor used by query catalogs."""
    return SourceQueryDescriptor(
        key=key, domain=domain, description=description, variants=tuple(variants)
    )


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QueryOutcome:
    """Tagged result of evaluating a descriptor.

    ``status`` is OK when some variant executed (zero rows included),
    UNAVAILABLE when every variant raised or only a placeholder ran.
    ``errors`` lists the failed attempts in order as ``"variant: message"`` strings.
    """

    key: str
    status: OutcomeStatus
    variant: str | None = None
    rows: tuple[Row, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def is_ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    def first_row(self) -> Row:
        """Return the first row, or an empty mapping when there is none."""
        return self.rows[0] if self.rows else {}

    @classmethod
    def ok(cls, key: str, variant: str, rows: Sequence[Row], errors: Sequence[str] = ()) -> QueryOutcome:
        return cls(
            key=key,
            status=OutcomeStatus.OK,
            variant=variant,
            rows=tuple(_lower_keys(r) for r in rows),
            errors=tuple(errors),
        )

    @classmethod
    def unavailable(cls, key: str, errors: Sequence[str] = ()) -> QueryOutcome:
        return cls(key=key, status=OutcomeStatus.UNAVAILABLE, errors=tuple(errors))


def _lower_keys(row: Row) -> dict[str, Any]:
    """Column names differ in case between views; normalise to lower case."""
    return {str(k).lower(): v for k, v in row.items()}


# ---------------------------------------------------------------------------
# Descriptor keys shared by query catalogs and normalizers
# ---------------------------------------------------------------------------

CLIENT_SUMMARY = "client_summary"
CLIENT_ACTIVITY = "client_activity"
CLIENT_REMEDIATION = "client_remediation"
CLIENT_OS = "client_os"
CLIENT_ISSUES = "client_issues"

DP_STATUS = "dp_status"
PACKAGE_SUMMARY = "package_summary"
CONTENT_TYPES = "content_types"
DISTRIBUTION_STATUS = "distribution_status"
DP_GROUPS = "dp_groups"
FAILED_PACKAGES = "failed_packages"

COMPLIANCE_SUMMARY = "compliance_summary"
SCAN_STATUS = "scan_status"
MISSING_BY_SEVERITY = "missing_by_severity"
TOP_MISSING_UPDATES = "top_missing_updates"
COMPLIANCE_BY_COLLECTION = "compliance_by_collection"

DEPLOYMENT_SUMMARY = "deployment_summary"
PENDING_RESTARTS = "pending_restarts"
ERROR_CODES = "error_codes"

EDGE_VERSIONS = "edge_versions"
BROWSER_DEVICES = "browser_devices"
BROWSER_USAGE = "browser_usage"
DEFAULT_BROWSER = "default_browser"

SITE_INFO = "site_info"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "Row",
    "QueryVariant",
    "SourceQueryDescriptor",
    "descriptor",
    "QueryOutcome",
]

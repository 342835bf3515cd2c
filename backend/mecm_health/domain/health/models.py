"""Domain models for the health snapshot bounded context.

Pure value objects and enums that represent one collection run's
normalized records, independently of any infrastructure (ORM, JSON,
files).  All dataclasses use frozen=True for immutability; collections
are tuples so a record can never be mutated after normalization.

Every numeric field has a zero default, so ``ClientHealth()`` is the
fully-defaulted record a degraded domain falls back to.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..common.types import Count, Percent, Score


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    """Severity of a finding or a client issue."""

    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskLevel(str, Enum):
    """Discrete risk tier derived from the overall health score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RagStatus(str, Enum):
    """Red/Amber/Green presentation status."""

    GREEN = "green"
    AMBER = "amber"
    RED = "red"


class DomainKey(str, Enum):
    """The five reporting domains, as used in the domain scores."""

    CLIENTS = "clients"
    CONTENT = "content"
    COMPLIANCE = "compliance"
    DEPLOYMENTS = "deployments"
    EDGE = "edge"


class FindingDomain(str, Enum):
    """Domain label carried by a finding."""

    CLIENTS = "clients"
    UPDATES = "updates"
    CONTENT = "content"
    DEPLOYMENTS = "deployments"


class OutcomeStatus(str, Enum):
    """Tag of a QueryOutcome."""

    OK = "ok"
    UNAVAILABLE = "unavailable"


class CollectionStatus(str, Enum):
    """How much of a domain was actually measured."""

    OK = "ok"  # every descriptor answered
    PARTIAL = "partial"  # some descriptors fell through to unavailable
    DEGRADED = "degraded"  # nothing answered, record is all defaults


# ---------------------------------------------------------------------------
# Shared value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrendPoint:
    """One day of a percent trend series."""

    date: str  # YYYY-MM-DD
    percent: Percent


@dataclass(frozen=True)
class CountTrendPoint:
    """One day of the content distribution count series."""

    date: str
    success: Count
    failed: Count
    in_progress: Count


@dataclass(frozen=True)
class Finding:
    """An actionable alert produced by a threshold rule."""

    finding: str
    severity: Severity
    domain: FindingDomain


@dataclass(frozen=True)
class LabelCount:
    """A bucket label and how many items fell into it."""

    label: str
    count: Count


@dataclass(frozen=True)
class BrowserBreakdown:
    """Per-browser values (percent shares or device counts)."""

    edge: float = 0.0
    chrome: float = 0.0
    firefox: float = 0.0
    other: float = 0.0


# ---------------------------------------------------------------------------
# Client health
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ActivityBreakdown:
    last_24h: Count = Count(0)
    last_48h: Count = Count(0)
    last_7d: Count = Count(0)
    last_30d: Count = Count(0)
    over_30d: Count = Count(0)


@dataclass(frozen=True)
class ClientIssue:
    issue: str
    severity: Severity
    count: Count


@dataclass(frozen=True)
class ClientHealth:
    total_devices: Count = Count(0)
    healthy_clients: Count = Count(0)
    unhealthy_clients: Count = Count(0)
    active_clients: Count = Count(0)
    inactive_clients: Count = Count(0)
    client_health_percent: Percent = Percent(100.0)
    remediation_success: Count = Count(0)
    remediation_total: Count = Count(0)
    activity_breakdown: ActivityBreakdown = ActivityBreakdown()
    os_build_distribution: tuple[LabelCount, ...] = ()
    top_issues: tuple[ClientIssue, ...] = ()
    health_trend: tuple[TrendPoint, ...] = ()


# ---------------------------------------------------------------------------
# Content distribution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DPGroup:
    name: str
    members: Count
    packages: Count
    compliance: Percent


@dataclass(frozen=True)
class FailedPackage:
    package_id: str
    name: str
    type: str
    failed_dps: Count
    error: str


@dataclass(frozen=True)
class ContentDistribution:
    total_dps: Count = Count(0)
    healthy_dps: Count = Count(0)
    warning_dps: Count = Count(0)
    error_dps: Count = Count(0)
    dp_health_percent: Percent = Percent(100.0)
    total_packages: Count = Count(0)
    total_content_size_gb: float = 0.0
    distributed_success: Count = Count(0)
    distributed_failed: Count = Count(0)
    distributed_in_progress: Count = Count(0)
    content_type_breakdown: tuple[LabelCount, ...] = ()
    distribution_trend: tuple[CountTrendPoint, ...] = ()
    dp_groups: tuple[DPGroup, ...] = ()
    failed_packages: tuple[FailedPackage, ...] = ()


# ---------------------------------------------------------------------------
# Software update compliance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScanDistribution:
    last_24h: Count = Count(0)
    last_7d: Count = Count(0)
    over_7d: Count = Count(0)
    never: Count = Count(0)


@dataclass(frozen=True)
class MissingBySeverity:
    critical: Count = Count(0)
    important: Count = Count(0)
    moderate: Count = Count(0)
    low: Count = Count(0)
    unrated: Count = Count(0)


@dataclass(frozen=True)
class MissingUpdate:
    title: str
    severity: str
    missing: Count
    released: str  # YYYY-MM-DD or ""


@dataclass(frozen=True)
class CollectionCompliance:
    collection: str
    compliant: Count
    total: Count
    percent: Percent


@dataclass(frozen=True)
class SoftwareUpdateCompliance:
    total_managed_devices: Count = Count(0)
    compliant_devices: Count = Count(0)
    non_compliant_devices: Count = Count(0)
    compliance_percent: Percent = Percent(100.0)
    scan_coverage: Percent = Percent(100.0)
    last_scan_distribution: ScanDistribution = ScanDistribution()
    missing_updates_by_severity: MissingBySeverity = MissingBySeverity()
    top_missing_updates: tuple[MissingUpdate, ...] = ()
    compliance_by_collection: tuple[CollectionCompliance, ...] = ()
    compliance_trend: tuple[TrendPoint, ...] = ()


# ---------------------------------------------------------------------------
# Software update deployment
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Deployment:
    name: str
    collection: str
    deadline: str  # YYYY-MM-DD HH:MM or ""
    status: str  # active | warning
    total: Count
    installed: Count
    downloading: Count
    waiting: Count
    pending_restart: Count
    failed: Count


@dataclass(frozen=True)
class ErrorCodeCount:
    code: str
    description: str
    count: Count


@dataclass(frozen=True)
class SoftwareUpdateDeployment:
    active_deployments: Count = Count(0)
    deployment_success_rate: Percent = Percent(100.0)
    total_targeted: Count = Count(0)
    total_installed: Count = Count(0)
    total_failed: Count = Count(0)
    pending_restarts: Count = Count(0)
    deployments: tuple[Deployment, ...] = ()
    error_code_breakdown: tuple[ErrorCodeCount, ...] = ()


# ---------------------------------------------------------------------------
# Edge management
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EdgeVersion:
    version: str
    count: Count
    status: str  # current | recent | outdated | vulnerable


@dataclass(frozen=True)
class EdgeManagement:
    total_devices_with_browser: Count = Count(0)
    total_edge_installed: Count = Count(0)
    edge_penetration: Percent = Percent(100.0)
    latest_edge_version: str = ""
    vulnerable_edge_clients: Count = Count(0)
    vulnerable_percent: Percent = Percent(0.0)
    edge_version_distribution: tuple[EdgeVersion, ...] = ()
    browser_usage_last_30d: BrowserBreakdown = BrowserBreakdown()
    default_browser_stats: BrowserBreakdown = BrowserBreakdown()


# ---------------------------------------------------------------------------
# Environment, overview, snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Environment:
    site_code: str = ""
    site_name: str = ""
    site_version: str = ""
    sql_server: str = ""
    database: str = ""
    collector_version: str = ""


@dataclass(frozen=True)
class DomainScore:
    domain: DomainKey
    score: Percent
    rag: RagStatus


@dataclass(frozen=True)
class SecurityOverview:
    overall_health_score: Score
    risk_level: RiskLevel
    domain_scores: tuple[DomainScore, ...]
    critical_findings: tuple[Finding, ...]


@dataclass(frozen=True)
class HealthSnapshot:
    """Top-level aggregate of one collection run."""

    last_refresh: datetime
    environment: Environment
    client_health: ClientHealth
    content_distribution: ContentDistribution
    software_update_compliance: SoftwareUpdateCompliance
    software_update_deployment: SoftwareUpdateDeployment
    edge_management: EdgeManagement
    security_overview: SecurityOverview
    schema_version: str = "1.0"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "Severity",
    "RiskLevel",
    "RagStatus",
    "DomainKey",
    "FindingDomain",
    "OutcomeStatus",
    "CollectionStatus",
    "TrendPoint",
    "CountTrendPoint",
    "Finding",
    "LabelCount",
    "BrowserBreakdown",
    "ActivityBreakdown",
    "ClientIssue",
    "ClientHealth",
    "DPGroup",
    "FailedPackage",
    "ContentDistribution",
    "ScanDistribution",
    "MissingBySeverity",
    "MissingUpdate",
    "CollectionCompliance",
    "SoftwareUpdateCompliance",
    "Deployment",
    "ErrorCodeCount",
    "SoftwareUpdateDeployment",
    "EdgeVersion",
    "EdgeManagement",
    "Environment",
    "DomainScore",
    "SecurityOverview",
    "HealthSnapshot",
]

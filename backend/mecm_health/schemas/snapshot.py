"""
Snapshot document schema — the JSON the dashboard fetches.

Field names are camelCase on the wire; the dashboard binds to them by
key, so the aliases here are the document contract.  Models validate
straight from the frozen domain dataclasses (``from_attributes``).
"""
from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from ..domain.health.models import (
    DomainKey,
    FindingDomain,
    HealthSnapshot,
    RagStatus,
    RiskLevel,
    Severity,
)


class _DocumentModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Shared items
# ---------------------------------------------------------------------------


class TrendPointSchema(_DocumentModel):
    date: str
    percent: float


class CountTrendPointSchema(_DocumentModel):
    date: str
    success: int
    failed: int
    in_progress: int


class OsCountSchema(_DocumentModel):
    label: str = Field(..., alias="os")
    count: int


class TypeCountSchema(_DocumentModel):
    label: str = Field(..., alias="type")
    count: int


class BrowserShareSchema(_DocumentModel):
    """Percent share per browser family."""
    edge: float = 0.0
    chrome: float = 0.0
    firefox: float = 0.0
    other: float = 0.0


class BrowserCountSchema(_DocumentModel):
    """Device count per browser family."""
    edge: int = 0
    chrome: int = 0
    firefox: int = 0
    other: int = 0


# ---------------------------------------------------------------------------
# Client health
# ---------------------------------------------------------------------------


class ActivityBreakdownSchema(_DocumentModel):
    last_24h: int = Field(0, alias="last24h")
    last_48h: int = Field(0, alias="last48h")
    last_7d: int = Field(0, alias="last7d")
    last_30d: int = Field(0, alias="last30d")
    over_30d: int = Field(0, alias="over30d")


class ClientIssueSchema(_DocumentModel):
    issue: str
    severity: Severity
    count: int


class ClientHealthSchema(_DocumentModel):
    total_devices: int
    healthy_clients: int
    unhealthy_clients: int
    active_clients: int
    inactive_clients: int
    client_health_percent: float = Field(..., description="healthy / total * 100")
    remediation_success: int
    remediation_total: int
    activity_breakdown: ActivityBreakdownSchema
    os_build_distribution: List[OsCountSchema]
    top_issues: List[ClientIssueSchema]
    health_trend: List[TrendPointSchema]


# ---------------------------------------------------------------------------
# Content distribution
# ---------------------------------------------------------------------------


class DPGroupSchema(_DocumentModel):
    name: str
    members: int
    packages: int
    compliance: float


class FailedPackageSchema(_DocumentModel):
    package_id: str = Field(..., alias="packageId")
    name: str
    type: str
    failed_dps: int = Field(..., alias="failedDPs")
    error: str


class ContentDistributionSchema(_DocumentModel):
    total_dps: int = Field(..., alias="totalDPs")
    healthy_dps: int = Field(..., alias="healthyDPs")
    warning_dps: int = Field(..., alias="warningDPs")
    error_dps: int = Field(..., alias="errorDPs")
    dp_health_percent: float = Field(..., alias="dpHealthPercent")
    total_packages: int
    total_content_size_gb: float = Field(..., alias="totalContentSizeGB")
    distributed_success: int
    distributed_failed: int
    distributed_in_progress: int
    content_type_breakdown: List[TypeCountSchema]
    distribution_trend: List[CountTrendPointSchema]
    dp_groups: List[DPGroupSchema] = Field(..., alias="dpGroups")
    failed_packages: List[FailedPackageSchema]


# ---------------------------------------------------------------------------
# Software update compliance
# ---------------------------------------------------------------------------


class ScanDistributionSchema(_DocumentModel):
    last_24h: int = Field(0, alias="last24h")
    last_7d: int = Field(0, alias="last7d")
    over_7d: int = Field(0, alias="over7d")
    never: int = 0


class MissingBySeveritySchema(_DocumentModel):
    critical: int = 0
    important: int = 0
    moderate: int = 0
    low: int = 0
    unrated: int = 0


class MissingUpdateSchema(_DocumentModel):
    title: str
    severity: str
    missing: int
    released: str


class CollectionComplianceSchema(_DocumentModel):
    collection: str
    compliant: int
    total: int
    percent: float


class SoftwareUpdateComplianceSchema(_DocumentModel):
    total_managed_devices: int
    compliant_devices: int
    non_compliant_devices: int
    compliance_percent: float
    scan_coverage: float = Field(..., description="Share of devices scanned within 7 days")
    last_scan_distribution: ScanDistributionSchema
    missing_updates_by_severity: MissingBySeveritySchema
    top_missing_updates: List[MissingUpdateSchema]
    compliance_by_collection: List[CollectionComplianceSchema]
    compliance_trend: List[TrendPointSchema]


# ---------------------------------------------------------------------------
# Software update deployment
# ---------------------------------------------------------------------------


class DeploymentSchema(_DocumentModel):
    name: str
    collection: str
    deadline: str
    status: str = Field(..., description="active | warning (past deadline, incomplete)")
    total: int
    installed: int
    downloading: int
    waiting: int
    pending_restart: int
    failed: int


class ErrorCodeSchema(_DocumentModel):
    code: str
    description: str
    count: int


class SoftwareUpdateDeploymentSchema(_DocumentModel):
    active_deployments: int
    deployment_success_rate: float
    total_targeted: int
    total_installed: int
    total_failed: int
    pending_restarts: int
    deployments: List[DeploymentSchema]
    error_code_breakdown: List[ErrorCodeSchema]


# ---------------------------------------------------------------------------
# Edge management
# ---------------------------------------------------------------------------


class EdgeVersionSchema(_DocumentModel):
    version: str
    count: int
    status: str = Field(..., description="current | recent | outdated | vulnerable")


class EdgeManagementSchema(_DocumentModel):
    total_devices_with_browser: int
    total_edge_installed: int
    edge_penetration: float
    latest_edge_version: str
    vulnerable_edge_clients: int
    vulnerable_percent: float
    edge_version_distribution: List[EdgeVersionSchema]
    browser_usage_last_30d: BrowserShareSchema = Field(..., alias="browserUsageLast30d")
    default_browser_stats: BrowserCountSchema


# ---------------------------------------------------------------------------
# Environment & overview
# ---------------------------------------------------------------------------


class EnvironmentSchema(_DocumentModel):
    site_code: str = ""
    site_name: str = ""
    site_version: str = ""
    sql_server: str = ""
    database: str = ""
    collector_version: str = ""


class DomainScoreSchema(_DocumentModel):
    domain: DomainKey
    score: float
    rag: RagStatus


class FindingSchema(_DocumentModel):
    finding: str
    severity: Severity
    domain: FindingDomain


class SecurityOverviewSchema(_DocumentModel):
    overall_health_score: int = Field(..., ge=0, le=100)
    risk_level: RiskLevel
    domain_scores: List[DomainScoreSchema]
    critical_findings: List[FindingSchema]


class HealthSnapshotDocument(_DocumentModel):
    """Top-level snapshot document."""
    schema_version: str = Field("1.0", alias="schemaVersion")
    last_refresh: datetime = Field(..., alias="lastRefresh", description="UTC collection time")
    environment: EnvironmentSchema
    client_health: ClientHealthSchema
    content_distribution: ContentDistributionSchema
    software_update_compliance: SoftwareUpdateComplianceSchema
    software_update_deployment: SoftwareUpdateDeploymentSchema
    edge_management: EdgeManagementSchema
    security_overview: SecurityOverviewSchema

    @field_serializer("last_refresh")
    def serialize_last_refresh(self, value: datetime) -> str:
        """ISO-8601 UTC with a ``Z`` suffix."""
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.strftime("%Y-%m-%dT%H:%M:%SZ")

    @classmethod
    def from_snapshot(cls, snapshot: HealthSnapshot) -> "HealthSnapshotDocument":
        return cls.model_validate(snapshot, from_attributes=True)

    def to_document(self) -> Dict[str, Any]:
        """JSON-ready dict with wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)


def snapshot_document(snapshot: HealthSnapshot) -> Dict[str, Any]:
    """Serialize a HealthSnapshot into the wire document."""
    return HealthSnapshotDocument.from_snapshot(snapshot).to_document()

"""Normalization of adapter outcomes into canonical domain records.

All functions are pure: no I/O, no side effects.  Every normalizer
accepts the outcomes of its domain's descriptors (keyed by descriptor
key) and tolerates any of them being UNAVAILABLE or missing, in which
case the affected fields keep their defaults.

Coercion rules:
  - counts: None / blank / unparseable / negative -> 0
  - labels: None -> ""
  - health percentages: ``numerator / denominator * 100``, clamped to
    [0, 100], rounded half-up to one decimal; a zero denominator is
    defined as 100 ("nothing to fail")
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from ..common.types import Count, Percent
from . import queries as q
from .models import (
    ActivityBreakdown,
    BrowserBreakdown,
    ClientHealth,
    ClientIssue,
    CollectionCompliance,
    ContentDistribution,
    Deployment,
    DPGroup,
    EdgeManagement,
    EdgeVersion,
    Environment,
    ErrorCodeCount,
    FailedPackage,
    LabelCount,
    MissingBySeverity,
    MissingUpdate,
    ScanDistribution,
    Severity,
    SoftwareUpdateCompliance,
    SoftwareUpdateDeployment,
)
from .queries import QueryOutcome, Row

Outcomes = Mapping[str, QueryOutcome]

TOP_N = 10


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------


def to_float(value: Any) -> float:
    """Coerce a DB value to float; anything unusable becomes 0.0."""
    if value is None or isinstance(value, bool):
        return float(value or 0)
    if isinstance(value, (int, float, Decimal)):
        result = float(value)
    else:
        try:
            result = float(str(value).strip())
        except ValueError:
            return 0.0
    if result != result or result in (float("inf"), float("-inf")):  # NaN / Inf
        return 0.0
    return result


def to_count(value: Any) -> Count:
    """Coerce a DB value to a non-negative integer count."""
    return Count(max(0, int(to_float(value))))


def to_label(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like a spreadsheet does (2.25 -> 2.3), not banker's rounding."""
    try:
        quantum = Decimal(1).scaleb(-digits)
        return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return 0.0


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def percent(numerator: Any, denominator: Any) -> Percent:
    """Health ratio as a percentage; a zero denominator counts as 100."""
    den = to_float(denominator)
    if den == 0:
        return Percent(100.0)
    return Percent(round_half_up(clamp(to_float(numerator) / den * 100.0)))


def share(part: Any, whole: Any) -> Percent:
    """Distribution share (e.g. browser usage); a zero whole yields 0."""
    den = to_float(whole)
    if den == 0:
        return Percent(0.0)
    return Percent(round_half_up(clamp(to_float(part) / den * 100.0)))


def to_date_label(value: Any) -> str:
    """Render a DB date/datetime (or ISO string) as YYYY-MM-DD."""
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    text = to_label(value)
    return text[:10]


def to_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = to_label(value)
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "")).replace(tzinfo=None)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Categorical bucketing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BucketRule:
    """Maps free text matching ``pattern`` (case-insensitive) to ``label``."""

    pattern: re.Pattern[str]
    label: str


def rule(pattern: str, label: str) -> BucketRule:
    return BucketRule(re.compile(pattern, re.IGNORECASE), label)


def bucket(text: Any, rules: Sequence[BucketRule], default: str) -> str:
    """Return the label of the first matching rule, else *default*."""
    value = to_label(text)
    for r in rules:
        if r.pattern.search(value):
            return r.label
    return default


OS_RULES: tuple[BucketRule, ...] = (
    rule(r"windows 11", "Windows 11"),
    rule(r"windows 10", "Windows 10"),
    rule(r"workstation 10\.0", "Windows 10/11"),
    rule(r"server 2022", "Server 2022"),
    rule(r"server 2019", "Server 2019"),
    rule(r"server 2016", "Server 2016"),
    rule(r"server", "Windows Server"),
)
OS_OTHER = "Other"

BROWSER_RULES: tuple[BucketRule, ...] = (
    rule(r"edge", "edge"),
    rule(r"chrome", "chrome"),
    rule(r"firefox", "firefox"),
)
BROWSER_OTHER = "other"

PACKAGE_TYPES: dict[int, str] = {
    0: "Package",
    3: "Driver Package",
    4: "Task Sequence",
    5: "Software Update Package",
    8: "Application",
    257: "OS Image",
    258: "Boot Image",
    259: "OS Upgrade Package",
}
PACKAGE_OTHER = "Other"

# Severity codes as stored in the update catalog
UPDATE_SEVERITIES: dict[int, str] = {
    10: "critical",
    8: "important",
    6: "moderate",
    2: "low",
}
UPDATE_UNRATED = "unrated"

ERROR_DESCRIPTIONS: dict[str, str] = {
    "0x80240022": "Operation failed for all updates",
    "0x8024200D": "Update needs to be downloaded again",
    "0x80070005": "Access denied",
    "0x80070070": "Not enough disk space",
    "0x80070643": "Fatal error during installation",
    "0x800F0922": "Servicing stack or reserved partition failure",
    "0x8024402C": "Proxy or DNS resolution failure",
    "0x80072EE2": "Connection to update source timed out",
    "0x800705B4": "Operation timed out",
    "0x87D00324": "Application not detected after installation",
    "0x87D00664": "Updates handler job was cancelled",
    "0x87D00692": "Group policy conflict",
}
UNKNOWN_ERROR = "Unknown error"


def package_type_label(code: Any) -> str:
    text = to_label(code)
    if text.lstrip("-").isdigit():
        return PACKAGE_TYPES.get(int(text), PACKAGE_OTHER)
    return text or PACKAGE_OTHER


def update_severity_label(value: Any) -> str:
    """Map a catalog severity (numeric code or text) to a bucket key."""
    text = to_label(value).lower()
    if text.lstrip("-").isdigit():
        return UPDATE_SEVERITIES.get(int(text), UPDATE_UNRATED)
    if text in UPDATE_SEVERITIES.values():
        return text
    return UPDATE_UNRATED


def format_error_code(value: Any) -> str:
    """Render an error code as 0xXXXXXXXX; signed ints wrap to 32 bits."""
    text = to_label(value)
    if text.lower().startswith("0x"):
        try:
            return f"0x{int(text, 16) & 0xFFFFFFFF:08X}"
        except ValueError:
            return text
    try:
        return f"0x{int(to_float(text)) & 0xFFFFFFFF:08X}"
    except (OverflowError, ValueError):
        return text


def parse_severity(value: Any) -> Severity:
    text = to_label(value).lower()
    for sev in Severity:
        if sev.value == text:
            return sev
    return Severity.MEDIUM


def group_counts(
    rows: Iterable[Row],
    label_of: Callable[[Row], str],
    count_column: str = "count",
) -> tuple[LabelCount, ...]:
    """Sum counts per label; ordered by count desc then label."""
    totals: dict[str, int] = {}
    for row in rows:
        label = label_of(row)
        totals[label] = totals.get(label, 0) + to_count(row.get(count_column))
    ordered = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    return tuple(LabelCount(label=k, count=Count(v)) for k, v in ordered if v > 0)


# ---------------------------------------------------------------------------
# Outcome helpers
# ---------------------------------------------------------------------------


def _rows(outcomes: Outcomes, key: str) -> tuple[Row, ...]:
    outcome = outcomes.get(key)
    if outcome is None or not outcome.is_ok:
        return ()
    return outcome.rows


def _first(outcomes: Outcomes, key: str) -> Row:
    rows = _rows(outcomes, key)
    return rows[0] if rows else {}


def _ok(outcomes: Outcomes, key: str) -> bool:
    outcome = outcomes.get(key)
    return outcome is not None and outcome.is_ok


# ---------------------------------------------------------------------------
# Client health
# ---------------------------------------------------------------------------


def normalize_client_health(outcomes: Outcomes) -> ClientHealth:
    summary = _first(outcomes, q.CLIENT_SUMMARY)
    total = to_count(summary.get("total"))
    healthy = min(to_count(summary.get("healthy")), total)
    active = min(to_count(summary.get("active")), total)
    inactive = to_count(summary.get("inactive"))

    activity = _first(outcomes, q.CLIENT_ACTIVITY)
    remediation = _first(outcomes, q.CLIENT_REMEDIATION)
    rem_total = to_count(remediation.get("total"))

    issues = [
        ClientIssue(
            issue=to_label(r.get("issue")) or "Unspecified issue",
            severity=parse_severity(r.get("severity")),
            count=to_count(r.get("count")),
        )
        for r in _rows(outcomes, q.CLIENT_ISSUES)
    ]
    issues = sorted((i for i in issues if i.count > 0), key=lambda i: -i.count)

    return ClientHealth(
        total_devices=total,
        healthy_clients=healthy,
        unhealthy_clients=Count(total - healthy),
        active_clients=active,
        inactive_clients=inactive,
        client_health_percent=percent(healthy, total),
        remediation_success=min(to_count(remediation.get("success")), rem_total),
        remediation_total=rem_total,
        activity_breakdown=ActivityBreakdown(
            last_24h=to_count(activity.get("last_24h")),
            last_48h=to_count(activity.get("last_48h")),
            last_7d=to_count(activity.get("last_7d")),
            last_30d=to_count(activity.get("last_30d")),
            over_30d=to_count(activity.get("over_30d")),
        ),
        os_build_distribution=group_counts(
            _rows(outcomes, q.CLIENT_OS),
            lambda r: bucket(r.get("caption"), OS_RULES, OS_OTHER),
        ),
        top_issues=tuple(issues[:TOP_N]),
    )


# ---------------------------------------------------------------------------
# Content distribution
# ---------------------------------------------------------------------------


def _dp_state(row: Row) -> str:
    if to_count(row.get("failed")) > 0:
        return "error"
    if to_count(row.get("in_progress")) > 0:
        return "warning"
    return "healthy"


def normalize_content_distribution(outcomes: Outcomes) -> ContentDistribution:
    dps = _rows(outcomes, q.DP_STATUS)
    states = [_dp_state(r) for r in dps]
    total_dps = Count(len(states))
    healthy_dps = Count(states.count("healthy"))

    packages = _first(outcomes, q.PACKAGE_SUMMARY)
    size_kb = to_float(packages.get("total_size_kb"))
    status = _first(outcomes, q.DISTRIBUTION_STATUS)

    groups = tuple(
        DPGroup(
            name=to_label(r.get("name")),
            members=to_count(r.get("members")),
            packages=to_count(r.get("packages")),
            compliance=percent(r.get("installed"), r.get("targeted")),
        )
        for r in _rows(outcomes, q.DP_GROUPS)
    )

    failed = tuple(
        FailedPackage(
            package_id=to_label(r.get("package_id")),
            name=to_label(r.get("name")),
            type=package_type_label(r.get("package_type")),
            failed_dps=to_count(r.get("failed_dps")),
            error=to_label(r.get("error")) or "Distribution failed",
        )
        for r in _rows(outcomes, q.FAILED_PACKAGES)
    )

    return ContentDistribution(
        total_dps=total_dps,
        healthy_dps=healthy_dps,
        warning_dps=Count(states.count("warning")),
        error_dps=Count(states.count("error")),
        dp_health_percent=percent(healthy_dps, total_dps),
        total_packages=to_count(packages.get("total_packages")),
        total_content_size_gb=round_half_up(size_kb / 1024.0 / 1024.0),
        distributed_success=to_count(status.get("success")),
        distributed_failed=to_count(status.get("failed")),
        distributed_in_progress=to_count(status.get("in_progress")),
        content_type_breakdown=group_counts(
            _rows(outcomes, q.CONTENT_TYPES),
            lambda r: package_type_label(r.get("package_type")),
        ),
        dp_groups=groups,
        failed_packages=tuple(sorted(failed, key=lambda f: -f.failed_dps)[:TOP_N]),
    )


# ---------------------------------------------------------------------------
# Software update compliance
# ---------------------------------------------------------------------------


def normalize_update_compliance(outcomes: Outcomes) -> SoftwareUpdateCompliance:
    summary = _first(outcomes, q.COMPLIANCE_SUMMARY)
    total = to_count(summary.get("total"))
    compliant = min(to_count(summary.get("compliant")), total)

    scan = _first(outcomes, q.SCAN_STATUS)
    scans = ScanDistribution(
        last_24h=to_count(scan.get("last_24h")),
        last_7d=to_count(scan.get("last_7d")),
        over_7d=to_count(scan.get("over_7d")),
        never=to_count(scan.get("never")),
    )
    scanned_recently = scans.last_24h + scans.last_7d
    scan_population = scanned_recently + scans.over_7d + scans.never

    severities = {key: 0 for key in ("critical", "important", "moderate", "low", UPDATE_UNRATED)}
    for r in _rows(outcomes, q.MISSING_BY_SEVERITY):
        severities[update_severity_label(r.get("severity"))] += to_count(r.get("missing"))

    top_missing = tuple(
        MissingUpdate(
            title=to_label(r.get("title")),
            severity=update_severity_label(r.get("severity")).capitalize(),
            missing=to_count(r.get("missing")),
            released=to_date_label(r.get("released")),
        )
        for r in _rows(outcomes, q.TOP_MISSING_UPDATES)
    )

    by_collection = []
    for r in _rows(outcomes, q.COMPLIANCE_BY_COLLECTION):
        coll_total = to_count(r.get("total"))
        coll_compliant = min(to_count(r.get("compliant")), coll_total)
        by_collection.append(
            CollectionCompliance(
                collection=to_label(r.get("collection")),
                compliant=coll_compliant,
                total=coll_total,
                percent=percent(coll_compliant, coll_total),
            )
        )

    return SoftwareUpdateCompliance(
        total_managed_devices=total,
        compliant_devices=compliant,
        non_compliant_devices=Count(total - compliant),
        compliance_percent=percent(compliant, total),
        scan_coverage=percent(scanned_recently, scan_population),
        last_scan_distribution=scans,
        missing_updates_by_severity=MissingBySeverity(
            **{k: Count(v) for k, v in severities.items()}
        ),
        top_missing_updates=tuple(
            sorted(top_missing, key=lambda u: -u.missing)[:TOP_N]
        ),
        compliance_by_collection=tuple(by_collection),
    )


# ---------------------------------------------------------------------------
# Software update deployment
# ---------------------------------------------------------------------------


def _deployment(row: Row, as_of: datetime) -> Deployment:
    deadline = to_datetime(row.get("deadline"))
    total = to_count(row.get("targeted"))
    installed = min(to_count(row.get("installed")), total)
    past_due = deadline is not None and deadline < as_of and installed < total
    return Deployment(
        name=to_label(row.get("name")),
        collection=to_label(row.get("collection")),
        deadline=deadline.strftime("%Y-%m-%d %H:%M") if deadline else "",
        status="warning" if past_due else "active",
        total=total,
        installed=installed,
        downloading=to_count(row.get("downloading")),
        waiting=to_count(row.get("waiting")),
        pending_restart=to_count(row.get("pending_restart")),
        failed=to_count(row.get("failed")),
    )


def normalize_update_deployment(
    outcomes: Outcomes, as_of: datetime
) -> SoftwareUpdateDeployment:
    """*as_of* is the naive UTC "now" used to flag past-due deployments."""
    deployments = tuple(
        _deployment(r, as_of) for r in _rows(outcomes, q.DEPLOYMENT_SUMMARY)
    )
    targeted = sum(d.total for d in deployments)
    installed = sum(d.installed for d in deployments)

    if _ok(outcomes, q.PENDING_RESTARTS):
        pending = to_count(_first(outcomes, q.PENDING_RESTARTS).get("pending_restarts"))
    else:
        pending = sum(d.pending_restart for d in deployments)

    codes: dict[str, int] = {}
    for r in _rows(outcomes, q.ERROR_CODES):
        code = format_error_code(r.get("error_code"))
        if code in ("", "0x00000000"):
            continue
        codes[code] = codes.get(code, 0) + to_count(r.get("count"))
    breakdown = tuple(
        ErrorCodeCount(
            code=code,
            description=ERROR_DESCRIPTIONS.get(code, UNKNOWN_ERROR),
            count=Count(count),
        )
        for code, count in sorted(codes.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_N]
    )

    return SoftwareUpdateDeployment(
        active_deployments=Count(len(deployments)),
        deployment_success_rate=percent(installed, targeted),
        total_targeted=Count(targeted),
        total_installed=Count(installed),
        total_failed=Count(sum(d.failed for d in deployments)),
        pending_restarts=Count(pending),
        deployments=deployments,
        error_code_breakdown=breakdown,
    )


# ---------------------------------------------------------------------------
# Edge management
# ---------------------------------------------------------------------------


def _version_key(version: str) -> tuple[int, ...]:
    parts = []
    for piece in version.split("."):
        if not piece.isdigit():
            break
        parts.append(int(piece))
    return tuple(parts)


def edge_version_status(major: int | None, latest_major: int) -> str:
    """Classify a major version relative to the newest one observed."""
    if major is None:
        return "vulnerable"
    lag = latest_major - major
    if lag <= 0:
        return "current"
    if lag == 1:
        return "recent"
    if lag == 2:
        return "outdated"
    return "vulnerable"


VULNERABLE_STATUSES = frozenset({"outdated", "vulnerable"})


def _browser_breakdown(rows: Iterable[Row], value_column: str, as_share: bool) -> BrowserBreakdown:
    totals = {"edge": 0.0, "chrome": 0.0, "firefox": 0.0, "other": 0.0}
    for r in rows:
        totals[bucket(r.get("browser"), BROWSER_RULES, BROWSER_OTHER)] += max(
            0.0, to_float(r.get(value_column))
        )
    if not as_share:
        return BrowserBreakdown(**{k: float(int(v)) for k, v in totals.items()})
    whole = sum(totals.values())
    return BrowserBreakdown(**{k: float(share(v, whole)) for k, v in totals.items()})


def normalize_edge_management(outcomes: Outcomes) -> EdgeManagement:
    counts: dict[str, int] = {}
    for r in _rows(outcomes, q.EDGE_VERSIONS):
        version = to_label(r.get("version")) or "unknown"
        counts[version] = counts.get(version, 0) + to_count(r.get("count"))

    majors = {v: (_version_key(v) or (None,))[0] for v in counts}
    known = [m for m in majors.values() if m is not None]
    latest_major = max(known) if known else 0
    latest = max(
        (v for v, m in majors.items() if m is not None),
        key=_version_key,
        default="",
    )

    ordered = sorted(counts, key=lambda v: (_version_key(v), v), reverse=True)
    distribution = tuple(
        EdgeVersion(
            version=v,
            count=Count(counts[v]),
            status=edge_version_status(majors[v], latest_major),
        )
        for v in ordered
        if counts[v] > 0
    )

    installed = sum(e.count for e in distribution)
    vulnerable = sum(e.count for e in distribution if e.status in VULNERABLE_STATUSES)
    with_browser = max(
        to_count(_first(outcomes, q.BROWSER_DEVICES).get("devices")), installed
    )

    return EdgeManagement(
        total_devices_with_browser=Count(with_browser),
        total_edge_installed=Count(installed),
        edge_penetration=percent(installed, with_browser),
        latest_edge_version=latest,
        vulnerable_edge_clients=Count(vulnerable),
        vulnerable_percent=Percent(
            round_half_up(100.0 - percent(installed - vulnerable, installed))
        ),
        edge_version_distribution=distribution[:15],
        browser_usage_last_30d=_browser_breakdown(
            _rows(outcomes, q.BROWSER_USAGE), "usage", as_share=True
        ),
        default_browser_stats=_browser_breakdown(
            _rows(outcomes, q.DEFAULT_BROWSER), "count", as_share=False
        ),
    )


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

_CM_DATABASE = re.compile(r"^CM_([A-Z0-9]{3})$", re.IGNORECASE)


def normalize_environment(
    outcomes: Outcomes,
    *,
    sql_server: str,
    database: str,
    collector_version: str,
) -> Environment:
    site = _first(outcomes, q.SITE_INFO)
    site_code = to_label(site.get("site_code"))
    if not site_code:
        match = _CM_DATABASE.match(database or "")
        site_code = match.group(1).upper() if match else ""
    return Environment(
        site_code=site_code,
        site_name=to_label(site.get("site_name")),
        site_version=to_label(site.get("version")),
        sql_server=sql_server,
        database=database,
        collector_version=collector_version,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "to_float",
    "to_count",
    "to_label",
    "round_half_up",
    "clamp",
    "percent",
    "share",
    "BucketRule",
    "rule",
    "bucket",
    "OS_RULES",
    "BROWSER_RULES",
    "package_type_label",
    "update_severity_label",
    "format_error_code",
    "edge_version_status",
    "normalize_client_health",
    "normalize_content_distribution",
    "normalize_update_compliance",
    "normalize_update_deployment",
    "normalize_edge_management",
    "normalize_environment",
]

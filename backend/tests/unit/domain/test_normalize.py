"""Tests for the domain normalizers and their coercion helpers.

Verifies:
- Zero-denominator health ratios are exactly 100.0
- Half-up rounding to one decimal and clamping to [0, 100]
- Null / junk / negative values coerce to safe defaults
- Ordered bucketing with a catch-all
- Each domain normalizer against representative rows
- Every normalizer tolerates fully unavailable outcomes
"""

from __future__ import annotations

from dataclasses import fields
from datetime import date, datetime

import pytest

from mecm_health.domain.health import queries as q
from mecm_health.domain.health.models import Severity
from mecm_health.domain.health.normalize import (
    BROWSER_OTHER,
    BROWSER_RULES,
    OS_OTHER,
    OS_RULES,
    bucket,
    edge_version_status,
    format_error_code,
    normalize_client_health,
    normalize_content_distribution,
    normalize_edge_management,
    normalize_environment,
    normalize_update_compliance,
    normalize_update_deployment,
    package_type_label,
    percent,
    round_half_up,
    share,
    to_count,
    to_date_label,
    to_label,
    update_severity_label,
)
from mecm_health.domain.health.queries import QueryOutcome


# ── Helpers ──────────────────────────────────────────────────────────


def _ok(key: str, *rows: dict) -> tuple[str, QueryOutcome]:
    return key, QueryOutcome.ok(key, "test", list(rows))


def _down(key: str) -> tuple[str, QueryOutcome]:
    return key, QueryOutcome.unavailable(key, ["test: gone"])


def _assert_numbers_non_negative(record) -> None:
    for f in fields(record):
        value = getattr(record, f.name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            assert value >= 0, f"{f.name} is negative"


AS_OF = datetime(2026, 10, 19, 6, 0)


# ── Scalar coercion ──────────────────────────────────────────────────


class TestPercent:
    def test_zero_denominator_is_exactly_100(self):
        assert percent(0, 0) == 100.0
        assert percent(5, None) == 100.0

    def test_basic_ratio(self):
        assert percent(920, 1000) == 92.0

    def test_rounds_half_up(self):
        # 1/8 = 12.5% ; 0.25/1 -> 0.25% -> 0.3
        assert percent(1, 8) == 12.5
        assert round_half_up(0.25) == 0.3
        assert round_half_up(84.45) == 84.5

    def test_clamped_to_100(self):
        assert percent(120, 100) == 100.0

    def test_share_zero_whole_is_zero(self):
        assert share(0, 0) == 0.0
        assert share(1, 3) == 33.3


class TestCoercion:
    @pytest.mark.parametrize(
        "value, expected",
        [(None, 0), ("", 0), ("abc", 0), (-4, 0), (3.9, 3), ("12", 12), (float("nan"), 0)],
    )
    def test_to_count(self, value, expected):
        assert to_count(value) == expected

    def test_to_label(self):
        assert to_label(None) == ""
        assert to_label("  PS1 ") == "PS1"

    def test_to_date_label(self):
        assert to_date_label(datetime(2026, 10, 13, 17, 0)) == "2026-10-13"
        assert to_date_label(date(2026, 1, 2)) == "2026-01-02"
        assert to_date_label(None) == ""


# ── Bucketing & lookups ──────────────────────────────────────────────


class TestBucketing:
    @pytest.mark.parametrize(
        "caption, label",
        [
            ("Microsoft Windows 11 Enterprise", "Windows 11"),
            ("Microsoft Windows 10 Pro", "Windows 10"),
            ("Microsoft Windows NT Workstation 10.0", "Windows 10/11"),
            ("Microsoft Windows Server 2022 Standard", "Server 2022"),
            ("Microsoft Windows NT Advanced Server 10.0", "Windows Server"),
            ("Ubuntu 22.04", "Other"),
            (None, "Other"),
        ],
    )
    def test_os_rules(self, caption, label):
        assert bucket(caption, OS_RULES, OS_OTHER) == label

    def test_first_matching_rule_wins(self):
        # Matches both "server 2019" and the generic "server" rule
        assert bucket("Windows Server 2019 Datacenter", OS_RULES, OS_OTHER) == "Server 2019"

    @pytest.mark.parametrize(
        "name, label",
        [("MSEdgeHTM", "edge"), ("ChromeHTML", "chrome"), ("FirefoxURL-308046B0AF4A39CB", "firefox"), ("Opera", "other")],
    )
    def test_browser_rules(self, name, label):
        assert bucket(name, BROWSER_RULES, BROWSER_OTHER) == label

    def test_package_type_label(self):
        assert package_type_label(8) == "Application"
        assert package_type_label("258") == "Boot Image"
        assert package_type_label(99) == "Other"

    def test_update_severity_label(self):
        assert update_severity_label(10) == "critical"
        assert update_severity_label("8") == "important"
        assert update_severity_label(None) == "unrated"
        assert update_severity_label("Moderate") == "moderate"

    def test_format_error_code_wraps_signed_values(self):
        assert format_error_code(-2147024891) == "0x80070005"
        assert format_error_code("0x80070643") == "0x80070643"
        assert format_error_code(0) == "0x00000000"

    @pytest.mark.parametrize(
        "major, status",
        [(141, "current"), (140, "recent"), (139, "outdated"), (130, "vulnerable"), (None, "vulnerable")],
    )
    def test_edge_version_status(self, major, status):
        assert edge_version_status(major, 141) == status


# ── Client health ────────────────────────────────────────────────────


class TestClientHealth:
    def test_health_percent_from_totals(self):
        record = normalize_client_health(dict([
            _ok(q.CLIENT_SUMMARY, {"total": 1000, "healthy": 920, "active": 980, "inactive": 20}),
        ]))
        assert record.total_devices == 1000
        assert record.healthy_clients == 920
        assert record.unhealthy_clients == 80
        assert record.client_health_percent == 92.0
        assert record.inactive_clients == 20

    def test_os_distribution_grouped_and_ordered(self):
        record = normalize_client_health(dict([
            _ok(
                q.CLIENT_OS,
                {"caption": "Microsoft Windows 10 Enterprise", "count": 30},
                {"caption": "Microsoft Windows 11 Enterprise", "count": 50},
                {"caption": "Microsoft Windows 10 Pro", "count": 25},
                {"caption": None, "count": 2},
            ),
        ]))
        assert [(o.label, o.count) for o in record.os_build_distribution] == [
            ("Windows 10", 55),
            ("Windows 11", 50),
            ("Other", 2),
        ]

    def test_issues_sorted_and_zero_counts_dropped(self):
        record = normalize_client_health(dict([
            _ok(
                q.CLIENT_ISSUES,
                {"issue": "No policy request in 7 days", "severity": "medium", "count": 4},
                {"issue": "Client health evaluation failed", "severity": "HIGH", "count": 9},
                {"issue": "Obsolete client record", "severity": "medium", "count": 0},
            ),
        ]))
        assert [i.issue for i in record.top_issues] == [
            "Client health evaluation failed",
            "No policy request in 7 days",
        ]
        assert record.top_issues[0].severity == Severity.HIGH

    def test_remediation_success_capped_at_total(self):
        record = normalize_client_health(dict([
            _ok(q.CLIENT_REMEDIATION, {"success": 12, "total": 10}),
        ]))
        assert record.remediation_success == 10


# ── Content distribution ─────────────────────────────────────────────


class TestContentDistribution:
    def test_dp_states(self):
        record = normalize_content_distribution(dict([
            _ok(
                q.DP_STATUS,
                {"server": "DP1", "failed": 0, "in_progress": 0},
                {"server": "DP2", "failed": 0, "in_progress": 3},
                {"server": "DP3", "failed": 2, "in_progress": 1},
                {"server": "DP4", "failed": None, "in_progress": None},
            ),
        ]))
        assert (record.total_dps, record.healthy_dps, record.warning_dps, record.error_dps) == (4, 2, 1, 1)
        assert record.dp_health_percent == 50.0

    def test_no_dps_is_fully_healthy(self):
        record = normalize_content_distribution(dict([_ok(q.DP_STATUS)]))
        assert record.total_dps == 0
        assert record.dp_health_percent == 100.0

    def test_package_totals_and_types(self):
        record = normalize_content_distribution(dict([
            _ok(q.PACKAGE_SUMMARY, {"total_packages": 40, "total_size_kb": 2 * 1024 * 1024}),
            _ok(q.CONTENT_TYPES, {"package_type": 8, "count": 30}, {"package_type": 0, "count": 10}),
            _ok(q.DISTRIBUTION_STATUS, {"success": 300, "failed": 3, "in_progress": 7}),
        ]))
        assert record.total_packages == 40
        assert record.total_content_size_gb == 2.0
        assert [(t.label, t.count) for t in record.content_type_breakdown] == [
            ("Application", 30),
            ("Package", 10),
        ]
        assert record.distributed_failed == 3

    def test_groups_and_failed_packages(self):
        record = normalize_content_distribution(dict([
            _ok(q.DP_GROUPS, {"name": "HQ", "members": 2, "packages": 10, "installed": 19, "targeted": 20}),
            _ok(
                q.FAILED_PACKAGES,
                {"package_id": "PS100001", "name": "A", "package_type": 0, "failed_dps": 1, "error": None},
                {"package_id": "PS100002", "name": "B", "package_type": 8, "failed_dps": 4, "error": "Install failed"},
            ),
        ]))
        assert record.dp_groups[0].compliance == 95.0
        assert [p.package_id for p in record.failed_packages] == ["PS100002", "PS100001"]
        assert record.failed_packages[1].error == "Distribution failed"


# ── Update compliance ────────────────────────────────────────────────


class TestUpdateCompliance:
    def test_summary_and_scan_coverage(self):
        record = normalize_update_compliance(dict([
            _ok(q.COMPLIANCE_SUMMARY, {"total": 200, "compliant": 150}),
            _ok(q.SCAN_STATUS, {"last_24h": 100, "last_7d": 60, "over_7d": 30, "never": 10}),
        ]))
        assert record.compliance_percent == 75.0
        assert record.non_compliant_devices == 50
        assert record.scan_coverage == 80.0
        assert record.last_scan_distribution.over_7d == 30

    def test_missing_by_severity_buckets(self):
        record = normalize_update_compliance(dict([
            _ok(
                q.MISSING_BY_SEVERITY,
                {"severity": 10, "missing": 5},
                {"severity": 8, "missing": 3},
                {"severity": None, "missing": 2},
                {"severity": "6", "missing": 1},
            ),
        ]))
        sev = record.missing_updates_by_severity
        assert (sev.critical, sev.important, sev.moderate, sev.low, sev.unrated) == (5, 3, 1, 0, 2)

    def test_top_missing_updates(self):
        record = normalize_update_compliance(dict([
            _ok(
                q.TOP_MISSING_UPDATES,
                {"title": "KB1", "severity": 8, "missing": 3, "released": datetime(2026, 9, 9)},
                {"title": "KB2", "severity": 10, "missing": 7, "released": None},
            ),
        ]))
        assert [(u.title, u.severity, u.released) for u in record.top_missing_updates] == [
            ("KB2", "Critical", ""),
            ("KB1", "Important", "2026-09-09"),
        ]

    def test_collection_compliance(self):
        record = normalize_update_compliance(dict([
            _ok(q.COMPLIANCE_BY_COLLECTION, {"collection": "All Servers", "total": 8, "compliant": 6}),
        ]))
        assert record.compliance_by_collection[0].percent == 75.0


# ── Update deployment ────────────────────────────────────────────────


class TestUpdateDeployment:
    ROWS = (
        {"name": "Servers", "collection": "All Servers", "deadline": datetime(2026, 10, 18, 22, 0),
         "targeted": 100, "installed": 80, "downloading": 5, "waiting": 5, "pending_restart": 6, "failed": 4},
        {"name": "Workstations", "collection": "All Workstations", "deadline": datetime(2026, 10, 20, 18, 0),
         "targeted": 50, "installed": 50, "downloading": 0, "waiting": 0, "pending_restart": 2, "failed": 0},
    )

    def test_totals_and_status(self):
        record = normalize_update_deployment(dict([_ok(q.DEPLOYMENT_SUMMARY, *self.ROWS)]), AS_OF)
        assert record.active_deployments == 2
        assert record.total_targeted == 150
        assert record.total_installed == 130
        assert record.total_failed == 4
        assert record.deployment_success_rate == 86.7
        assert [d.status for d in record.deployments] == ["warning", "active"]
        assert record.deployments[0].deadline == "2026-10-18 22:00"

    def test_pending_restarts_prefers_device_count(self):
        record = normalize_update_deployment(
            dict([_ok(q.DEPLOYMENT_SUMMARY, *self.ROWS), _ok(q.PENDING_RESTARTS, {"pending_restarts": 42})]),
            AS_OF,
        )
        assert record.pending_restarts == 42

    def test_pending_restarts_falls_back_to_deployment_sum(self):
        record = normalize_update_deployment(
            dict([_ok(q.DEPLOYMENT_SUMMARY, *self.ROWS), _down(q.PENDING_RESTARTS)]), AS_OF
        )
        assert record.pending_restarts == 8

    def test_error_codes(self):
        record = normalize_update_deployment(dict([
            _ok(
                q.ERROR_CODES,
                {"error_code": -2147024891, "count": 3},
                {"error_code": 0, "count": 50},
                {"error_code": -2145124318, "count": 9},
            ),
        ]), AS_OF)
        assert [(e.code, e.count) for e in record.error_code_breakdown] == [
            ("0x80240022", 9),
            ("0x80070005", 3),
        ]
        assert record.error_code_breakdown[1].description == "Access denied"


# ── Edge management ──────────────────────────────────────────────────


class TestEdgeManagement:
    def test_versions_and_vulnerability(self):
        record = normalize_edge_management(dict([
            _ok(
                q.EDGE_VERSIONS,
                {"version": "141.0.3537.71", "count": 80},
                {"version": "140.0.3485.94", "count": 10},
                {"version": "139.0.3405.125", "count": 6},
                {"version": "130.0.2849.80", "count": 4},
            ),
            _ok(q.BROWSER_DEVICES, {"devices": 120}),
        ]))
        assert record.total_edge_installed == 100
        assert record.latest_edge_version == "141.0.3537.71"
        assert [v.status for v in record.edge_version_distribution] == [
            "current", "recent", "outdated", "vulnerable",
        ]
        assert record.vulnerable_edge_clients == 10
        assert record.vulnerable_percent == 10.0
        assert record.edge_penetration == 83.3

    def test_browser_usage_shares(self):
        record = normalize_edge_management(dict([
            _ok(
                q.BROWSER_USAGE,
                {"browser": "Microsoft Edge", "usage": 60},
                {"browser": "Google Chrome", "usage": 30},
                {"browser": "Opera", "usage": 10},
            ),
            _ok(q.DEFAULT_BROWSER, {"browser": "MSEdgeHTM", "count": 7}, {"browser": "ChromeHTML", "count": 2}),
        ]))
        usage = record.browser_usage_last_30d
        assert (usage.edge, usage.chrome, usage.firefox, usage.other) == (60.0, 30.0, 0.0, 10.0)
        assert record.default_browser_stats.edge == 7
        assert record.default_browser_stats.chrome == 2

    def test_empty_inventory_reports_nothing_vulnerable(self):
        record = normalize_edge_management(dict([_ok(q.EDGE_VERSIONS)]))
        assert record.vulnerable_percent == 0.0
        assert record.edge_penetration == 100.0
        assert record.latest_edge_version == ""


# ── Environment ──────────────────────────────────────────────────────


class TestEnvironment:
    def test_site_row(self):
        env = normalize_environment(
            dict([_ok(q.SITE_INFO, {"site_code": "PS1", "site_name": "Primary", "version": "5.00.9122.1000"})]),
            sql_server="SQL01", database="CM_PS1", collector_version="1.0.0",
        )
        assert (env.site_code, env.site_name, env.site_version) == ("PS1", "Primary", "5.00.9122.1000")
        assert env.sql_server == "SQL01"

    def test_site_code_from_database_name(self):
        env = normalize_environment(
            dict([_down(q.SITE_INFO)]),
            sql_server="SQL01", database="cm_ab2", collector_version="1.0.0",
        )
        assert env.site_code == "AB2"

    def test_unconventional_database_name(self):
        env = normalize_environment({}, sql_server="SQL01", database="ConfigMgr", collector_version="")
        assert env.site_code == ""


# ── Fully unavailable ────────────────────────────────────────────────


class TestAllUnavailable:
    KEYS = (
        q.CLIENT_SUMMARY, q.CLIENT_ACTIVITY, q.CLIENT_REMEDIATION, q.CLIENT_OS, q.CLIENT_ISSUES,
        q.DP_STATUS, q.PACKAGE_SUMMARY, q.CONTENT_TYPES, q.DISTRIBUTION_STATUS, q.DP_GROUPS,
        q.FAILED_PACKAGES, q.COMPLIANCE_SUMMARY, q.SCAN_STATUS, q.MISSING_BY_SEVERITY,
        q.TOP_MISSING_UPDATES, q.COMPLIANCE_BY_COLLECTION, q.DEPLOYMENT_SUMMARY,
        q.PENDING_RESTARTS, q.ERROR_CODES, q.EDGE_VERSIONS, q.BROWSER_DEVICES,
        q.BROWSER_USAGE, q.DEFAULT_BROWSER,
    )

    @pytest.fixture
    def outcomes(self):
        return dict(_down(k) for k in self.KEYS)

    def test_records_default_with_non_negative_numbers(self, outcomes):
        records = [
            normalize_client_health(outcomes),
            normalize_content_distribution(outcomes),
            normalize_update_compliance(outcomes),
            normalize_update_deployment(outcomes, AS_OF),
            normalize_edge_management(outcomes),
        ]
        for record in records:
            _assert_numbers_non_negative(record)

    def test_health_percentages_are_100(self, outcomes):
        assert normalize_client_health(outcomes).client_health_percent == 100.0
        assert normalize_content_distribution(outcomes).dp_health_percent == 100.0
        assert normalize_update_compliance(outcomes).compliance_percent == 100.0
        assert normalize_update_deployment(outcomes, AS_OF).deployment_success_rate == 100.0

    def test_counts_are_zero(self, outcomes):
        clients = normalize_client_health(outcomes)
        assert clients.total_devices == 0
        assert clients.os_build_distribution == ()
        assert normalize_update_compliance(outcomes).last_scan_distribution.over_7d == 0
        assert normalize_content_distribution(outcomes).distributed_failed == 0
        assert normalize_update_deployment(outcomes, AS_OF).pending_restarts == 0

"""T-SQL fallback chains for the Configuration Manager site database.

Each descriptor lists its variants richest-first.  Variants that read
views which only exist when an optional feature is enabled (client
health views, extended hardware inventory classes, Edge browser
inventory) are marked ``optional``; every chain ends with a standard
view (v_R_System, v_Package, ...) or a view-free SELECT, so the chain
always terminates.

Column aliases are the contract with the normalizers and are always
lower case.
"""

from __future__ import annotations

from mecm_health.domain.health import queries as q
from mecm_health.domain.health.queries import QueryVariant, SourceQueryDescriptor, descriptor


def _ago(unit: str, amount: int) -> str:
    return f"DATEADD({unit}, -{amount}, GETUTCDATE())"


def _between(column: str, newer: str, older: str) -> str:
    """1 when *column* lies in (older, newer]."""
    return f"SUM(CASE WHEN {column} < {newer} AND {column} >= {older} THEN 1 ELSE 0 END)"


def _empty(*columns: str) -> QueryVariant:
    """View-free terminal variant: executes everywhere, returns no rows."""
    cols = ", ".join(f"CAST(NULL AS NVARCHAR(256)) AS {c}" for c in columns)
    return QueryVariant(name="none", sql=f"SELECT {cols} WHERE 1 = 0", placeholder=True)


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

CLIENT_SUMMARY = descriptor(
    q.CLIENT_SUMMARY,
    "clients",
    "client counts",
    QueryVariant(
        name="client_health_summary",
        optional=True,
        sql="""
            SELECT COUNT(*) AS total,
                   SUM(CASE WHEN cs.ClientStateDescription = 'Active/Pass' THEN 1 ELSE 0 END) AS healthy,
                   SUM(CASE WHEN cs.ClientActiveStatus = 1 THEN 1 ELSE 0 END) AS active,
                   SUM(CASE WHEN cs.ClientActiveStatus = 0 THEN 1 ELSE 0 END) AS inactive
            FROM v_CH_ClientSummary cs
        """,
    ),
    QueryVariant(
        name="system_discovery",
        sql="""
            SELECT COUNT(*) AS total,
                   SUM(CASE WHEN sys.Active0 = 1 THEN 1 ELSE 0 END) AS healthy,
                   SUM(CASE WHEN sys.Active0 = 1 THEN 1 ELSE 0 END) AS active,
                   SUM(CASE WHEN ISNULL(sys.Active0, 0) = 0 THEN 1 ELSE 0 END) AS inactive
            FROM v_R_System sys
            WHERE sys.Client0 = 1 AND ISNULL(sys.Obsolete0, 0) = 0
        """,
    ),
)

CLIENT_ACTIVITY = descriptor(
    q.CLIENT_ACTIVITY,
    "clients",
    "client activity breakdown",
    QueryVariant(
        name="client_health_last_active",
        optional=True,
        sql=f"""
            SELECT SUM(CASE WHEN cs.LastActiveTime >= {_ago('hour', 24)} THEN 1 ELSE 0 END) AS last_24h,
                   {_between('cs.LastActiveTime', _ago('hour', 24), _ago('hour', 48))} AS last_48h,
                   {_between('cs.LastActiveTime', _ago('hour', 48), _ago('day', 7))} AS last_7d,
                   {_between('cs.LastActiveTime', _ago('day', 7), _ago('day', 30))} AS last_30d,
                   SUM(CASE WHEN cs.LastActiveTime IS NULL OR cs.LastActiveTime < {_ago('day', 30)}
                            THEN 1 ELSE 0 END) AS over_30d
            FROM v_CH_ClientSummary cs
        """,
    ),
    QueryVariant(
        name="hardware_scan_time",
        sql=f"""
            SELECT SUM(CASE WHEN ws.LastHWScan >= {_ago('hour', 24)} THEN 1 ELSE 0 END) AS last_24h,
                   {_between('ws.LastHWScan', _ago('hour', 24), _ago('hour', 48))} AS last_48h,
                   {_between('ws.LastHWScan', _ago('hour', 48), _ago('day', 7))} AS last_7d,
                   {_between('ws.LastHWScan', _ago('day', 7), _ago('day', 30))} AS last_30d,
                   SUM(CASE WHEN ws.LastHWScan IS NULL OR ws.LastHWScan < {_ago('day', 30)}
                            THEN 1 ELSE 0 END) AS over_30d
            FROM v_R_System sys
            LEFT JOIN v_GS_WORKSTATION_STATUS ws ON ws.ResourceID = sys.ResourceID
            WHERE sys.Client0 = 1 AND ISNULL(sys.Obsolete0, 0) = 0
        """,
    ),
)

CLIENT_REMEDIATION = descriptor(
    q.CLIENT_REMEDIATION,
    "clients",
    "client remediation results",
    QueryVariant(
        name="client_health_evaluations",
        optional=True,
        sql=f"""
            SELECT SUM(CASE WHEN ev.Result = 7 THEN 1 ELSE 0 END) AS success,
                   SUM(CASE WHEN ev.Result IN (6, 7) THEN 1 ELSE 0 END) AS total
            FROM v_CH_EvalResults ev
            WHERE ev.EvalTime >= {_ago('day', 30)}
        """,
    ),
    QueryVariant(name="none", sql="SELECT 0 AS success, 0 AS total", placeholder=True),
)

CLIENT_OS = descriptor(
    q.CLIENT_OS,
    "clients",
    "OS build distribution",
    QueryVariant(
        name="operating_system_inventory",
        sql="""
            SELECT os.Caption0 AS caption, COUNT(*) AS count
            FROM v_GS_OPERATING_SYSTEM os
            GROUP BY os.Caption0
        """,
    ),
    QueryVariant(
        name="system_discovery",
        sql="""
            SELECT sys.Operating_System_Name_and0 AS caption, COUNT(*) AS count
            FROM v_R_System sys
            WHERE sys.Client0 = 1 AND ISNULL(sys.Obsolete0, 0) = 0
            GROUP BY sys.Operating_System_Name_and0
        """,
    ),
)

CLIENT_ISSUES = descriptor(
    q.CLIENT_ISSUES,
    "clients",
    "top client issues",
    QueryVariant(
        name="client_health_summary",
        optional=True,
        sql=f"""
            SELECT 'Client health evaluation failed' AS issue, 'high' AS severity,
                   SUM(CASE WHEN cs.ClientStateDescription LIKE '%Fail%' THEN 1 ELSE 0 END) AS count
            FROM v_CH_ClientSummary cs
            UNION ALL
            SELECT 'Hardware inventory older than 14 days', 'medium',
                   SUM(CASE WHEN cs.LastHW < {_ago('day', 14)} THEN 1 ELSE 0 END)
            FROM v_CH_ClientSummary cs
            UNION ALL
            SELECT 'No policy request in 7 days', 'medium',
                   SUM(CASE WHEN cs.LastPolicyRequest < {_ago('day', 7)} THEN 1 ELSE 0 END)
            FROM v_CH_ClientSummary cs
            UNION ALL
            SELECT 'No heartbeat discovery in 7 days', 'medium',
                   SUM(CASE WHEN cs.LastDDR < {_ago('day', 7)} THEN 1 ELSE 0 END)
            FROM v_CH_ClientSummary cs
        """,
    ),
    QueryVariant(
        name="system_discovery",
        sql="""
            SELECT 'Client not installed' AS issue, 'critical' AS severity,
                   SUM(CASE WHEN ISNULL(sys.Client0, 0) = 0 THEN 1 ELSE 0 END) AS count
            FROM v_R_System sys
            WHERE ISNULL(sys.Obsolete0, 0) = 0
            UNION ALL
            SELECT 'Obsolete client record', 'medium',
                   SUM(CASE WHEN sys.Obsolete0 = 1 THEN 1 ELSE 0 END)
            FROM v_R_System sys
            UNION ALL
            SELECT 'Decommissioned client record', 'medium',
                   SUM(CASE WHEN sys.Decommissioned0 = 1 THEN 1 ELSE 0 END)
            FROM v_R_System sys
        """,
    ),
)


# ---------------------------------------------------------------------------
# Content distribution
# ---------------------------------------------------------------------------

# v_PackageStatusDistPointsSumm.State: 0 installed, 1/2 install pending or
# retrying, 3 install failed, 4/5 removal pending or retrying, 6 removal
# failed, 7 content updating
_FAILED_STATES = "(3, 6)"
_IN_PROGRESS_STATES = "(1, 2, 4, 5, 7)"

DP_STATUS = descriptor(
    q.DP_STATUS,
    "content",
    "distribution point status",
    QueryVariant(
        name="dp_status_messages",
        optional=True,
        sql="""
            SELECT dp.ServerName AS server,
                   SUM(CASE WHEN ds.MessageState = 4 THEN 1 ELSE 0 END) AS failed,
                   SUM(CASE WHEN ds.MessageState = 2 THEN 1 ELSE 0 END) AS in_progress
            FROM v_DistributionPoints dp
            LEFT JOIN vSMS_DistributionDPStatus ds ON ds.Name = dp.ServerName
            GROUP BY dp.ServerName
        """,
    ),
    QueryVariant(
        name="package_status_per_dp",
        sql=f"""
            SELECT psd.ServerNALPath AS server,
                   SUM(CASE WHEN psd.State IN {_FAILED_STATES} THEN 1 ELSE 0 END) AS failed,
                   SUM(CASE WHEN psd.State IN {_IN_PROGRESS_STATES} THEN 1 ELSE 0 END) AS in_progress
            FROM v_PackageStatusDistPointsSumm psd
            GROUP BY psd.ServerNALPath
        """,
    ),
)

PACKAGE_SUMMARY = descriptor(
    q.PACKAGE_SUMMARY,
    "content",
    "package totals",
    QueryVariant(
        name="package_root_summary",
        sql="""
            SELECT COUNT(*) AS total_packages,
                   SUM(CAST(ISNULL(prs.SourceSize, 0) AS BIGINT)) AS total_size_kb
            FROM v_PackageStatusRootSummarizer prs
        """,
    ),
    QueryVariant(
        name="package_count",
        sql="SELECT COUNT(*) AS total_packages, 0 AS total_size_kb FROM v_Package",
    ),
)

CONTENT_TYPES = descriptor(
    q.CONTENT_TYPES,
    "content",
    "content type breakdown",
    QueryVariant(
        name="package_types",
        sql="""
            SELECT pkg.PackageType AS package_type, COUNT(*) AS count
            FROM v_Package pkg
            GROUP BY pkg.PackageType
        """,
    ),
)

DISTRIBUTION_STATUS = descriptor(
    q.DISTRIBUTION_STATUS,
    "content",
    "distribution status totals",
    QueryVariant(
        name="package_status_totals",
        sql=f"""
            SELECT SUM(CASE WHEN psd.State = 0 THEN 1 ELSE 0 END) AS success,
                   SUM(CASE WHEN psd.State IN {_FAILED_STATES} THEN 1 ELSE 0 END) AS failed,
                   SUM(CASE WHEN psd.State IN {_IN_PROGRESS_STATES} THEN 1 ELSE 0 END) AS in_progress
            FROM v_PackageStatusDistPointsSumm psd
        """,
    ),
)

DP_GROUPS = descriptor(
    q.DP_GROUPS,
    "content",
    "distribution point groups",
    QueryVariant(
        name="dp_group_info",
        optional=True,
        sql="""
            SELECT g.Name AS name,
                   g.MemberCount AS members,
                   g.ContentCount AS packages,
                   SUM(ISNULL(st.NumberInstalled, 0)) AS installed,
                   SUM(ISNULL(st.NumberTotal, 0)) AS targeted
            FROM vSMS_DPGroupInfo g
            LEFT JOIN vSMS_DPGroupDistributionStatusDetails st ON st.GroupID = g.GroupID
            GROUP BY g.Name, g.MemberCount, g.ContentCount
        """,
    ),
    _empty("name", "members", "packages", "installed", "targeted"),
)

FAILED_PACKAGES = descriptor(
    q.FAILED_PACKAGES,
    "content",
    "failed packages",
    QueryVariant(
        name="failed_package_status",
        sql=f"""
            SELECT TOP 10 pkg.PackageID AS package_id,
                   pkg.Name AS name,
                   pkg.PackageType AS package_type,
                   COUNT(*) AS failed_dps,
                   MAX(CASE psd.State WHEN 3 THEN 'Install failed'
                                      WHEN 6 THEN 'Removal failed' END) AS error
            FROM v_PackageStatusDistPointsSumm psd
            JOIN v_Package pkg ON pkg.PackageID = psd.PackageID
            WHERE psd.State IN {_FAILED_STATES}
            GROUP BY pkg.PackageID, pkg.Name, pkg.PackageType
            ORDER BY failed_dps DESC
        """,
    ),
)


# ---------------------------------------------------------------------------
# Software update compliance
# ---------------------------------------------------------------------------

# v_UpdateComplianceStatus.Status: 2 = required (missing), 3 = installed
COMPLIANCE_SUMMARY = descriptor(
    q.COMPLIANCE_SUMMARY,
    "compliance",
    "update compliance totals",
    QueryVariant(
        name="deployed_update_compliance",
        sql="""
            SELECT COUNT(*) AS total,
                   SUM(CASE WHEN m.missing = 0 THEN 1 ELSE 0 END) AS compliant
            FROM (
                SELECT sys.ResourceID,
                       SUM(CASE WHEN ucs.Status = 2 AND ui.CI_ID IS NOT NULL THEN 1 ELSE 0 END) AS missing
                FROM v_R_System sys
                LEFT JOIN v_UpdateComplianceStatus ucs ON ucs.ResourceID = sys.ResourceID
                LEFT JOIN v_UpdateInfo ui
                       ON ui.CI_ID = ucs.CI_ID AND ui.IsDeployed = 1 AND ui.IsExpired = 0
                WHERE sys.Client0 = 1 AND ISNULL(sys.Obsolete0, 0) = 0
                GROUP BY sys.ResourceID
            ) m
        """,
    ),
    QueryVariant(
        name="compliance_status_all",
        sql="""
            SELECT COUNT(DISTINCT cs.ResourceID) AS total,
                   COUNT(DISTINCT cs.ResourceID)
                   - COUNT(DISTINCT CASE WHEN cs.Status = 2 THEN cs.ResourceID END) AS compliant
            FROM v_Update_ComplianceStatusAll cs
        """,
    ),
)

SCAN_STATUS = descriptor(
    q.SCAN_STATUS,
    "compliance",
    "update scan recency",
    QueryVariant(
        name="update_scan_status",
        sql=f"""
            SELECT SUM(CASE WHEN uss.LastScanTime >= {_ago('hour', 24)} THEN 1 ELSE 0 END) AS last_24h,
                   {_between('uss.LastScanTime', _ago('hour', 24), _ago('day', 7))} AS last_7d,
                   SUM(CASE WHEN uss.LastScanTime < {_ago('day', 7)} THEN 1 ELSE 0 END) AS over_7d,
                   SUM(CASE WHEN uss.LastScanTime IS NULL THEN 1 ELSE 0 END) AS never
            FROM v_R_System sys
            LEFT JOIN v_UpdateScanStatus uss ON uss.ResourceID = sys.ResourceID
            WHERE sys.Client0 = 1 AND ISNULL(sys.Obsolete0, 0) = 0
        """,
    ),
)

_MISSING_FROM = """
    FROM v_UpdateComplianceStatus ucs
    JOIN v_UpdateInfo ui ON ui.CI_ID = ucs.CI_ID
    WHERE ucs.Status = 2 AND ui.IsExpired = 0 AND ui.IsSuperseded = 0
"""

MISSING_BY_SEVERITY = descriptor(
    q.MISSING_BY_SEVERITY,
    "compliance",
    "missing updates by severity",
    QueryVariant(
        name="missing_updates",
        sql=f"SELECT ui.Severity AS severity, COUNT(*) AS missing {_MISSING_FROM} GROUP BY ui.Severity",
    ),
)

TOP_MISSING_UPDATES = descriptor(
    q.TOP_MISSING_UPDATES,
    "compliance",
    "top missing updates",
    QueryVariant(
        name="missing_updates",
        sql=f"""
            SELECT TOP 10 ui.Title AS title, ui.Severity AS severity,
                   COUNT(*) AS missing, ui.DatePosted AS released
            {_MISSING_FROM}
            GROUP BY ui.CI_ID, ui.Title, ui.Severity, ui.DatePosted
            ORDER BY missing DESC
        """,
    ),
)

COMPLIANCE_BY_COLLECTION = descriptor(
    q.COMPLIANCE_BY_COLLECTION,
    "compliance",
    "compliance by collection",
    QueryVariant(
        name="deployment_collections",
        optional=True,
        sql="""
            SELECT TOP 10 col.Name AS collection,
                   COUNT(DISTINCT fcm.ResourceID) AS total,
                   COUNT(DISTINCT fcm.ResourceID)
                   - COUNT(DISTINCT CASE WHEN ucs.Status = 2 THEN fcm.ResourceID END) AS compliant
            FROM v_Collection col
            JOIN v_FullCollectionMembership fcm ON fcm.CollectionID = col.CollectionID
            LEFT JOIN v_UpdateComplianceStatus ucs ON ucs.ResourceID = fcm.ResourceID
            WHERE col.CollectionID IN (
                SELECT DISTINCT cia.CollectionID FROM v_CIAssignment cia
                WHERE cia.AssignmentType IN (1, 5)
            )
            GROUP BY col.Name
            ORDER BY total DESC
        """,
    ),
    _empty("collection", "total", "compliant"),
)


# ---------------------------------------------------------------------------
# Software update deployment
# ---------------------------------------------------------------------------

DEPLOYMENT_SUMMARY = descriptor(
    q.DEPLOYMENT_SUMMARY,
    "deployments",
    "software update deployments",
    QueryVariant(
        name="deployment_summary",
        sql="""
            SELECT TOP 10 ds.SoftwareName AS name,
                   ds.CollectionName AS collection,
                   ds.EnforcementDeadline AS deadline,
                   ds.NumberTargeted AS targeted,
                   ds.NumberSuccess AS installed,
                   ds.NumberInProgress AS downloading,
                   ISNULL(ds.NumberUnknown, 0) + ISNULL(ds.NumberOther, 0) AS waiting,
                   0 AS pending_restart,
                   ds.NumberErrors AS failed
            FROM v_DeploymentSummary ds
            WHERE ds.FeatureType = 5
            ORDER BY ds.DeploymentTime DESC
        """,
    ),
    QueryVariant(
        name="ci_assignments",
        sql="""
            SELECT TOP 10 cia.AssignmentName AS name,
                   cia.CollectionName AS collection,
                   cia.EnforcementDeadline AS deadline,
                   0 AS targeted, 0 AS installed, 0 AS downloading,
                   0 AS waiting, 0 AS pending_restart, 0 AS failed
            FROM v_CIAssignment cia
            WHERE cia.AssignmentType IN (1, 5)
            ORDER BY cia.CreationTime DESC
        """,
    ),
)

PENDING_RESTARTS = descriptor(
    q.PENDING_RESTARTS,
    "deployments",
    "pending restarts",
    QueryVariant(
        name="combined_device_state",
        sql="""
            SELECT COUNT(*) AS pending_restarts
            FROM v_CombinedDeviceResources cdr
            WHERE cdr.IsClient = 1 AND ISNULL(cdr.ClientState, 0) <> 0
        """,
    ),
    QueryVariant(
        name="enforcement_state",
        sql="""
            SELECT COUNT(DISTINCT ucs.ResourceID) AS pending_restarts
            FROM v_UpdateComplianceStatus ucs
            WHERE ucs.LastEnforcementMessageID = 9
        """,
    ),
)

ERROR_CODES = descriptor(
    q.ERROR_CODES,
    "deployments",
    "deployment error codes",
    QueryVariant(
        name="last_error_codes",
        sql="""
            SELECT TOP 10 ucs.LastErrorCode AS error_code, COUNT(*) AS count
            FROM v_UpdateComplianceStatus ucs
            WHERE ucs.LastErrorCode IS NOT NULL AND ucs.LastErrorCode <> 0
            GROUP BY ucs.LastErrorCode
            ORDER BY count DESC
        """,
    ),
)


# ---------------------------------------------------------------------------
# Edge management
# ---------------------------------------------------------------------------

_BROWSERS = "('Microsoft Edge', 'Google Chrome', 'Mozilla Firefox')"

EDGE_VERSIONS = descriptor(
    q.EDGE_VERSIONS,
    "edge",
    "Edge version inventory",
    QueryVariant(
        name="installed_software",
        optional=True,
        sql="""
            SELECT sw.ProductVersion0 AS version, COUNT(DISTINCT sw.ResourceID) AS count
            FROM v_GS_INSTALLED_SOFTWARE sw
            WHERE sw.ProductName0 = 'Microsoft Edge'
            GROUP BY sw.ProductVersion0
        """,
    ),
    QueryVariant(
        name="add_remove_programs",
        sql="""
            SELECT arp.Version0 AS version, COUNT(DISTINCT arp.ResourceID) AS count
            FROM v_Add_Remove_Programs arp
            WHERE arp.DisplayName0 = 'Microsoft Edge'
            GROUP BY arp.Version0
        """,
    ),
)

BROWSER_DEVICES = descriptor(
    q.BROWSER_DEVICES,
    "edge",
    "browser-equipped devices",
    QueryVariant(
        name="installed_software",
        optional=True,
        sql=f"""
            SELECT COUNT(DISTINCT sw.ResourceID) AS devices
            FROM v_GS_INSTALLED_SOFTWARE sw
            WHERE sw.ProductName0 IN {_BROWSERS}
        """,
    ),
    QueryVariant(
        name="add_remove_programs",
        sql=f"""
            SELECT COUNT(DISTINCT arp.ResourceID) AS devices
            FROM v_Add_Remove_Programs arp
            WHERE arp.DisplayName0 IN {_BROWSERS}
        """,
    ),
)

BROWSER_USAGE = descriptor(
    q.BROWSER_USAGE,
    "edge",
    "browser usage (30 days)",
    QueryVariant(
        name="browser_usage_inventory",
        optional=True,
        sql="""
            SELECT bu.BrowserName0 AS browser, SUM(bu.UsagePercentage0) AS usage
            FROM v_GS_BROWSER_USAGE bu
            GROUP BY bu.BrowserName0
        """,
    ),
    _empty("browser", "usage"),
)

DEFAULT_BROWSER = descriptor(
    q.DEFAULT_BROWSER,
    "edge",
    "default browser",
    QueryVariant(
        name="default_browser_inventory",
        optional=True,
        sql="""
            SELECT db.BrowserProgramId0 AS browser, COUNT(*) AS count
            FROM v_GS_DEFAULT_BROWSER db
            GROUP BY db.BrowserProgramId0
        """,
    ),
    _empty("browser", "count"),
)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

SITE_INFO = descriptor(
    q.SITE_INFO,
    "environment",
    "site identity",
    QueryVariant(
        name="primary_site",
        sql="""
            SELECT TOP 1 s.SiteCode AS site_code, s.SiteName AS site_name, s.Version AS version
            FROM v_Site s
            WHERE s.Type = 2
            ORDER BY s.SiteCode
        """,
    ),
    _empty("site_code", "site_name", "version"),
)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

QUERY_CATALOG: dict[str, tuple[SourceQueryDescriptor, ...]] = {
    "clients": (CLIENT_SUMMARY, CLIENT_ACTIVITY, CLIENT_REMEDIATION, CLIENT_OS, CLIENT_ISSUES),
    "content": (
        DP_STATUS,
        PACKAGE_SUMMARY,
        CONTENT_TYPES,
        DISTRIBUTION_STATUS,
        DP_GROUPS,
        FAILED_PACKAGES,
    ),
    "compliance": (
        COMPLIANCE_SUMMARY,
        SCAN_STATUS,
        MISSING_BY_SEVERITY,
        TOP_MISSING_UPDATES,
        COMPLIANCE_BY_COLLECTION,
    ),
    "deployments": (DEPLOYMENT_SUMMARY, PENDING_RESTARTS, ERROR_CODES),
    "edge": (EDGE_VERSIONS, BROWSER_DEVICES, BROWSER_USAGE, DEFAULT_BROWSER),
    "environment": (SITE_INFO,),
}


def all_descriptors() -> list[SourceQueryDescriptor]:
    return [d for group in QUERY_CATALOG.values() for d in group]

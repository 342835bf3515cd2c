"""CollectHealthSnapshotUseCase — one full collection run.

Business rules for a run:
  1. Evaluate each domain's descriptors through the SourceAdapter
  2. Normalize the outcomes into the domain record
  3. Attach the synthesized trend series
  4. Score the five domains and derive the overall score and risk tier
  5. Evaluate the finding rules across all records
  6. Assemble the HealthSnapshot and hand the document to the store

Domains run one after another and are isolated from each other: an
unexpected error inside one pipeline degrades that record to its
defaults and the run carries on.  Only the store may fail the run.

The use case depends ONLY on domain ports — never on SQLAlchemy,
pydantic, or the filesystem.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any, TypeVar

from mecm_health.domain.health.adapter import DEFAULT_TIMEOUT_SECONDS, SourceAdapter
from mecm_health.domain.health.findings import FindingInputs, generate_findings
from mecm_health.domain.health.models import (
    ClientHealth,
    CollectionStatus,
    ContentDistribution,
    EdgeManagement,
    Environment,
    HealthSnapshot,
    SecurityOverview,
    SoftwareUpdateCompliance,
    SoftwareUpdateDeployment,
)
from mecm_health.domain.health.normalize import (
    normalize_client_health,
    normalize_content_distribution,
    normalize_edge_management,
    normalize_environment,
    normalize_update_compliance,
    normalize_update_deployment,
)
from mecm_health.domain.health.ports import QueryExecutor, SnapshotStore
from mecm_health.domain.health.queries import QueryOutcome, SourceQueryDescriptor
from mecm_health.domain.health.scoring import domain_scores, overall_health_score, risk_tier
from mecm_health.domain.health.trends import (
    CLIENT_HEALTH_OFFSETS,
    COMPLIANCE_OFFSETS,
    synthesize_count_trend,
    synthesize_trend,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

QueryCatalog = Mapping[str, Sequence[SourceQueryDescriptor]]
Outcomes = Mapping[str, QueryOutcome]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def collection_status(outcomes: Outcomes) -> CollectionStatus:
    """ok when every descriptor answered, degraded when none did."""
    if not outcomes:
        return CollectionStatus.DEGRADED
    answered = sum(1 for o in outcomes.values() if o.is_ok)
    if answered == len(outcomes):
        return CollectionStatus.OK
    if answered == 0:
        return CollectionStatus.DEGRADED
    return CollectionStatus.PARTIAL


# ── Command (input) ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class CollectHealthSnapshotCommand:
    """Immutable description of the run to perform."""

    sql_server: str
    database: str
    collector_version: str = ""
    trend_seed: int | None = None


# ── Result (output) ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class CollectHealthSnapshotResult:
    """What the use case returns to the caller."""

    location: str
    snapshot: HealthSnapshot
    domain_status: dict[str, CollectionStatus] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()


# ── Use Case ─────────────────────────────────────────────────────────────


class CollectHealthSnapshotUseCase:
    """Collect → normalize → trend → score → findings → persist.

    ``render`` turns the HealthSnapshot into the JSON-ready document the
    store persists; it is injected so this layer stays free of the
    schema library.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        store: SnapshotStore,
        catalog: QueryCatalog,
        render: Callable[[HealthSnapshot], Mapping[str, Any]],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._executor = executor
        self._store = store
        self._catalog = catalog
        self._render = render
        self._timeout = timeout_seconds
        self._clock = clock

    def execute(self, cmd: CollectHealthSnapshotCommand) -> CollectHealthSnapshotResult:
        now = self._clock()
        today = now.date()
        as_of = now.astimezone(timezone.utc).replace(tzinfo=None) if now.tzinfo else now
        rng = random.Random(cmd.trend_seed)
        adapter = SourceAdapter(self._executor, self._timeout)
        statuses: dict[str, CollectionStatus] = {}

        logger.info("Collecting health snapshot from %s/%s", cmd.sql_server, cmd.database)

        # ── Per-domain pipelines ──────────────────────────────────
        # Trends attach outside the fallback: defaulted records get a
        # series too.
        clients = self._with_client_trend(
            self._collect(
                "clients", adapter, statuses, ClientHealth(), normalize_client_health
            ),
            today,
            rng,
        )
        content = self._with_distribution_trend(
            self._collect(
                "content", adapter, statuses, ContentDistribution(),
                normalize_content_distribution,
            ),
            today,
            rng,
        )
        compliance = self._with_compliance_trend(
            self._collect(
                "compliance", adapter, statuses, SoftwareUpdateCompliance(),
                normalize_update_compliance,
            ),
            today,
            rng,
        )
        deployment = self._collect(
            "deployments", adapter, statuses, SoftwareUpdateDeployment(),
            lambda o: normalize_update_deployment(o, as_of),
        )
        edge = self._collect(
            "edge", adapter, statuses, EdgeManagement(),
            normalize_edge_management,
        )
        environment = self._collect(
            "environment", adapter, statuses,
            Environment(
                sql_server=cmd.sql_server,
                database=cmd.database,
                collector_version=cmd.collector_version,
            ),
            lambda o: normalize_environment(
                o,
                sql_server=cmd.sql_server,
                database=cmd.database,
                collector_version=cmd.collector_version,
            ),
        )

        # ── Score & findings ──────────────────────────────────────
        scores = domain_scores(clients, content, compliance, deployment, edge)
        overall = overall_health_score([s.score for s in scores])
        findings = generate_findings(
            FindingInputs(
                clients=clients,
                content=content,
                compliance=compliance,
                deployment=deployment,
            )
        )
        risk = risk_tier(overall)
        logger.info(
            "Overall health score %d (%s risk), %d finding(s)",
            overall,
            risk.value,
            len(findings),
        )

        snapshot = HealthSnapshot(
            last_refresh=now,
            environment=environment,
            client_health=clients,
            content_distribution=content,
            software_update_compliance=compliance,
            software_update_deployment=deployment,
            edge_management=edge,
            security_overview=SecurityOverview(
                overall_health_score=overall,
                risk_level=risk,
                domain_scores=scores,
                critical_findings=findings,
            ),
        )

        # ── Persist ───────────────────────────────────────────────
        location = self._store.save(self._render(snapshot))

        return CollectHealthSnapshotResult(
            location=location,
            snapshot=snapshot,
            domain_status=statuses,
            warnings=adapter.warnings,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _collect(
        self,
        domain: str,
        adapter: SourceAdapter,
        statuses: dict[str, CollectionStatus],
        default: T,
        build: Callable[[Outcomes], T],
    ) -> T:
        """Run one domain pipeline; any failure yields *default*."""
        try:
            outcomes = adapter.fetch_all(self._catalog.get(domain, ()))
            record = build(outcomes)
        except Exception:
            logger.exception("%s: collection failed, using defaults", domain)
            statuses[domain] = CollectionStatus.DEGRADED
            return default

        status = collection_status(outcomes)
        statuses[domain] = status
        if status == CollectionStatus.OK:
            logger.info("%s: collected (%d queries)", domain, len(outcomes))
        else:
            unavailable = sorted(k for k, o in outcomes.items() if not o.is_ok)
            logger.info(
                "%s: %s, unavailable: %s",
                domain,
                status.value,
                ", ".join(unavailable) or "-",
            )
        return record

    @staticmethod
    def _with_client_trend(
        record: ClientHealth, today: date, rng: random.Random
    ) -> ClientHealth:
        return replace(
            record,
            health_trend=synthesize_trend(
                record.client_health_percent, today, CLIENT_HEALTH_OFFSETS, rng
            ),
        )

    @staticmethod
    def _with_compliance_trend(
        record: SoftwareUpdateCompliance, today: date, rng: random.Random
    ) -> SoftwareUpdateCompliance:
        return replace(
            record,
            compliance_trend=synthesize_trend(
                record.compliance_percent, today, COMPLIANCE_OFFSETS, rng
            ),
        )

    @staticmethod
    def _with_distribution_trend(
        record: ContentDistribution, today: date, rng: random.Random
    ) -> ContentDistribution:
        return replace(
            record,
            distribution_trend=synthesize_count_trend(
                record.distributed_success,
                record.distributed_failed,
                record.distributed_in_progress,
                today,
                rng,
            ),
        )

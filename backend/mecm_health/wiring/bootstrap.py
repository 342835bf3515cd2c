"""Dependency bootstrap — the single place that binds ports to adapters.

The CLI and the probe script never construct infrastructure directly;
they ask these factories for ready-wired use cases.

Example::

    from mecm_health.wiring.bootstrap import build_collect_use_case

    use_case = build_collect_use_case(settings)
    result = use_case.execute(CollectHealthSnapshotCommand(...))
"""

from __future__ import annotations

from pathlib import Path

from mecm_health.config import Settings
from mecm_health.database import create_source_engine
from mecm_health.domain.health.ports import QueryExecutor, SnapshotStore
from mecm_health.infra.snapshot.file_store import FileSnapshotStore
from mecm_health.infra.source.catalog import QUERY_CATALOG
from mecm_health.infra.source.sql_executor import SqlQueryExecutor
from mecm_health.schemas.snapshot import snapshot_document
from mecm_health.use_cases.health import (
    CollectHealthSnapshotUseCase,
    PublishSampleSnapshotUseCase,
)


# ── Ports ────────────────────────────────────────────────────────────────


def get_query_executor(settings: Settings) -> QueryExecutor:
    """SQLAlchemy executor on a fresh engine for the configured source."""
    return SqlQueryExecutor(create_source_engine(settings))


def get_snapshot_store(output_path: Path | str) -> SnapshotStore:
    return FileSnapshotStore(output_path)


# ── Use cases ────────────────────────────────────────────────────────────


def build_collect_use_case(
    settings: Settings,
    executor: QueryExecutor | None = None,
    store: SnapshotStore | None = None,
) -> CollectHealthSnapshotUseCase:
    """Wire the collection run; *executor* and *store* override the defaults."""
    return CollectHealthSnapshotUseCase(
        executor=executor or get_query_executor(settings),
        store=store or get_snapshot_store(settings.output_path),
        catalog=QUERY_CATALOG,
        render=snapshot_document,
        timeout_seconds=settings.query_timeout_seconds,
    )


def build_publish_sample_use_case(
    settings: Settings,
    store: SnapshotStore | None = None,
) -> PublishSampleSnapshotUseCase:
    return PublishSampleSnapshotUseCase(store or get_snapshot_store(settings.output_path))

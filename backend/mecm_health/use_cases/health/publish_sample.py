"""PublishSampleSnapshotUseCase — publish the canned snapshot.

Used when no management database is reachable (demos, dashboard
development).  The data source is never touched; the packaged document
goes through the same atomic store as a collected one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mecm_health.domain.health.ports import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishSampleSnapshotResult:
    location: str
    sample_location: str


class PublishSampleSnapshotUseCase:
    def __init__(self, store: SnapshotStore) -> None:
        self._store = store

    def execute(self, sample_location: str) -> PublishSampleSnapshotResult:
        logger.info("Sample mode: publishing %s", sample_location)
        location = self._store.copy_sample(sample_location)
        return PublishSampleSnapshotResult(
            location=location, sample_location=sample_location
        )

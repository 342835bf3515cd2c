"""Health snapshot use cases."""

from .collect_snapshot import (  # noqa: F401
    CollectHealthSnapshotCommand,
    CollectHealthSnapshotResult,
    CollectHealthSnapshotUseCase,
)
from .publish_sample import (  # noqa: F401
    PublishSampleSnapshotResult,
    PublishSampleSnapshotUseCase,
)

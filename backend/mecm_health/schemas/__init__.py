"""Pydantic models of the published snapshot document."""
from .snapshot import HealthSnapshotDocument, snapshot_document

__all__ = [
    "HealthSnapshotDocument",
    "snapshot_document",
]

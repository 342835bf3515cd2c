"""Atomic JSON file implementation of the SnapshotStore port.

The document is written to a temp file in the target directory, flushed
and fsynced, then moved over the target with ``os.replace``.  Readers of
the target path therefore see either the previous document or the new
one, never a partial write.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from mecm_health.domain.common.errors import SnapshotWriteError
from mecm_health.domain.health.ports import SnapshotStore

logger = logging.getLogger(__name__)


class FileSnapshotStore(SnapshotStore):
    """Persist snapshots to a single JSON file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def save(self, document: Mapping[str, Any]) -> str:
        try:
            payload = json.dumps(document, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise SnapshotWriteError(self._path, f"document is not serializable: {exc}") from exc
        self._write_atomic(payload.encode("utf-8"))
        logger.info("Snapshot written to %s", self._path)
        return str(self._path)

    def copy_sample(self, sample_location: str) -> str:
        source = Path(sample_location)
        try:
            data = source.read_bytes()
            json.loads(data)
        except OSError as exc:
            raise SnapshotWriteError(self._path, f"cannot read sample {source}: {exc}") from exc
        except ValueError as exc:
            raise SnapshotWriteError(self._path, f"sample {source} is not valid JSON: {exc}") from exc
        self._write_atomic(data)
        logger.info("Sample snapshot %s copied to %s", source, self._path)
        return str(self._path)

    def _write_atomic(self, data: bytes) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SnapshotWriteError(self._path, f"cannot create {directory}: {exc}") from exc

        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
            )
        except OSError as exc:
            raise SnapshotWriteError(self._path, str(exc)) from exc

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
        except OSError as exc:
            _discard(tmp_path)
            raise SnapshotWriteError(self._path, str(exc)) from exc


def _discard(tmp_path: str) -> None:
    try:
        os.unlink(tmp_path)
    except FileNotFoundError:
        pass
    except OSError:
        logger.warning("Could not remove temp file %s", tmp_path)

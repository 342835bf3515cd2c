"""First-success evaluation of query descriptors.

The adapter walks a descriptor's variants in order and returns the first
result set that executes without error.  Zero rows is a success; a
placeholder variant executing is not.  Only ``SourceError`` is treated
as a failed attempt; when every variant fails, or only the placeholder
answers, the adapter returns an UNAVAILABLE outcome and records a non-fatal
warning naming the feature that was skipped.  Nothing propagates past
the owning domain.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..common.errors import SourceError
from .ports import QueryExecutor
from .queries import QueryOutcome, SourceQueryDescriptor

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120.0


class SourceAdapter:
    """Evaluate descriptors against a QueryExecutor."""

    def __init__(
        self,
        executor: QueryExecutor,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._executor = executor
        self._timeout = timeout_seconds
        self._warnings: list[str] = []

    @property
    def warnings(self) -> tuple[str, ...]:
        """Warnings recorded for fully unavailable descriptors, in order."""
        return tuple(self._warnings)

    def fetch(self, desc: SourceQueryDescriptor) -> QueryOutcome:
        errors: list[str] = []
        for variant in desc.variants:
            logger.debug("%s: trying variant %s", desc.key, variant.name)
            try:
                rows = self._executor.execute(variant.sql, self._timeout)
            except SourceError as exc:
                errors.append(f"{variant.name}: {exc}")
                logger.debug("%s: variant %s failed: %s", desc.key, variant.name, exc)
                continue

            if variant.placeholder:
                logger.debug("%s: only placeholder %s answered", desc.key, variant.name)
                break

            if errors:
                logger.info(
                    "%s: using fallback variant %s after %d failed attempt(s)",
                    desc.key,
                    variant.name,
                    len(errors),
                )
            return QueryOutcome.ok(desc.key, variant.name, rows, errors)

        warning = f"{desc.domain}: {desc.description} skipped ({len(errors)} variant(s) failed)"
        self._warnings.append(warning)
        logger.warning(warning)
        return QueryOutcome.unavailable(desc.key, errors)

    def fetch_all(
        self, descriptors: Iterable[SourceQueryDescriptor]
    ) -> dict[str, QueryOutcome]:
        """Evaluate several descriptors; keyed by descriptor key."""
        return {d.key: self.fetch(d) for d in descriptors}


__all__ = ["DEFAULT_TIMEOUT_SECONDS", "SourceAdapter"]

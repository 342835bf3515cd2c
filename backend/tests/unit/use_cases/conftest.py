"""Fixtures for health snapshot use case tests."""

from __future__ import annotations

import pytest

from health_fakes import HEALTHY_SITE, FakeQueryExecutor, InMemorySnapshotStore


@pytest.fixture
def store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def healthy_executor() -> FakeQueryExecutor:
    return FakeQueryExecutor(HEALTHY_SITE)

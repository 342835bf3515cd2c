"""Fixtures for infra tests: real SQLAlchemy engines on SQLite."""

import pytest
from sqlalchemy import create_engine, text


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite engine with a tiny v_R_System-like table."""
    engine = create_engine("sqlite://")
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE v_R_System (ResourceID INTEGER, Name0 TEXT, Client0 INTEGER, Active0 INTEGER)"
        ))
        conn.execute(text(
            "INSERT INTO v_R_System VALUES "
            "(1, 'WS001', 1, 1), (2, 'WS002', 1, 1), (3, 'WS003', 1, 0), (4, 'SRV01', 0, 0)"
        ))
    yield engine
    engine.dispose()

"""
Shared pytest fixtures for backend tests.

Provides common record factories and test configuration.
"""
import sys
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))


@pytest.fixture
def today():
    """Fixed collection date used by trend and deadline tests."""
    return date(2026, 10, 19)


@pytest.fixture
def fixed_now():
    """Fixed UTC collection time (06:00 on ``today``)."""
    return datetime(2026, 10, 19, 6, 0, 0, tzinfo=timezone.utc)

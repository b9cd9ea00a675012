"""Global test configuration and shared fixtures."""

from __future__ import annotations

import pytest

from call_mox.failures import FailureCollector

pytest_plugins = ("call_mox.pytest_plugin", "pytester")


@pytest.fixture
def failures() -> FailureCollector:
    """Return a failure sink capturing reported failures."""
    return FailureCollector()

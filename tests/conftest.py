"""Pytest configuration and shared fixtures for Category Service tests.

This module provides:
- Basic pytest configuration (markers)
- A controllable clock and in-memory stores
- AsyncMock repositories and services wired around them
- Setup/teardown for test isolation
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict
from unittest.mock import MagicMock

import pytest

# Add project root to Python path to allow imports from category_service, storage
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from category_service.cache.store import MemoryStore  # noqa: E402
from category_service.services import build_services  # noqa: E402
from tests.fixtures.entities import make_entity, make_repository  # noqa: E402


# ==================== Pytest Configuration ====================

def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers",
        "asyncio: mark test as async (automatically handled by pytest-asyncio)"
    )
    config.addinivalue_line(
        "markers",
        "unit: mark test as a unit test (fast, isolated)"
    )
    config.addinivalue_line(
        "markers",
        "integration: mark test as an integration test (requires a database)"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (may take several seconds)"
    )


# ==================== Environment Fixtures ====================

@pytest.fixture(scope="function", autouse=True)
def isolate_environment():
    """Restore environment variables changed by a test."""
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ==================== Clock and Store ====================

class FakeClock:
    """Manually advanced clock in seconds, injected into MemoryStore."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> MemoryStore:
    """Unbounded in-memory store on the fake clock."""
    return MemoryStore(clock=clock)


# ==================== Entities and Repositories ====================

@pytest.fixture
def entity() -> Dict[str, Any]:
    return make_entity()


@pytest.fixture
def repositories() -> Dict[str, MagicMock]:
    """One mock repository per family name, filled lazily by services."""
    return {}


@pytest.fixture
def services(store, repositories):
    """Services for every family around the shared fake-clock store."""

    def factory(family):
        repositories[family.name] = make_repository()
        return repositories[family.name]

    return build_services(store, repository_factory=factory)

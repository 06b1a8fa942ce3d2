"""
Shared pytest fixtures and configuration for the content share test suite.

This module provides:
- Hypothesis configuration for property-based testing
- In-memory repositories and a controllable clock
- Markers applied by test directory
"""

import pytest
from hypothesis import HealthCheck, Phase, settings

from tests.fixtures import (
    FakeClock,
    InMemoryBlobStorage,
    InMemoryCleanupStateRepository,
    InMemoryShareRepository,
)

# Register Hypothesis profiles
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.load_profile("default")


# =============================================================================
# In-memory Collaborators
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock fixed at 2024-06-01 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def share_repository() -> InMemoryShareRepository:
    return InMemoryShareRepository()


@pytest.fixture
def state_repository(clock) -> InMemoryCleanupStateRepository:
    return InMemoryCleanupStateRepository(clock=clock)


@pytest.fixture
def blob_storage() -> InMemoryBlobStorage:
    return InMemoryBlobStorage()


# =============================================================================
# Pytest Configuration Hooks
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (require external services)"
    )
    config.addinivalue_line(
        "markers", "contract: Contract tests (verify interface compliance)"
    )


def pytest_collection_modifyitems(config, items):
    """
    Automatically mark tests based on their location.

    - tests/unit/* -> @pytest.mark.unit
    - tests/integration/* -> @pytest.mark.integration
    - tests/contracts/* -> @pytest.mark.contract
    """
    for item in items:
        test_path = str(item.fspath)

        if "/unit/" in test_path or "\\unit\\" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path or "\\integration\\" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/contracts/" in test_path or "\\contracts\\" in test_path:
            item.add_marker(pytest.mark.contract)

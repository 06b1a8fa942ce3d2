"""
Unit tests for DependencyContainer.
"""

import pytest

from contentshare.application.dependency_container import (
    DependencyContainer,
    DependencyNotFoundError,
)
from contentshare.domain.file_sharing import IBlobStorageRepository
from tests.fixtures import InMemoryBlobStorage


class DummyService:
    """Dummy service for testing."""

    def __init__(self, value="default"):
        self.value = value


@pytest.fixture
def container():
    """Create a fresh DependencyContainer for each test."""
    return DependencyContainer()


class TestDependencyContainerResolution:
    """Test service registration and resolution."""

    def test_resolve_singleton(self, container):
        service = DummyService("test")
        container.register_singleton(DummyService, service)

        assert container.resolve(DummyService) is service

    def test_resolve_by_interface(self, container):
        storage = InMemoryBlobStorage()
        container.register_singleton(IBlobStorageRepository, storage)

        assert container.resolve(IBlobStorageRepository) is storage

    def test_resolve_unregistered_raises_error(self, container):
        with pytest.raises(DependencyNotFoundError, match="No registration found"):
            container.resolve(DummyService)

    def test_is_registered(self, container):
        assert container.is_registered(DummyService) is False
        container.register_singleton(DummyService, DummyService())
        assert container.is_registered(DummyService) is True

    def test_register_replaces_previous_singleton(self, container):
        container.register_singleton(DummyService, DummyService("original"))
        container.register_singleton(DummyService, DummyService("replacement"))

        assert container.resolve(DummyService).value == "replacement"

"""
Tests package for the content share backend.

This package contains test suites organized by type:
- unit/: Fast tests with in-memory or mocked collaborators
- integration/: Tests against a real Redis server
- contracts/: Contract tests for repository interfaces
"""

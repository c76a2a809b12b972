"""Pytest configuration for integration tests."""

import pytest
from click.testing import CliRunner
from loguru import logger


# Mark all tests in this directory as integration tests
def pytest_collection_modifyitems(items):
    """Add integration marker to all tests in this directory."""
    for item in items:
        if "integration_tests" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def runner():
    """CLI runner; drops loguru sinks bound to the runner's streams afterwards."""
    yield CliRunner()
    logger.remove()


@pytest.fixture
def data_dir(tmp_path):
    """Isolated data directory for one CLI session."""
    return tmp_path / "trainer-data"

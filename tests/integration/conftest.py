"""Pytest configuration for integration tests.

Everything under this directory runs whole loops against scripted
sessions and is marked as an integration test.
"""

import pytest

from ralphloop.core.config import clear_config_cache


def pytest_collection_modifyitems(items):
    """Mark all loop runs in the integration directory as integration tests."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run each test from an empty directory so load_config() only sees files the test writes."""
    monkeypatch.chdir(tmp_path)
    clear_config_cache()
    yield tmp_path
    clear_config_cache()

"""Test configuration and fixtures."""

import os

import pytest

from tests.helpers import FakeSession


@pytest.fixture
def fake_session():
    """Empty fake registry session; tests add routes."""
    return FakeSession()


@pytest.fixture
def out_dir(tmp_path):
    path = tmp_path / "bin"
    path.mkdir()
    return path


@pytest.fixture
def temp_dir(tmp_path):
    return tmp_path / "staging"


# Pytest configuration
def pytest_configure(config):
    """Configure pytest markers and settings."""
    config.addinivalue_line("markers", "posix: needs /bin/sh and POSIX permissions")


def pytest_collection_modifyitems(config, items):
    """Skip tests that run shell scripts when there is no POSIX shell."""
    skip_posix = pytest.mark.skip(reason="requires a POSIX shell")
    for item in items:
        if "posix" in item.keywords and (os.name == "nt" or not os.path.exists("/bin/sh")):
            item.add_marker(skip_posix)

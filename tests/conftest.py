"""Shared fixtures."""

import pytest


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run the test from inside tmp_path so normalized paths stay short."""
    monkeypatch.chdir(tmp_path)
    return tmp_path

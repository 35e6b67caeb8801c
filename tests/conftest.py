"""Pytest configuration for all tests."""

import pytest


@pytest.fixture(autouse=True)
def _clear_action_env(monkeypatch):
    """Keep runner variables of the host from leaking into settings."""
    for name in ("GITHUB_OUTPUT", "GITHUB_ENV", "GITHUB_EVENT_PATH", "RUNNER_TEMP"):
        monkeypatch.delenv(name, raising=False)

"""Pytest configuration for all tests."""

import os

import pytest


REQUIRED_ENV = {
    "REPOBOT_GITHUB_TOKEN": "ghp_testtoken1234",
    "REPOBOT_GITHUB_OWNER": "acme",
    "REPOBOT_BLOG_REPO": "website-repo",
    "REPOBOT_GITHUB_WEBHOOK_SECRET": "shhh-secret",
    "REPOBOT_LLM_API_KEY": "sk-test-key",
}


@pytest.fixture(autouse=True)
def clean_repobot_env(monkeypatch):
    """Start every test without REPOBOT_* variables from the outer shell."""
    for name in list(os.environ):
        if name.startswith("REPOBOT_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def repobot_env(monkeypatch):
    """Set the minimum environment for BotSettings."""
    for name, value in REQUIRED_ENV.items():
        monkeypatch.setenv(name, value)
    return dict(REQUIRED_ENV)

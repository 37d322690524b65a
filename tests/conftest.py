"""Shared pytest fixtures and test-run configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from pr_rules_reviewer.config import (
    ANTHROPIC_API_KEY_ENV_VAR,
    GITHUB_REPOSITORY_ENV_VAR,
    GITHUB_TOKEN_ENV_VARS,
    MAX_TOKENS_ENV_VAR,
    MODEL_ENV_VAR,
    PR_NUMBER_ENV_VAR,
    RULES_PATH_ENV_VAR,
    TIMEOUT_ENV_VAR,
)
from pr_rules_reviewer.reviewer import ReviewerError
from pr_rules_reviewer.schema import ReviewerResponse

REVIEW_ENV_VARS = (
    ANTHROPIC_API_KEY_ENV_VAR,
    *GITHUB_TOKEN_ENV_VARS,
    GITHUB_REPOSITORY_ENV_VAR,
    PR_NUMBER_ENV_VAR,
    RULES_PATH_ENV_VAR,
    MODEL_ENV_VAR,
    MAX_TOKENS_ENV_VAR,
    TIMEOUT_ENV_VAR,
)


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add custom pytest options for integration test execution."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests marked as integration (external dependencies).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly enabled."""
    run_integration = config.getoption("--run-integration")
    env_enabled = os.getenv("RUN_INTEGRATION_TESTS") == "1"
    if run_integration or env_enabled:
        return

    skip_marker = pytest.mark.skip(
        reason=(
            "Integration tests are disabled by default. "
            "Use --run-integration or set RUN_INTEGRATION_TESTS=1."
        )
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_marker)


@dataclass
class FakeReviewer:
    """ReviewerBackend test double that records every prompt it receives."""

    response: ReviewerResponse = field(default_factory=ReviewerResponse)
    error: ReviewerError | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    def complete(self, *, model: str, max_tokens: int, prompt: str) -> ReviewerResponse:
        self.calls.append({"model": model, "max_tokens": max_tokens, "prompt": prompt})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_reviewer_cls() -> type[FakeReviewer]:
    return FakeReviewer


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Clear review settings from the environment and run from an empty directory.

    Each variable is set before being deleted so monkeypatch also removes
    values that a test loads from a `.env` file.
    """
    for name in REVIEW_ENV_VARS:
        monkeypatch.setenv(name, "unset")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path

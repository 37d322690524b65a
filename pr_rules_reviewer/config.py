"""Run settings loaded from the process environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from pr_rules_reviewer.github_client import (
    GitHubInputError,
    parse_repo_full_name,
    validate_pr_number,
)
from pr_rules_reviewer.reviewer import DEFAULT_MAX_OUTPUT_TOKENS, DEFAULT_REVIEW_MODEL
from pr_rules_reviewer.rules import DEFAULT_RULES_PATH

ANTHROPIC_API_KEY_ENV_VAR = "ANTHROPIC_API_KEY"
GITHUB_TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")
GITHUB_REPOSITORY_ENV_VAR = "GITHUB_REPOSITORY"
PR_NUMBER_ENV_VAR = "PR_NUMBER"
RULES_PATH_ENV_VAR = "REVIEW_RULES_PATH"
MODEL_ENV_VAR = "REVIEW_MODEL"
MAX_TOKENS_ENV_VAR = "REVIEW_MAX_TOKENS"
TIMEOUT_ENV_VAR = "REVIEW_TIMEOUT_SECONDS"
DEFAULT_TIMEOUT_SECONDS = 60.0


class ConfigurationError(ValueError):
    """Raised when required run settings are missing or malformed."""


@dataclass(frozen=True, slots=True)
class ReviewSettings:
    """Everything one review run needs before touching the network."""

    anthropic_api_key: str
    github_token: str
    repo_full_name: str
    pr_number: int
    rules_path: str = DEFAULT_RULES_PATH
    model: str = DEFAULT_REVIEW_MODEL
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __repr__(self) -> str:
        return (
            f"ReviewSettings(repo_full_name={self.repo_full_name!r}, "
            f"pr_number={self.pr_number}, rules_path={self.rules_path!r}, "
            f"model={self.model!r})"
        )


def get_github_token_with_source(environ: Mapping[str, str]) -> tuple[str, str] | None:
    """Return the GitHub token and the variable it came from, preferring GITHUB_TOKEN."""
    for name in GITHUB_TOKEN_ENV_VARS:
        value = environ.get(name)
        if value:
            return value, name
    return None


def _parse_int(value: str, *, name: str) -> int:
    try:
        return int(value.strip())
    except ValueError as error:
        raise ConfigurationError(f"{name} must be an integer, got '{value}'.") from error


def _parse_positive_float(value: str, *, name: str) -> float:
    try:
        parsed = float(value.strip())
    except ValueError as error:
        raise ConfigurationError(f"{name} must be a number, got '{value}'.") from error
    if parsed <= 0:
        raise ConfigurationError(f"{name} must be positive, got '{value}'.")
    return parsed


def load_review_settings(
    *,
    repo_full_name: str | None = None,
    pr_number: int | None = None,
    rules_path: str | None = None,
    model: str | None = None,
    environ: Mapping[str, str] | None = None,
    load_env_file: bool = True,
) -> ReviewSettings:
    """Build run settings from explicit overrides, then the environment.

    A `.env` file in the working directory is loaded first without overriding
    variables already set. Every missing required variable is reported in one
    error so a misconfigured CI job fails with the full list.
    """
    if load_env_file:
        load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    env = os.environ if environ is None else environ

    missing: list[str] = []
    api_key = env.get(ANTHROPIC_API_KEY_ENV_VAR, "")
    if not api_key:
        missing.append(ANTHROPIC_API_KEY_ENV_VAR)

    token_with_source = get_github_token_with_source(env)
    if token_with_source is None:
        missing.append(" or ".join(GITHUB_TOKEN_ENV_VARS))

    repo_value = repo_full_name or env.get(GITHUB_REPOSITORY_ENV_VAR, "")
    if not repo_value:
        missing.append(GITHUB_REPOSITORY_ENV_VAR)

    pr_value: int | None = pr_number
    raw_pr_value = env.get(PR_NUMBER_ENV_VAR, "")
    if pr_value is None and not raw_pr_value:
        missing.append(PR_NUMBER_ENV_VAR)

    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    if pr_value is None:
        pr_value = _parse_int(raw_pr_value, name=PR_NUMBER_ENV_VAR)

    try:
        parse_repo_full_name(repo_value)
        validate_pr_number(pr_value)
    except GitHubInputError as error:
        raise ConfigurationError(str(error)) from error

    max_tokens = DEFAULT_MAX_OUTPUT_TOKENS
    raw_max_tokens = env.get(MAX_TOKENS_ENV_VAR)
    if raw_max_tokens:
        max_tokens = _parse_int(raw_max_tokens, name=MAX_TOKENS_ENV_VAR)
        if max_tokens <= 0:
            raise ConfigurationError(f"{MAX_TOKENS_ENV_VAR} must be positive, got '{raw_max_tokens}'.")

    timeout_seconds = DEFAULT_TIMEOUT_SECONDS
    raw_timeout = env.get(TIMEOUT_ENV_VAR)
    if raw_timeout:
        timeout_seconds = _parse_positive_float(raw_timeout, name=TIMEOUT_ENV_VAR)

    return ReviewSettings(
        anthropic_api_key=api_key,
        github_token=token_with_source[0] if token_with_source else "",
        repo_full_name=repo_value.strip(),
        pr_number=pr_value,
        rules_path=rules_path or env.get(RULES_PATH_ENV_VAR) or DEFAULT_RULES_PATH,
        model=model or env.get(MODEL_ENV_VAR) or DEFAULT_REVIEW_MODEL,
        max_output_tokens=max_tokens,
        timeout_seconds=timeout_seconds,
    )

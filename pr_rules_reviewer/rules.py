"""Review rule resolution with a built-in fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from pr_rules_reviewer.github_client import (
    GitHubApiError,
    GitHubInputError,
    fetch_repository_file,
)
from pr_rules_reviewer.schema import RulesSource

DEFAULT_RULES_PATH = ".github/copilot-instructions.yml"
FALLBACK_RULES = "\n".join(
    [
        "- Check for code quality issues",
        "- Look for potential bugs",
        "- Suggest improvements",
    ]
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedRules:
    """Rules text handed to the prompt builder; `text` is never empty."""

    text: str
    source: RulesSource
    path: str
    warning: str | None = None


def _fallback(path: str, reason: str) -> ResolvedRules:
    return ResolvedRules(
        text=FALLBACK_RULES,
        source=RulesSource.FALLBACK,
        path=path,
        warning=f"Could not read {path}: {reason}. Using default review rules.",
    )


def resolve_review_rules(
    *,
    client: httpx.Client,
    repo_full_name: str,
    rules_path: str = DEFAULT_RULES_PATH,
) -> ResolvedRules:
    """Read the rules file from the default branch, or fall back to the built-in rules.

    Failing to read rules never aborts a review. Missing files, undecodable
    content, blank files, unusable paths and transport errors all resolve to
    FALLBACK_RULES with a warning for the caller to surface.
    """
    try:
        rules_file = fetch_repository_file(
            client=client,
            repo_full_name=repo_full_name,
            path=rules_path,
        )
    except GitHubApiError as error:
        return _fallback(rules_path, f"GitHub API error (status {error.status_code})")
    except GitHubInputError as error:
        return _fallback(rules_path, str(error).rstrip("."))
    except httpx.HTTPError as error:
        return _fallback(rules_path, f"network error ({error})")

    if not rules_file.exists:
        return _fallback(rules_path, "file not found")
    if rules_file.text is None:
        return _fallback(rules_path, rules_file.warning or "content could not be decoded")
    if not rules_file.text.strip():
        return _fallback(rules_path, "file is empty")

    logger.debug("Loaded %d characters of review rules from %s", len(rules_file.text), rules_path)
    return ResolvedRules(
        text=rules_file.text,
        source=RulesSource.REPOSITORY,
        path=rules_path,
    )

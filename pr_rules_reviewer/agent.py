"""Review orchestration entrypoints."""

from __future__ import annotations

import logging

import httpx

from pr_rules_reviewer.diff import aggregate_pull_request_diff
from pr_rules_reviewer.observability import RunTelemetry
from pr_rules_reviewer.output import publish_review_comment
from pr_rules_reviewer.prompt import build_review_prompt
from pr_rules_reviewer.reviewer import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_REVIEW_MODEL,
    ReviewerBackend,
    request_review,
)
from pr_rules_reviewer.rules import DEFAULT_RULES_PATH, resolve_review_rules
from pr_rules_reviewer.schema import PipelineOutcome, PipelineStatus

logger = logging.getLogger(__name__)


def review_pull_request(
    *,
    github: httpx.Client,
    reviewer: ReviewerBackend,
    repo_full_name: str,
    pr_number: int,
    rules_path: str = DEFAULT_RULES_PATH,
    model: str = DEFAULT_REVIEW_MODEL,
    max_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    publish: bool = True,
    telemetry: RunTelemetry | None = None,
) -> PipelineOutcome:
    """Run one pull request review end to end.

    Stages run strictly in order: aggregate diff, resolve rules, build prompt,
    request review, publish comment. An empty diff ends the run with
    `PipelineStatus.NO_CHANGES` before any rules lookup or reviewer call.
    Transport and reviewer errors propagate to the caller; only the rules
    lookup degrades to a fallback.
    """
    run = telemetry
    if run is None:
        run = RunTelemetry(repository=repo_full_name, pr_number=pr_number)
    warnings: list[str] = []

    diff = aggregate_pull_request_diff(
        client=github,
        repo_full_name=repo_full_name,
        pr_number=pr_number,
    )
    run.files_listed = len(diff.files)
    run.files_with_patch = len(diff.files) - len(diff.skipped_paths)
    if diff.skipped_paths:
        logger.info(
            "Skipping %d file(s) without a text patch: %s",
            len(diff.skipped_paths),
            ", ".join(diff.skipped_paths),
        )
    if diff.is_empty:
        logger.info("No changes found in %s#%d; skipping review", repo_full_name, pr_number)
        return PipelineOutcome(status=PipelineStatus.NO_CHANGES)

    rules = resolve_review_rules(
        client=github,
        repo_full_name=repo_full_name,
        rules_path=rules_path,
    )
    run.rules_source = rules.source.value
    if rules.warning:
        logger.warning(rules.warning)
        warnings.append(rules.warning)

    prompt = build_review_prompt(rules.text, diff.document)
    review = request_review(prompt, backend=reviewer, model=model, max_tokens=max_tokens)
    run.review_chars = len(review.text)
    if not review.text:
        logger.warning("Reviewer returned no text content")

    comment = None
    if publish:
        comment = publish_review_comment(
            client=github,
            repo_full_name=repo_full_name,
            pr_number=pr_number,
            review=review,
        )
        run.comment_url = comment.html_url
        logger.info("Posted review comment %s", comment.html_url)

    run.warnings.extend(warnings)
    return PipelineOutcome(
        status=PipelineStatus.COMPLETED,
        review=review,
        comment=comment,
        rules_source=rules.source,
        warnings=warnings,
    )

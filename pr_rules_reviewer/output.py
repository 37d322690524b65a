"""GitHub comment rendering and publication."""

from __future__ import annotations

import httpx

from pr_rules_reviewer.github_client import PublishedComment, create_issue_comment
from pr_rules_reviewer.schema import ReviewResult

COMMENT_HEADING = "## 🤖 AI Code Review"
COMMENT_FOOTER = "*Powered by Claude via Anthropic SDK*"


def render_review_comment(review_text: str) -> str:
    """Wrap review text in the heading, horizontal rule and attribution footer."""
    return f"{COMMENT_HEADING}\n\n{review_text}\n\n---\n{COMMENT_FOOTER}"


def publish_review_comment(
    *,
    client: httpx.Client,
    repo_full_name: str,
    pr_number: int,
    review: ReviewResult,
) -> PublishedComment:
    """Post the review as a new PR comment; earlier comments are never touched."""
    return create_issue_comment(
        client=client,
        repo_full_name=repo_full_name,
        pr_number=pr_number,
        body=render_review_comment(review.text),
    )

"""Language-model reviewer client and response extraction."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol

import anthropic

from pr_rules_reviewer.schema import (
    ContentBlock,
    NonTextBlock,
    ReviewerResponse,
    ReviewResult,
    ReviewStatus,
    TextBlock,
)

DEFAULT_REVIEW_MODEL = "claude-haiku-4-5"
DEFAULT_MAX_OUTPUT_TOKENS = 4096
TRUNCATED_STOP_REASON = "max_tokens"

logger = logging.getLogger(__name__)


class ReviewerError(RuntimeError):
    """Raised when the reviewer call fails (network, auth, quota, ...)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ReviewerBackend(Protocol):
    """Completion endpoint used to obtain a review."""

    def complete(self, *, model: str, max_tokens: int, prompt: str) -> ReviewerResponse:
        """Send one user message and return the ordered content blocks."""


def to_content_block(block: Any) -> ContentBlock:
    """Map one SDK content block onto the text / non-text variant."""
    if block.type == "text":
        return TextBlock(text=block.text)
    return NonTextBlock(type=block.type)


class AnthropicReviewer:
    """ReviewerBackend backed by the Anthropic Messages API."""

    def __init__(self, client: anthropic.Anthropic) -> None:
        self._client = client

    def complete(self, *, model: str, max_tokens: int, prompt: str) -> ReviewerResponse:
        try:
            message = self._client.messages.create(
                model=model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIStatusError as error:
            raise ReviewerError(
                f"Reviewer request failed with status {error.status_code}: {error.message}",
                status_code=error.status_code,
            ) from error
        except anthropic.APIError as error:
            raise ReviewerError(f"Reviewer request failed: {error}") from error

        return ReviewerResponse(
            blocks=tuple(to_content_block(block) for block in message.content),
            stop_reason=message.stop_reason,
        )


def build_anthropic_reviewer(api_key: str, *, timeout_seconds: float = 60.0) -> AnthropicReviewer:
    """Build a reviewer with SDK retries disabled; failures surface immediately."""
    client = anthropic.Anthropic(
        api_key=api_key,
        max_retries=0,
        timeout=timeout_seconds,
    )
    return AnthropicReviewer(client)


def extract_review_text(blocks: Iterable[ContentBlock]) -> str:
    """Concatenate the text of every text block, in order, ignoring the rest."""
    return "".join(block.text for block in blocks if isinstance(block, TextBlock))


def request_review(
    prompt: str,
    *,
    backend: ReviewerBackend,
    model: str = DEFAULT_REVIEW_MODEL,
    max_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
) -> ReviewResult:
    """Ask the reviewer for feedback on a prompt and extract its text answer."""
    logger.info("Requesting review from %s (%d prompt chars)", model, len(prompt))
    response = backend.complete(model=model, max_tokens=max_tokens, prompt=prompt)

    status = ReviewStatus.OK
    if response.stop_reason == TRUNCATED_STOP_REASON:
        logger.warning("Reviewer output hit the %d token limit and may be incomplete", max_tokens)
        status = ReviewStatus.TRUNCATED

    return ReviewResult(
        text=extract_review_text(response.blocks),
        model_used=model,
        status=status,
    )

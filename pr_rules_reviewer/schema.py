"""Schema contract for reviewer responses and pipeline outcomes."""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pr_rules_reviewer.github_client import PublishedComment


class ReviewStatus(StrEnum):
    """How the reviewer finished its answer."""

    OK = "ok"
    TRUNCATED = "truncated"


class RulesSource(StrEnum):
    """Where the review rules came from."""

    REPOSITORY = "repository"
    FALLBACK = "fallback"


class PipelineStatus(StrEnum):
    """Terminal state of one review run."""

    COMPLETED = "completed"
    NO_CHANGES = "no_changes"


class TextBlock(BaseModel):
    """Reviewer content block carrying text."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["text"] = "text"
    text: str


class NonTextBlock(BaseModel):
    """Any reviewer content block that is not text (tool use, thinking, ...)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str = Field(min_length=1)

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        """Keep the variant honest: text blocks must be TextBlock."""
        if value == "text":
            raise ValueError("text blocks must be represented as TextBlock")
        return value


ContentBlock = TextBlock | NonTextBlock


class ReviewerResponse(BaseModel):
    """Ordered content blocks returned by the reviewer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    blocks: tuple[ContentBlock, ...] = ()
    stop_reason: str | None = None


class ReviewResult(BaseModel):
    """Text feedback extracted from one reviewer response."""

    model_config = ConfigDict(extra="forbid")

    text: str = ""
    model_used: str = Field(min_length=1)
    status: ReviewStatus = ReviewStatus.OK


class PipelineOutcome(BaseModel):
    """Result of one run: either a published review or the no-changes short circuit."""

    model_config = ConfigDict(extra="forbid")

    status: PipelineStatus
    review: ReviewResult | None = None
    comment: PublishedComment | None = None
    rules_source: RulesSource | None = None
    warnings: list[str] = Field(default_factory=list)

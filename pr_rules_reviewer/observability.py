"""Run telemetry models and logging setup."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(*, verbose: bool = False) -> None:
    """Send log records to stderr, keeping stdout for user-facing messages."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


@dataclass(slots=True)
class RunTelemetry:
    """Counters and outcomes collected over one review run."""

    repository: str
    pr_number: int
    files_listed: int = 0
    files_with_patch: int = 0
    rules_source: str | None = None
    review_chars: int = 0
    comment_url: str | None = None
    warnings: list[str] = field(default_factory=list)

    def summary(self) -> str:
        """Return a one-line summary suitable for CI logs."""
        parts = [
            f"repo={self.repository}",
            f"pr={self.pr_number}",
            f"files={self.files_listed}",
            f"patched={self.files_with_patch}",
            f"rules={self.rules_source or '-'}",
            f"review_chars={self.review_chars}",
            f"warnings={len(self.warnings)}",
        ]
        if self.comment_url:
            parts.append(f"comment={self.comment_url}")
        return " ".join(parts)

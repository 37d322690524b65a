"""Pull request diff aggregation."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import httpx

from pr_rules_reviewer.github_client import PullRequestFile, fetch_pull_request_files


@dataclass(frozen=True, slots=True)
class DiffAggregate:
    """Aggregated diff document plus the listing it was built from."""

    document: str
    files: tuple[PullRequestFile, ...]

    @property
    def is_empty(self) -> bool:
        return self.document == ""

    @property
    def skipped_paths(self) -> tuple[str, ...]:
        """Paths listed without a text patch (binary or too large)."""
        return tuple(changed_file.path for changed_file in self.files if changed_file.is_binary)


def render_diff_section(path: str, patch: str) -> str:
    """Render one file's patch under its `=== path ===` marker line."""
    return f"\n=== {path} ===\n{patch}\n"


def render_diff_document(files: Iterable[PullRequestFile]) -> str:
    """Concatenate per-file patches in listing order, skipping files without one."""
    return "".join(
        render_diff_section(changed_file.path, changed_file.patch)
        for changed_file in files
        if changed_file.patch is not None
    )


def aggregate_pull_request_diff(
    *,
    client: httpx.Client,
    repo_full_name: str,
    pr_number: int,
) -> DiffAggregate:
    """Fetch every page of changed files and build the diff document.

    A failure on any page propagates; a partial listing is never rendered.
    """
    files = fetch_pull_request_files(
        client=client,
        repo_full_name=repo_full_name,
        pr_number=pr_number,
    )
    return DiffAggregate(document=render_diff_document(files), files=files)

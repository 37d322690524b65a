"""Typer CLI for the pull request rules reviewer."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated

import httpx
import typer
from dotenv import load_dotenv

from pr_rules_reviewer.agent import review_pull_request
from pr_rules_reviewer.config import (
    ConfigurationError,
    get_github_token_with_source,
    load_review_settings,
)
from pr_rules_reviewer.github_client import (
    GitHubApiError,
    GitHubInputError,
    build_github_client,
    fetch_authenticated_user_login,
    fetch_pull_request_files,
)
from pr_rules_reviewer.observability import RunTelemetry, configure_logging
from pr_rules_reviewer.output import render_review_comment
from pr_rules_reviewer.reviewer import ReviewerError, build_anthropic_reviewer
from pr_rules_reviewer.schema import PipelineStatus

app = typer.Typer(help="Review GitHub pull requests against repository rules with Claude.")


def _fail(message: str) -> typer.Exit:
    typer.echo(message, err=True)
    return typer.Exit(code=1)


@app.command("review")
def review_command(
    repo: Annotated[
        str | None, typer.Option(help="Repository in owner/repo format. Defaults to GITHUB_REPOSITORY.")
    ] = None,
    pr: Annotated[int | None, typer.Option(help="Pull request number. Defaults to PR_NUMBER.")] = None,
    rules_path: Annotated[
        str | None,
        typer.Option(help="Rules file path in the repository. Defaults to REVIEW_RULES_PATH."),
    ] = None,
    model: Annotated[str | None, typer.Option(help="Override reviewer model.")] = None,
    dry_run: Annotated[
        bool, typer.Option(help="Print the review comment instead of posting it.")
    ] = False,
    verbose: Annotated[bool, typer.Option(help="Enable debug logging and a run summary.")] = False,
) -> None:
    """Review one pull request and post the feedback as a PR comment."""
    configure_logging(verbose=verbose)

    try:
        settings = load_review_settings(
            repo_full_name=repo,
            pr_number=pr,
            rules_path=rules_path,
            model=model,
        )
    except ConfigurationError as error:
        raise _fail(f"Configuration error: {error}") from error

    telemetry = RunTelemetry(repository=settings.repo_full_name, pr_number=settings.pr_number)
    try:
        reviewer = build_anthropic_reviewer(
            settings.anthropic_api_key,
            timeout_seconds=settings.timeout_seconds,
        )
        with build_github_client(settings.github_token, settings.timeout_seconds) as github:
            outcome = review_pull_request(
                github=github,
                reviewer=reviewer,
                repo_full_name=settings.repo_full_name,
                pr_number=settings.pr_number,
                rules_path=settings.rules_path,
                model=settings.model,
                max_tokens=settings.max_output_tokens,
                publish=not dry_run,
                telemetry=telemetry,
            )
    except GitHubApiError as error:
        raise _fail(
            f"Review failed: {error} (status={error.status_code} endpoint={error.endpoint})"
        ) from error
    except ReviewerError as error:
        raise _fail(f"Failed to perform code review: {error}") from error
    except GitHubInputError as error:
        raise _fail(f"Review failed: {error}") from error
    except httpx.HTTPError as error:
        raise _fail(f"Review failed: network error ({error}).") from error

    if verbose:
        typer.echo(telemetry.summary(), err=True)

    if outcome.status is PipelineStatus.NO_CHANGES:
        typer.echo("No changes found in PR")
        return

    if dry_run:
        typer.echo(render_review_comment(outcome.review.text))
        return

    typer.echo("Code review completed successfully")


@app.command("auth-check")
def auth_check_command(
    repo: Annotated[
        str | None,
        typer.Option(help="Optional repository in owner/repo format for permission check."),
    ] = None,
    pr: Annotated[
        int | None,
        typer.Option(help="Optional pull request number used with --repo for permission check."),
    ] = None,
    timeout_seconds: Annotated[
        int, typer.Option(help="GitHub API timeout in seconds for the validation call.")
    ] = 20,
    trust_env: Annotated[
        bool,
        typer.Option(
            "--trust-env/--no-trust-env",
            help="Use proxy/SSL environment variables from the current shell.",
        ),
    ] = True,
) -> None:
    """Validate GitHub token setup and optional PR read access."""
    if (repo is None) != (pr is None):
        raise typer.BadParameter("Provide both --repo and --pr together, or neither.")

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    token_with_source = get_github_token_with_source(os.environ)
    if token_with_source is None:
        typer.echo(
            "GitHub auth check failed: Missing GitHub token. Set GITHUB_TOKEN (preferred) or GH_TOKEN.",
            err=True,
        )
        raise typer.Exit(code=1)

    token, token_source = token_with_source
    typer.echo(f"Token detected in {token_source}.")

    try:
        with build_github_client(token, timeout_seconds, trust_env=trust_env) as client:
            login = fetch_authenticated_user_login(client=client)
            typer.echo(f"Authenticated as GitHub user '{login}'.")

            if repo is not None and pr is not None:
                fetch_pull_request_files(
                    client=client,
                    repo_full_name=repo,
                    pr_number=pr,
                )
                typer.echo(f"Repository/PR access check passed for {repo}#{pr}.")
    except GitHubInputError as error:
        raise _fail(f"GitHub auth check failed: {error}") from error
    except GitHubApiError as error:
        raise _fail(
            f"GitHub auth check failed: status={error.status_code} endpoint={error.endpoint}."
        ) from error
    except httpx.HTTPError as error:
        raise _fail(f"GitHub auth check failed: network error ({error}).") from error

    typer.echo("GitHub token setup is valid.")

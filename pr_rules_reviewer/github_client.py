"""GitHub API wrapper and auth helpers."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

GITHUB_API_BASE_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
PULL_REQUEST_FILES_PAGE_SIZE = 100

logger = logging.getLogger(__name__)


class GitHubAuthError(RuntimeError):
    """Raised when required GitHub authentication is missing."""


class GitHubInputError(ValueError):
    """Raised when repository or PR input values are invalid."""


class GitHubApiError(RuntimeError):
    """Raised when a GitHub API request fails."""

    def __init__(self, message: str, *, status_code: int, endpoint: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class GitHubRateLimitError(GitHubApiError):
    """Raised when GitHub API rate limiting prevents request completion."""


@dataclass(frozen=True, slots=True)
class PullRequestFile:
    """Changed file details from GitHub pull request files API."""

    path: str
    status: str
    patch: str | None

    @property
    def is_binary(self) -> bool:
        return self.patch is None


@dataclass(frozen=True, slots=True)
class RepositoryFile:
    """Normalized repository file lookup result."""

    path: str
    exists: bool
    text: str | None
    encoding: str | None
    warning: str | None = None


@dataclass(frozen=True, slots=True)
class PublishedComment:
    """Comment created on a pull request conversation thread."""

    comment_id: int
    html_url: str
    body: str


def _ensure_mapping(value: object, *, context: str) -> dict[str, Any]:
    """Ensure a response fragment is a JSON object."""
    if not isinstance(value, dict):
        raise GitHubApiError(
            f"Expected JSON object for {context}.",
            status_code=500,
            endpoint=context,
        )
    return value


def _require_str(payload: dict[str, Any], *, key: str, endpoint: str) -> str:
    """Read a required string field from payload."""
    value = payload.get(key)
    if not isinstance(value, str):
        raise GitHubApiError(
            f"Expected string field '{key}' in GitHub response.",
            status_code=500,
            endpoint=endpoint,
        )
    return value


def _require_int(payload: dict[str, Any], *, key: str, endpoint: str) -> int:
    """Read a required integer field from payload."""
    value = payload.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise GitHubApiError(
            f"Expected integer field '{key}' in GitHub response.",
            status_code=500,
            endpoint=endpoint,
        )
    return value


def _optional_str(payload: dict[str, Any], *, key: str, endpoint: str) -> str | None:
    """Read an optional string field from payload."""
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        raise GitHubApiError(
            f"Expected '{key}' to be a string or null in GitHub response.",
            status_code=500,
            endpoint=endpoint,
        )
    return value


def _raise_http_error(response: httpx.Response, endpoint: str) -> None:
    """Raise a typed error for a non-success GitHub API response."""
    message = f"GitHub API request failed with status {response.status_code} for '{endpoint}'."
    if response.status_code == 429:
        raise GitHubRateLimitError(
            message,
            status_code=response.status_code,
            endpoint=endpoint,
        )
    raise GitHubApiError(
        message,
        status_code=response.status_code,
        endpoint=endpoint,
    )


def _request(
    client: httpx.Client,
    method: str,
    endpoint: str,
    *,
    params: dict[str, Any] | None = None,
    json_body: dict[str, Any] | None = None,
    allow_not_found: bool = False,
) -> httpx.Response:
    """Perform one request against GitHub API and fail on non-success status."""
    logger.debug("GitHub %s %s params=%s", method, endpoint, params)
    response = client.request(method, endpoint, params=params, json=json_body)
    if allow_not_found and response.status_code == 404:
        return response
    if response.status_code >= 400:
        _raise_http_error(response, endpoint)
    return response


def _json_payload(response: httpx.Response, *, endpoint: str) -> object:
    """Decode a response body, rejecting non-JSON bodies such as proxy error pages."""
    try:
        return response.json()
    except ValueError as error:
        raise GitHubApiError(
            "Expected JSON body in GitHub response.",
            status_code=response.status_code,
            endpoint=endpoint,
        ) from error


def _json_list(response: httpx.Response, *, endpoint: str) -> list[dict[str, Any]]:
    """Decode a JSON array of objects from a response."""
    payload = _json_payload(response, endpoint=endpoint)
    if not isinstance(payload, list):
        raise GitHubApiError(
            "Expected JSON array in GitHub response.",
            status_code=500,
            endpoint=endpoint,
        )
    rows: list[dict[str, Any]] = []
    for item in payload:
        if not isinstance(item, dict):
            raise GitHubApiError(
                "Expected all array items to be JSON objects in GitHub response.",
                status_code=500,
                endpoint=endpoint,
            )
        rows.append(item)
    return rows


def _next_page_url(response: httpx.Response) -> str | None:
    """Return the continuation URL from the Link header, if any."""
    next_link = response.links.get("next")
    if not next_link:
        return None
    return next_link.get("url") or None


def fetch_pull_request_files(
    *,
    client: httpx.Client,
    repo_full_name: str,
    pr_number: int,
) -> tuple[PullRequestFile, ...]:
    """Fetch all changed files for a pull request, following every page."""
    owner, repo = parse_repo_full_name(repo_full_name)
    normalized_pr_number = validate_pr_number(pr_number)
    endpoint: str = f"/repos/{owner}/{repo}/pulls/{normalized_pr_number}/files"
    params: dict[str, Any] | None = {"per_page": PULL_REQUEST_FILES_PAGE_SIZE, "page": 1}

    files: list[PullRequestFile] = []
    pages = 0
    while True:
        response = _request(client, "GET", endpoint, params=params)
        pages += 1
        for row in _json_list(response, endpoint=endpoint):
            files.append(
                PullRequestFile(
                    path=_require_str(row, key="filename", endpoint=endpoint),
                    status=_require_str(row, key="status", endpoint=endpoint),
                    patch=_optional_str(row, key="patch", endpoint=endpoint),
                )
            )

        next_url = _next_page_url(response)
        if next_url is None:
            break
        # The continuation URL already carries per_page and page.
        endpoint = next_url
        params = None

    logger.info(
        "Listed %d changed file(s) across %d page(s) for %s#%d",
        len(files),
        pages,
        repo_full_name,
        normalized_pr_number,
    )
    return tuple(files)


def fetch_repository_file(
    *,
    client: httpx.Client,
    repo_full_name: str,
    path: str,
) -> RepositoryFile:
    """Fetch one file's text from the repository's default branch."""
    owner, repo = parse_repo_full_name(repo_full_name)
    normalized_path = path.lstrip("/")
    if not normalized_path:
        raise GitHubInputError("Invalid file path ''. Expected a non-empty repository path.")

    endpoint = f"/repos/{owner}/{repo}/contents/{quote(normalized_path, safe='/')}"
    response = _request(client, "GET", endpoint, allow_not_found=True)
    if response.status_code == 404:
        return RepositoryFile(
            path=normalized_path,
            exists=False,
            text=None,
            encoding=None,
        )

    payload = _ensure_mapping(_json_payload(response, endpoint=endpoint), context=endpoint)
    content_type = _optional_str(payload, key="type", endpoint=endpoint)
    encoding = _optional_str(payload, key="encoding", endpoint=endpoint)
    content = _optional_str(payload, key="content", endpoint=endpoint)

    def unreadable(warning: str) -> RepositoryFile:
        return RepositoryFile(
            path=normalized_path,
            exists=True,
            text=None,
            encoding=encoding,
            warning=warning,
        )

    if content_type is not None and content_type != "file":
        return unreadable(f"Unsupported GitHub content type '{content_type}' for '{normalized_path}'.")
    if content is None:
        return unreadable(f"Missing file content payload for '{normalized_path}'.")

    if encoding == "base64":
        try:
            decoded_bytes = base64.b64decode(content, validate=False)
        except (binascii.Error, ValueError):
            return unreadable(f"Invalid base64 payload for '{normalized_path}'.")
        try:
            text = decoded_bytes.decode("utf-8")
        except UnicodeDecodeError:
            return unreadable(f"Non-UTF-8 content for '{normalized_path}'.")
    elif encoding in {"utf-8", "utf8"}:
        text = content
    else:
        return unreadable(f"Unsupported content encoding '{encoding}' for '{normalized_path}'.")

    return RepositoryFile(
        path=normalized_path,
        exists=True,
        text=text,
        encoding=encoding,
    )


def create_issue_comment(
    *,
    client: httpx.Client,
    repo_full_name: str,
    pr_number: int,
    body: str,
) -> PublishedComment:
    """Create one new comment on a pull request conversation thread."""
    owner, repo = parse_repo_full_name(repo_full_name)
    normalized_pr_number = validate_pr_number(pr_number)
    endpoint = f"/repos/{owner}/{repo}/issues/{normalized_pr_number}/comments"

    response = _request(client, "POST", endpoint, json_body={"body": body})
    payload = _ensure_mapping(_json_payload(response, endpoint=endpoint), context=endpoint)
    return PublishedComment(
        comment_id=_require_int(payload, key="id", endpoint=endpoint),
        html_url=_require_str(payload, key="html_url", endpoint=endpoint),
        body=body,
    )


def fetch_authenticated_user_login(*, client: httpx.Client) -> str:
    """Fetch authenticated GitHub user login for token validation."""
    endpoint = "/user"
    response = _request(client, "GET", endpoint)
    payload = _ensure_mapping(_json_payload(response, endpoint=endpoint), context=endpoint)
    return _require_str(payload, key="login", endpoint=endpoint)


def parse_repo_full_name(repo_full_name: str) -> tuple[str, str]:
    """Parse and validate repository input in owner/repo format."""
    owner, separator, repo = repo_full_name.strip().partition("/")
    if not separator or not owner or not repo or "/" in repo:
        raise GitHubInputError(
            f"Invalid repo '{repo_full_name}'. Expected format is owner/repo."
        )
    return owner, repo


def validate_pr_number(pr_number: int) -> int:
    """Validate and normalize pull request number input."""
    if pr_number <= 0:
        raise GitHubInputError(f"Invalid PR number '{pr_number}'. Expected a positive integer.")
    return pr_number


def build_github_client(
    token: str,
    timeout_seconds: float = 20,
    *,
    trust_env: bool = True,
) -> httpx.Client:
    """Build an authenticated GitHub HTTP client."""
    if not token:
        raise GitHubAuthError("Missing GitHub token. Set GITHUB_TOKEN (preferred) or GH_TOKEN.")
    headers = {
        "Accept": "application/vnd.github+json",
        "Authorization": f"Bearer {token}",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }
    return httpx.Client(
        base_url=GITHUB_API_BASE_URL,
        headers=headers,
        timeout=timeout_seconds,
        trust_env=trust_env,
    )

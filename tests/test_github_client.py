"""Unit tests for GitHub client behavior."""

from __future__ import annotations

import base64
import json
from collections.abc import Callable

import httpx
import pytest
from pr_rules_reviewer.github_client import (
    GitHubApiError,
    GitHubAuthError,
    GitHubInputError,
    GitHubRateLimitError,
    build_github_client,
    create_issue_comment,
    fetch_authenticated_user_login,
    fetch_pull_request_files,
    fetch_repository_file,
    parse_repo_full_name,
    validate_pr_number,
)

FILES_PATH = "/repos/acme/rocket/pulls/42/files"


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    """Create an HTTP client backed by mock transport."""
    transport = httpx.MockTransport(handler)
    return httpx.Client(base_url="https://api.github.com", transport=transport)


def make_file_row(
    *,
    filename: str,
    patch: str | None = "@@ -1,1 +1,1 @@\n-old\n+new",
) -> dict[str, object]:
    """Build a minimal valid pull request file payload."""
    row: dict[str, object] = {
        "filename": filename,
        "status": "modified",
        "additions": 1,
        "deletions": 1,
        "changes": 2,
    }
    if patch is not None:
        row["patch"] = patch
    return row


def make_contents_payload(
    *,
    content_bytes: bytes,
    path: str,
    content_type: str = "file",
    encoding: str = "base64",
) -> dict[str, object]:
    """Build a minimal valid repository contents API payload."""
    return {
        "type": content_type,
        "encoding": encoding,
        "content": base64.b64encode(content_bytes).decode("ascii"),
        "sha": "sha-rules",
        "size": len(content_bytes),
        "path": path,
    }


def next_link(page: int) -> dict[str, str]:
    url = f"https://api.github.com{FILES_PATH}?per_page=100&page={page}"
    return {"Link": f'<{url}>; rel="next"'}


@pytest.mark.unit
def test_parse_repo_full_name_accepts_owner_repo() -> None:
    owner, repo = parse_repo_full_name("acme/rocket")
    assert owner == "acme"
    assert repo == "rocket"


@pytest.mark.unit
@pytest.mark.parametrize("value", ["acme", "acme/", "/rocket", "acme/rocket/extra"])
def test_parse_repo_full_name_rejects_invalid_format(value: str) -> None:
    with pytest.raises(GitHubInputError):
        parse_repo_full_name(value)


@pytest.mark.unit
def test_validate_pr_number_rejects_non_positive() -> None:
    with pytest.raises(GitHubInputError):
        validate_pr_number(0)


@pytest.mark.unit
def test_fetch_pull_request_files_follows_link_header_until_absent() -> None:
    requested_pages: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == FILES_PATH
        assert request.url.params["per_page"] == "100"
        page = request.url.params["page"]
        requested_pages.append(page)
        if page == "1":
            rows = [make_file_row(filename=f"src/file_{i}.py") for i in range(100)]
            return httpx.Response(status_code=200, json=rows, headers=next_link(2))
        if page == "2":
            return httpx.Response(status_code=200, json=[make_file_row(filename="src/final.py")])
        raise AssertionError("Unexpected page")

    with make_client(handler) as client:
        files = fetch_pull_request_files(
            client=client,
            repo_full_name="acme/rocket",
            pr_number=42,
        )

    assert requested_pages == ["1", "2"]
    assert len(files) == 101
    assert files[-1].path == "src/final.py"


@pytest.mark.unit
def test_fetch_pull_request_files_keeps_short_pages_when_more_are_linked() -> None:
    requested_pages: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        page = request.url.params["page"]
        requested_pages.append(page)
        if page == "1":
            return httpx.Response(
                status_code=200,
                json=[make_file_row(filename="a.py")],
                headers=next_link(2),
            )
        return httpx.Response(status_code=200, json=[make_file_row(filename="b.py")])

    with make_client(handler) as client:
        files = fetch_pull_request_files(
            client=client,
            repo_full_name="acme/rocket",
            pr_number=42,
        )

    assert requested_pages == ["1", "2"]
    assert [changed_file.path for changed_file in files] == ["a.py", "b.py"]


@pytest.mark.unit
def test_fetch_pull_request_files_marks_missing_patch_as_binary() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        rows = [make_file_row(filename="assets/logo.png", patch=None)]
        return httpx.Response(status_code=200, json=rows)

    with make_client(handler) as client:
        files = fetch_pull_request_files(
            client=client,
            repo_full_name="acme/rocket",
            pr_number=42,
        )

    assert files[0].patch is None
    assert files[0].is_binary is True


@pytest.mark.unit
def test_fetch_pull_request_files_fails_when_a_later_page_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["page"] == "1":
            return httpx.Response(
                status_code=200,
                json=[make_file_row(filename="a.py")],
                headers=next_link(2),
            )
        return httpx.Response(status_code=502)

    with make_client(handler) as client, pytest.raises(GitHubApiError) as exc_info:
        fetch_pull_request_files(
            client=client,
            repo_full_name="acme/rocket",
            pr_number=42,
        )

    assert exc_info.value.status_code == 502


@pytest.mark.unit
def test_fetch_pull_request_files_does_not_retry_server_errors() -> None:
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        return httpx.Response(status_code=503)

    with make_client(handler) as client, pytest.raises(GitHubApiError):
        fetch_pull_request_files(
            client=client,
            repo_full_name="acme/rocket",
            pr_number=42,
        )

    assert attempts["count"] == 1


@pytest.mark.unit
def test_rate_limited_response_raises_rate_limit_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=429)

    with make_client(handler) as client, pytest.raises(GitHubRateLimitError):
        fetch_pull_request_files(
            client=client,
            repo_full_name="acme/rocket",
            pr_number=42,
        )


@pytest.mark.unit
def test_fetch_pull_request_files_rejects_invalid_shape() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, json=[{"filename": 7, "status": "modified"}])

    with make_client(handler) as client, pytest.raises(GitHubApiError):
        fetch_pull_request_files(
            client=client,
            repo_full_name="acme/rocket",
            pr_number=42,
        )


@pytest.mark.unit
def test_fetch_repository_file_reads_default_branch() -> None:
    expected_text = "- Prefer small functions\n"

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/acme/rocket/contents/.github/copilot-instructions.yml"
        assert "ref" not in request.url.params
        payload = make_contents_payload(
            content_bytes=expected_text.encode("utf-8"),
            path=".github/copilot-instructions.yml",
        )
        return httpx.Response(status_code=200, json=payload)

    with make_client(handler) as client:
        rules_file = fetch_repository_file(
            client=client,
            repo_full_name="acme/rocket",
            path=".github/copilot-instructions.yml",
        )

    assert rules_file.exists is True
    assert rules_file.text == expected_text
    assert rules_file.warning is None


@pytest.mark.unit
def test_fetch_pull_request_files_rejects_non_json_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, text="<html>proxy error</html>")

    with make_client(handler) as client, pytest.raises(GitHubApiError) as exc_info:
        fetch_pull_request_files(
            client=client,
            repo_full_name="acme/rocket",
            pr_number=42,
        )

    assert exc_info.value.status_code == 200
    assert exc_info.value.endpoint == FILES_PATH


@pytest.mark.unit
def test_fetch_repository_file_returns_exists_false_for_404() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=404)

    with make_client(handler) as client:
        rules_file = fetch_repository_file(
            client=client,
            repo_full_name="acme/rocket",
            path="missing.yml",
        )

    assert rules_file.exists is False
    assert rules_file.text is None


@pytest.mark.unit
def test_fetch_repository_file_flags_non_utf8_content() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = make_contents_payload(content_bytes=b"\xff\xfe\xfd", path="rules.bin")
        return httpx.Response(status_code=200, json=payload)

    with make_client(handler) as client:
        rules_file = fetch_repository_file(
            client=client,
            repo_full_name="acme/rocket",
            path="rules.bin",
        )

    assert rules_file.exists is True
    assert rules_file.text is None
    assert rules_file.warning is not None
    assert "Non-UTF-8 content" in rules_file.warning


@pytest.mark.unit
def test_fetch_repository_file_flags_directories() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = make_contents_payload(content_bytes=b"", path=".github", content_type="dir")
        return httpx.Response(status_code=200, json=payload)

    with make_client(handler) as client:
        rules_file = fetch_repository_file(
            client=client,
            repo_full_name="acme/rocket",
            path=".github",
        )

    assert rules_file.text is None
    assert rules_file.warning is not None
    assert "Unsupported GitHub content type 'dir'" in rules_file.warning


@pytest.mark.unit
def test_fetch_repository_file_propagates_server_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=500)

    with make_client(handler) as client, pytest.raises(GitHubApiError):
        fetch_repository_file(
            client=client,
            repo_full_name="acme/rocket",
            path="rules.md",
        )


@pytest.mark.unit
def test_create_issue_comment_posts_body_to_issue_thread() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(
            status_code=201,
            json={"id": 9001, "html_url": "https://github.com/acme/rocket/pull/42#issuecomment-9001"},
        )

    with make_client(handler) as client:
        comment = create_issue_comment(
            client=client,
            repo_full_name="acme/rocket",
            pr_number=42,
            body="## Review\n\nLooks good",
        )

    assert len(captured) == 1
    assert captured[0].method == "POST"
    assert captured[0].url.path == "/repos/acme/rocket/issues/42/comments"
    assert json.loads(captured[0].content) == {"body": "## Review\n\nLooks good"}
    assert comment.comment_id == 9001
    assert comment.body == "## Review\n\nLooks good"


@pytest.mark.unit
def test_create_issue_comment_raises_on_forbidden() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=403, json={"message": "Resource not accessible"})

    with make_client(handler) as client, pytest.raises(GitHubApiError) as exc_info:
        create_issue_comment(
            client=client,
            repo_full_name="acme/rocket",
            pr_number=42,
            body="text",
        )

    assert exc_info.value.status_code == 403
    assert exc_info.value.endpoint == "/repos/acme/rocket/issues/42/comments"


@pytest.mark.unit
def test_fetch_authenticated_user_login_returns_login() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/user"
        return httpx.Response(status_code=200, json={"login": "octocat"})

    with make_client(handler) as client:
        login = fetch_authenticated_user_login(client=client)

    assert login == "octocat"


@pytest.mark.unit
def test_build_github_client_sets_auth_headers() -> None:
    with build_github_client("secret-token") as client:
        assert client.headers["Authorization"] == "Bearer secret-token"
        assert client.headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert client.base_url.host == "api.github.com"


@pytest.mark.unit
def test_build_github_client_requires_token() -> None:
    with pytest.raises(GitHubAuthError):
        build_github_client("")

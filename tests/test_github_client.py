import json

import httpx
import pytest

from assistant.services.github_client import GithubAPIError, GithubTimeoutError, RestGithubClient, split_repo


def _client(handler) -> RestGithubClient:
    return RestGithubClient(
        "ghp_test",
        base_url="https://api.github.test",
        web_base_url="https://github.test",
        timeout_seconds=1,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("acme/widgets", ("acme", "widgets")),
        (" https://github.com/acme/widgets.git ", ("acme", "widgets")),
        ("acme/widgets/tree/main", ("acme", "widgets")),
    ],
)
def test_split_repo(raw, expected) -> None:
    assert split_repo(raw) == expected


def test_split_repo_requires_owner_and_name() -> None:
    with pytest.raises(ValueError):
        split_repo("widgets")


async def test_create_issue_sends_auth_and_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"html_url": "https://github.test/acme/widgets/issues/4", "number": 4})

    issue = await _client(handler).create_issue(owner="acme", repo="widgets", title="Crash", labels=["bug"])

    assert issue.number == 4
    assert seen[0].url.path == "/repos/acme/widgets/issues"
    assert seen[0].headers["Authorization"] == "Bearer ghp_test"
    assert json.loads(seen[0].content) == {"title": "Crash", "body": None, "labels": ["bug"]}


async def test_review_submission_uses_event_and_falls_back_to_pr_url() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={})

    url = await _client(handler).approve_review(owner="acme", repo="widgets", number=12)

    assert bodies == [{"event": "APPROVE"}]
    assert url == "https://github.test/acme/widgets/pull/12"


async def test_error_status_raises_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "Validation Failed"})

    with pytest.raises(GithubAPIError) as excinfo:
        await _client(handler).merge_pull_request(owner="acme", repo="widgets", number=1, merge_method="squash")

    assert excinfo.value.status_code == 422


async def test_timeout_is_reported_separately() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(GithubTimeoutError):
        await _client(handler).get_default_branch(owner="acme", repo="widgets")


async def test_get_file_rejects_directories() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"name": "a.py"}])

    with pytest.raises(GithubAPIError):
        await _client(handler).get_file(owner="acme", repo="widgets", path="src")


async def test_branch_sha_and_list_repos() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/repos/acme/widgets/git/ref/heads/feature/x":
            return httpx.Response(200, json={"object": {"sha": "abc123"}})
        if request.url.path == "/user/repos":
            return httpx.Response(200, json=[{"full_name": "acme/widgets", "private": True}])
        return httpx.Response(404, json={})

    client = _client(handler)

    assert await client.get_branch_sha(owner="acme", repo="widgets", branch="feature/x") == "abc123"
    [repo] = await client.list_repos(per_page=5)
    assert (repo.full_name, repo.private) == ("acme/widgets", True)

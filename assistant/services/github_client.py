from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from assistant.core.settings import get_settings

logger = logging.getLogger(__name__)

USER_AGENT = "personal-assistant-bot"


class GithubAPIError(RuntimeError):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"GitHub API {status_code}: {message}")
        self.status_code = status_code


class GithubTimeoutError(RuntimeError):
    pass


@dataclass(slots=True)
class CreatedIssue:
    url: str
    number: int


@dataclass(slots=True)
class RepoSummary:
    full_name: str
    private: bool


@dataclass(slots=True)
class RepoFile:
    content: str  # base64, as GitHub returns it
    sha: str


class GithubClient(Protocol):
    async def create_issue(
        self, *, owner: str, repo: str, title: str, body: str | None = None, labels: list[str] | None = None
    ) -> CreatedIssue: ...

    async def comment_on_pr(self, *, owner: str, repo: str, number: int, body: str) -> str: ...

    async def assign_reviewers(self, *, owner: str, repo: str, number: int, reviewers: list[str]) -> str: ...

    async def request_changes(self, *, owner: str, repo: str, number: int, body: str) -> str: ...

    async def approve_review(self, *, owner: str, repo: str, number: int, body: str | None = None) -> str: ...

    async def comment_review(self, *, owner: str, repo: str, number: int, body: str) -> str: ...

    async def dismiss_review(self, *, owner: str, repo: str, number: int, review_id: int, message: str) -> str: ...

    async def get_default_branch(self, *, owner: str, repo: str) -> str: ...

    async def get_branch_sha(self, *, owner: str, repo: str, branch: str) -> str: ...

    async def get_file(self, *, owner: str, repo: str, path: str, ref: str | None = None) -> RepoFile: ...

    async def create_branch(self, *, owner: str, repo: str, branch: str, from_sha: str) -> str: ...

    async def update_file(
        self,
        *,
        owner: str,
        repo: str,
        path: str,
        message: str,
        content_base64: str,
        sha: str,
        branch: str,
    ) -> str: ...

    async def create_pull_request(
        self, *, owner: str, repo: str, title: str, head: str, base: str, body: str | None = None
    ) -> str: ...

    async def merge_pull_request(self, *, owner: str, repo: str, number: int, merge_method: str) -> str: ...

    async def update_pull_request_branch(self, *, owner: str, repo: str, number: int) -> str: ...

    async def list_repos(self, *, per_page: int = 50) -> list[RepoSummary]: ...


def split_repo(value: str) -> tuple[str, str]:
    trimmed = value.strip()
    for prefix in ("https://github.com/", "http://github.com/"):
        if trimmed.lower().startswith(prefix):
            trimmed = trimmed[len(prefix) :]
    parts = [part for part in trimmed.strip("/").split("/") if part]
    if len(parts) < 2:
        raise ValueError("Repo must be in owner/name format")
    name = parts[1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return parts[0], name


class RestGithubClient:
    def __init__(
        self,
        token: str,
        *,
        base_url: str | None = None,
        web_base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._token = token
        self._base_url = (base_url or settings.github_api_base_url).rstrip("/")
        self._web_base_url = (web_base_url or settings.github_web_base_url).rstrip("/")
        self._timeout = timeout_seconds if timeout_seconds is not None else settings.github_timeout_seconds
        self._transport = transport

    async def _request(self, method: str, path: str, json: dict | None = None) -> Any:
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "User-Agent": USER_AGENT,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            raise GithubTimeoutError(f"GitHub API timed out: {method} {path}") from exc
        if response.status_code >= 400:
            logger.warning("GitHub API error: method=%s path=%s status=%s", method, path, response.status_code)
            raise GithubAPIError(response.status_code, response.text[:500])
        if not response.content:
            return {}
        return response.json()

    def _pr_url(self, owner: str, repo: str, number: int) -> str:
        return f"{self._web_base_url}/{owner}/{repo}/pull/{number}"

    async def create_issue(
        self, *, owner: str, repo: str, title: str, body: str | None = None, labels: list[str] | None = None
    ) -> CreatedIssue:
        data = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues",
            json={"title": title, "body": body, "labels": labels or []},
        )
        return CreatedIssue(url=data["html_url"], number=data["number"])

    async def comment_on_pr(self, *, owner: str, repo: str, number: int, body: str) -> str:
        data = await self._request("POST", f"/repos/{owner}/{repo}/issues/{number}/comments", json={"body": body})
        return data["html_url"]

    async def assign_reviewers(self, *, owner: str, repo: str, number: int, reviewers: list[str]) -> str:
        data = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls/{number}/requested_reviewers",
            json={"reviewers": reviewers},
        )
        return data.get("html_url") or self._pr_url(owner, repo, number)

    async def _submit_review(self, owner: str, repo: str, number: int, event: str, body: str | None) -> str:
        payload: dict[str, Any] = {"event": event}
        if body:
            payload["body"] = body
        data = await self._request("POST", f"/repos/{owner}/{repo}/pulls/{number}/reviews", json=payload)
        return data.get("html_url") or self._pr_url(owner, repo, number)

    async def request_changes(self, *, owner: str, repo: str, number: int, body: str) -> str:
        return await self._submit_review(owner, repo, number, "REQUEST_CHANGES", body)

    async def approve_review(self, *, owner: str, repo: str, number: int, body: str | None = None) -> str:
        return await self._submit_review(owner, repo, number, "APPROVE", body)

    async def comment_review(self, *, owner: str, repo: str, number: int, body: str) -> str:
        return await self._submit_review(owner, repo, number, "COMMENT", body)

    async def dismiss_review(self, *, owner: str, repo: str, number: int, review_id: int, message: str) -> str:
        data = await self._request(
            "PUT",
            f"/repos/{owner}/{repo}/pulls/{number}/reviews/{review_id}/dismissals",
            json={"message": message},
        )
        return data.get("html_url") or self._pr_url(owner, repo, number)

    async def get_default_branch(self, *, owner: str, repo: str) -> str:
        data = await self._request("GET", f"/repos/{owner}/{repo}")
        return data["default_branch"]

    async def get_branch_sha(self, *, owner: str, repo: str, branch: str) -> str:
        data = await self._request("GET", f"/repos/{owner}/{repo}/git/ref/heads/{quote(branch, safe='/')}")
        sha = (data.get("object") or {}).get("sha")
        if not sha:
            raise GithubAPIError(404, f"Missing SHA for branch {branch}")
        return sha

    async def get_file(self, *, owner: str, repo: str, path: str, ref: str | None = None) -> RepoFile:
        suffix = f"?ref={quote(ref, safe='')}" if ref else ""
        data = await self._request("GET", f"/repos/{owner}/{repo}/contents/{quote(path)}{suffix}")
        if isinstance(data, list) or data.get("type") not in (None, "file"):
            raise GithubAPIError(422, f"{path} is not a file")
        return RepoFile(content=data["content"], sha=data["sha"])

    async def create_branch(self, *, owner: str, repo: str, branch: str, from_sha: str) -> str:
        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/refs",
            json={"ref": f"refs/heads/{branch}", "sha": from_sha},
        )
        return f"{self._web_base_url}/{owner}/{repo}/tree/{branch}"

    async def update_file(
        self,
        *,
        owner: str,
        repo: str,
        path: str,
        message: str,
        content_base64: str,
        sha: str,
        branch: str,
    ) -> str:
        data = await self._request(
            "PUT",
            f"/repos/{owner}/{repo}/contents/{quote(path)}",
            json={"message": message, "content": content_base64, "sha": sha, "branch": branch},
        )
        return (data.get("commit") or {}).get("html_url") or f"{self._web_base_url}/{owner}/{repo}/tree/{branch}"

    async def create_pull_request(
        self, *, owner: str, repo: str, title: str, head: str, base: str, body: str | None = None
    ) -> str:
        data = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            json={"title": title, "body": body, "head": head, "base": base},
        )
        return data["html_url"]

    async def merge_pull_request(self, *, owner: str, repo: str, number: int, merge_method: str) -> str:
        await self._request(
            "PUT",
            f"/repos/{owner}/{repo}/pulls/{number}/merge",
            json={"merge_method": merge_method},
        )
        return self._pr_url(owner, repo, number)

    async def update_pull_request_branch(self, *, owner: str, repo: str, number: int) -> str:
        await self._request("PUT", f"/repos/{owner}/{repo}/pulls/{number}/update-branch", json={})
        return self._pr_url(owner, repo, number)

    async def list_repos(self, *, per_page: int = 50) -> list[RepoSummary]:
        data = await self._request("GET", f"/user/repos?per_page={per_page}&sort=updated")
        return [RepoSummary(full_name=item["full_name"], private=bool(item.get("private"))) for item in data]

    async def get_username(self) -> str | None:
        data = await self._request("GET", "/user")
        return data.get("login")

"""Propose / confirm / cancel gate for mutating GitHub actions.

A detected GitHub intent never reaches GitHub directly. ``propose`` validates it,
builds a typed payload (for code edits this includes fetching files and applying
the model's diffs in memory) and stores it as an expiring pending action owned by
the user. ``confirm`` re-checks ownership and expiry, claims the row with a
single conditional delete and only then executes, so a pending action runs at
most once and never survives its confirmation, whatever the outcome.
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from pydantic import ValidationError

from assistant.core.settings import get_settings
from assistant.core.timezones import ensure_utc
from assistant.models.pending_action import PENDING_GITHUB, PendingAction
from assistant.models.user import User
from assistant.schemas.github_actions import (
    ApprovePrPayload,
    AssignReviewersPayload,
    CodeEditDraft,
    CommentPrPayload,
    CreateBranchPayload,
    CreateIssuePayload,
    DismissReviewPayload,
    EditCodePayload,
    EditedFile,
    GithubIntent,
    MergePrPayload,
    OpenPrPayload,
    PullRequestDraft,
    RepoTarget,
    RequestChangesPayload,
    ReviewCommentPayload,
    UpdatePrBranchPayload,
    github_payload_adapter,
)
from assistant.services.apply_patch import PatchApplyError, apply_diff
from assistant.services.code_editor import CodeEditError, CodeEditor, CodeEditTimeoutError, SourceFile
from assistant.services.github_client import (
    GithubAPIError,
    GithubClient,
    GithubTimeoutError,
    RestGithubClient,
    split_repo,
)
from assistant.services.messaging import Reply, confirm_buttons
from assistant.services.user_service import UserService

logger = logging.getLogger(__name__)

NOT_FOUND_REPLY = "Pending action not found or expired."
EXPIRED_REPLY = "Pending action expired. Please try again."
CANCEL_MISSING_REPLY = "Pending action not found or already canceled."
CANCELED_REPLY = "Canceled."
NO_REPO_REPLY = "Please set a default repo with /github repo owner/name"
NOT_CONNECTED_REPLY = "GitHub is not connected. Use /github connect or /github token <PAT>."
TIMEOUT_REPLY = (
    "⌛ GitHub didn't respond in time. The action may or may not have been applied; "
    "check GitHub before asking again."
)
PREVIEW_LIMIT = 3500

ClientFactory = Callable[[str], GithubClient]


class ProposalError(ValueError):
    """A request that cannot be proposed; the message is shown to the user as is."""


class PartialCommitError(RuntimeError):
    def __init__(self, branch: str, written: list[str], failed_path: str) -> None:
        super().__init__(f"Commit to {branch} stopped at {failed_path}")
        self.branch = branch
        self.written = written
        self.failed_path = failed_path


class PendingActionStore(Protocol):
    async def create(
        self,
        *,
        user_id: str,
        type: str,
        payload: dict,
        expires_at: datetime | None = None,
        lookup_key: str | None = None,
    ) -> PendingAction: ...

    async def get_by_id(self, action_id: int) -> PendingAction | None: ...

    async def delete(self, action_id: int) -> None: ...

    async def claim(self, action_id: int, user_id: str) -> bool: ...


def is_expired(expires_at: datetime | None, now: datetime) -> bool:
    return expires_at is not None and ensure_utc(expires_at) < now


def normalize_reviewers(reviewers: list[str]) -> list[str]:
    seen: list[str] = []
    for reviewer in reviewers:
        value = reviewer.strip().lstrip("@").strip()
        if value and value not in seen:
            seen.append(value)
    return seen


def _truncate(text: str, limit: int = PREVIEW_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 20] + "\n… (preview truncated)"


def _require_pr_number(pr: PullRequestDraft | None) -> int:
    if pr is None or pr.number is None or pr.number < 1:
        raise ProposalError("Which pull request? Give me the PR number (e.g. #42).")
    return pr.number


def default_client_factory(token: str) -> GithubClient:
    return RestGithubClient(token)


class GithubActionService:
    def __init__(
        self,
        pending_store: PendingActionStore,
        users: UserService,
        *,
        client_factory: ClientFactory | None = None,
        code_editor: CodeEditor | None = None,
        ttl_minutes: int | None = None,
        max_edit_files: int | None = None,
    ) -> None:
        settings = get_settings()
        self._store = pending_store
        self._users = users
        self._client_factory = client_factory or default_client_factory
        self._code_editor = code_editor
        self._ttl = timedelta(minutes=ttl_minutes if ttl_minutes is not None else settings.pending_action_ttl_minutes)
        self._max_edit_files = max_edit_files if max_edit_files is not None else settings.max_edit_files

    async def propose(self, user: User, intent: GithubIntent, now: datetime | None = None) -> Reply:
        now = now or datetime.now(timezone.utc)
        try:
            if intent.action == "set_default_repo":
                return await self._set_default_repo(user, intent)

            if intent.action == "list_repos":
                token = self._users.get_github_token(user)
                if not token:
                    return Reply(NOT_CONNECTED_REPLY)
                return await self._list_repos(self._client_factory(token))

            target = await self._resolve_repo(user, intent)
            token = self._users.get_github_token(user)
            if not token:
                return Reply(NOT_CONNECTED_REPLY)
            client = self._client_factory(token)

            builder = self._builders()[intent.action]
            payload, preview = await builder(client, target, intent, now)
        except ProposalError as exc:
            return Reply(str(exc))
        except GithubTimeoutError:
            logger.warning("GitHub timed out while proposing: user_id=%s action=%s", user.user_id, intent.action)
            return Reply(TIMEOUT_REPLY)
        except GithubAPIError as exc:
            logger.warning(
                "GitHub rejected proposal lookup: user_id=%s action=%s status=%s",
                user.user_id,
                intent.action,
                exc.status_code,
            )
            return Reply(f"❌ GitHub request failed (HTTP {exc.status_code}). Check the repo, PR or file names.")
        except CodeEditTimeoutError:
            return Reply("⌛ The code editing model took too long. Please try again.")
        except CodeEditError as exc:
            logger.warning("Code edit generation failed: user_id=%s error=%s", user.user_id, exc)
            return Reply("❌ I couldn't produce a code edit for that request. Try rephrasing the instructions.")
        except ValidationError as exc:
            logger.warning(
                "Proposal payload rejected: user_id=%s action=%s errors=%s",
                user.user_id,
                intent.action,
                exc.errors(),
            )
            return Reply("❌ Some details of that request look wrong. Please check the numbers and names and try again.")

        pending = await self._store.create(
            user_id=user.user_id,
            type=PENDING_GITHUB,
            payload=payload.model_dump(mode="json"),
            expires_at=now + self._ttl,
        )
        logger.info(
            "Pending action proposed: id=%s user_id=%s action=%s repo=%s",
            pending.id,
            user.user_id,
            payload.action,
            payload.full_name,
        )
        return Reply(_truncate(preview), buttons=confirm_buttons(pending.id), pending_action_id=pending.id)

    async def confirm(self, user_id: str, action_id: int, now: datetime | None = None) -> Reply:
        now = now or datetime.now(timezone.utc)
        pending = await self._store.get_by_id(action_id)
        if pending is None or pending.user_id != user_id:
            return Reply(NOT_FOUND_REPLY)
        if pending.type != PENDING_GITHUB:
            return Reply("Pending action type mismatch.")
        if is_expired(pending.expires_at, now):
            await self._store.delete(pending.id)
            logger.info("Expired pending action dropped at confirm: id=%s", pending.id)
            return Reply(EXPIRED_REPLY)

        # Whoever deletes the row owns the execution; a concurrent confirm loses here.
        if not await self._store.claim(pending.id, user_id):
            logger.info("Pending action already claimed: id=%s", pending.id)
            return Reply(NOT_FOUND_REPLY)

        try:
            payload = github_payload_adapter.validate_python(pending.payload)
        except ValidationError:
            logger.warning("Pending action payload is invalid: id=%s", pending.id)
            return Reply("This pending action is no longer valid. Please ask again.")

        user = await self._users.get(user_id)
        if user is None:
            return Reply("User not found.")
        token = self._users.get_github_token(user)
        if not token:
            return Reply(NOT_CONNECTED_REPLY)

        client = self._client_factory(token)
        try:
            reply = await execute_payload(client, payload)
        except PartialCommitError as exc:
            logger.warning(
                "Partial commit: id=%s branch=%s written=%s failed=%s",
                pending.id,
                exc.branch,
                exc.written,
                exc.failed_path,
            )
            return Reply(
                f"⚠️ Commit to {exc.branch} stopped partway.\n"
                f"Written: {', '.join(exc.written)}\n"
                f"Failed: {exc.failed_path}\n"
                "Files already written were kept."
            )
        except GithubTimeoutError:
            logger.warning("GitHub timed out executing pending action: id=%s", pending.id)
            return Reply(TIMEOUT_REPLY)
        except GithubAPIError as exc:
            logger.warning("GitHub rejected pending action: id=%s status=%s", pending.id, exc.status_code)
            return Reply(f"❌ GitHub rejected the request (HTTP {exc.status_code}). Please check and try again.")
        except Exception:
            logger.exception("Pending action execution failed: id=%s", pending.id)
            return Reply("❌ Something went wrong while running the GitHub action.")

        logger.info("Pending action executed: id=%s action=%s", pending.id, payload.action)
        return Reply(reply)

    async def cancel(self, user_id: str, action_id: int) -> Reply:
        pending = await self._store.get_by_id(action_id)
        if pending is None or pending.user_id != user_id:
            return Reply(CANCEL_MISSING_REPLY)
        await self._store.delete(pending.id)
        logger.info("Pending action canceled: id=%s", pending.id)
        return Reply(CANCELED_REPLY)

    async def _resolve_repo(self, user: User, intent: GithubIntent) -> RepoTarget:
        requested = (intent.repo or "").strip()
        chosen = requested or (user.github_repo or "")
        if not chosen:
            raise ProposalError(NO_REPO_REPLY)
        try:
            owner, repo = split_repo(chosen)
        except ValueError as exc:
            raise ProposalError("Repo must be in owner/name format.") from exc
        full_name = f"{owner}/{repo}"
        if requested and full_name != user.github_repo:
            await self._users.set_default_repo(user.user_id, full_name)
            user.github_repo = full_name
            logger.info("Default repo switched: user_id=%s repo=%s", user.user_id, full_name)
        return RepoTarget(owner=owner, repo=repo)

    async def _set_default_repo(self, user: User, intent: GithubIntent) -> Reply:
        if not intent.repo:
            raise ProposalError("Which repo? Use owner/name, e.g. acme/widgets.")
        target = await self._resolve_repo(user, intent)
        return Reply(f"✅ Default repo set to {target.full_name}.")

    async def _list_repos(self, client: GithubClient) -> Reply:
        repos = await client.list_repos(per_page=30)
        if not repos:
            return Reply("No repositories found for this account.")
        lines = ["Your repositories:"]
        for idx, item in enumerate(repos, start=1):
            lock = " 🔒" if item.private else ""
            lines.append(f"{idx}. {item.full_name}{lock}")
        lines.append("\nUse /github repo owner/name to set the default.")
        return Reply("\n".join(lines))

    def _builders(self) -> dict[str, Callable[..., Awaitable[tuple[Any, str]]]]:
        return {
            "create_issue": self._build_create_issue,
            "comment_pr": self._build_comment_pr,
            "assign_reviewers": self._build_assign_reviewers,
            "request_changes": self._build_request_changes,
            "approve_pr": self._build_approve_pr,
            "review_comment": self._build_review_comment,
            "dismiss_review": self._build_dismiss_review,
            "create_branch": self._build_create_branch,
            "open_pr": self._build_open_pr,
            "merge_pr": self._build_merge_pr,
            "update_pr_branch": self._build_update_pr_branch,
            "edit_code": self._build_edit_code,
        }

    async def _build_create_issue(self, client, target: RepoTarget, intent: GithubIntent, now):
        issue = intent.issue
        if issue is None or not (issue.title or "").strip():
            raise ProposalError("Please provide an issue title.")
        payload = CreateIssuePayload(
            owner=target.owner,
            repo=target.repo,
            title=issue.title.strip(),
            body=issue.body,
            labels=[label.strip() for label in issue.labels if label.strip()],
        )
        preview = (
            f"🧾 Issue preview ({target.full_name})\n"
            f"Title: {payload.title}\n"
            f"Body: {payload.body or '(empty)'}\n"
            f"Labels: {', '.join(payload.labels) or '(none)'}"
        )
        return payload, preview

    async def _build_comment_pr(self, client, target: RepoTarget, intent: GithubIntent, now):
        number = _require_pr_number(intent.pr)
        comment = (intent.pr.comment or "").strip()
        if not comment:
            raise ProposalError("What should the comment say?")
        payload = CommentPrPayload(owner=target.owner, repo=target.repo, number=number, comment=comment)
        return payload, f"💬 PR #{number} comment preview ({target.full_name}):\n{comment}"

    async def _build_assign_reviewers(self, client, target: RepoTarget, intent: GithubIntent, now):
        number = _require_pr_number(intent.pr)
        reviewers = normalize_reviewers(intent.pr.reviewers)
        if not reviewers:
            raise ProposalError("Please specify at least one reviewer (e.g., @alice).")
        payload = AssignReviewersPayload(owner=target.owner, repo=target.repo, number=number, reviewers=reviewers)
        return payload, f"👀 Assign reviewers on PR #{number} ({target.full_name}): {', '.join(reviewers)}"

    async def _build_request_changes(self, client, target: RepoTarget, intent: GithubIntent, now):
        number = _require_pr_number(intent.pr)
        comment = (intent.pr.comment or "").strip() or "Requesting changes."
        payload = RequestChangesPayload(owner=target.owner, repo=target.repo, number=number, comment=comment)
        return payload, f"🛑 Request changes on PR #{number} ({target.full_name}):\n{comment}"

    async def _build_approve_pr(self, client, target: RepoTarget, intent: GithubIntent, now):
        number = _require_pr_number(intent.pr)
        comment = (intent.pr.comment or "").strip() or None
        payload = ApprovePrPayload(owner=target.owner, repo=target.repo, number=number, comment=comment)
        suffix = f"\n{comment}" if comment else ""
        return payload, f"✅ Approve PR #{number} ({target.full_name}){suffix}"

    async def _build_review_comment(self, client, target: RepoTarget, intent: GithubIntent, now):
        number = _require_pr_number(intent.pr)
        comment = (intent.pr.comment or "").strip()
        if not comment:
            raise ProposalError("What should the review say?")
        payload = ReviewCommentPayload(owner=target.owner, repo=target.repo, number=number, comment=comment)
        return payload, f"📝 Review comment on PR #{number} ({target.full_name}):\n{comment}"

    async def _build_dismiss_review(self, client, target: RepoTarget, intent: GithubIntent, now):
        number = _require_pr_number(intent.pr)
        if intent.pr.review_id is None or intent.pr.review_id < 1:
            raise ProposalError("Which review? I need the review id to dismiss it.")
        message = (intent.pr.comment or "").strip() or "Dismissing review."
        payload = DismissReviewPayload(
            owner=target.owner,
            repo=target.repo,
            number=number,
            review_id=intent.pr.review_id,
            message=message,
        )
        return payload, f"🙅 Dismiss review {payload.review_id} on PR #{number} ({target.full_name}):\n{message}"

    async def _build_create_branch(self, client, target: RepoTarget, intent: GithubIntent, now):
        draft = intent.branch
        name = ((draft.name if draft else None) or "").strip()
        if not name:
            raise ProposalError("What should the new branch be called?")
        from_branch = ((draft.from_branch if draft else None) or "").strip() or None
        payload = CreateBranchPayload(owner=target.owner, repo=target.repo, branch=name, from_branch=from_branch)
        source = from_branch or "the default branch"
        return payload, f"🌿 Create branch {name} from {source} ({target.full_name})"

    async def _build_open_pr(self, client: GithubClient, target: RepoTarget, intent: GithubIntent, now):
        pr = intent.pr or PullRequestDraft()
        head = (pr.head_branch or "").strip()
        if not head:
            raise ProposalError("Which branch should the pull request come from?")
        base = (pr.base_branch or "").strip()
        if not base:
            base = await client.get_default_branch(owner=target.owner, repo=target.repo)
        title = (pr.title or "").strip() or f"Merge {head} into {base}"
        payload = OpenPrPayload(
            owner=target.owner,
            repo=target.repo,
            head=head,
            base=base,
            title=title,
            body=pr.body,
        )
        preview = f"🔀 Open PR ({target.full_name})\n{head} → {base}\nTitle: {title}\nBody: {pr.body or '(empty)'}"
        return payload, preview

    async def _build_merge_pr(self, client, target: RepoTarget, intent: GithubIntent, now):
        number = _require_pr_number(intent.pr)
        method = intent.pr.merge_method or "merge"
        payload = MergePrPayload(owner=target.owner, repo=target.repo, number=number, merge_method=method)
        return payload, f"🔀 Merge PR #{number} ({target.full_name}) using {method}"

    async def _build_update_pr_branch(self, client, target: RepoTarget, intent: GithubIntent, now):
        number = _require_pr_number(intent.pr)
        payload = UpdatePrBranchPayload(owner=target.owner, repo=target.repo, number=number)
        return payload, f"🔄 Update PR #{number} branch with its base ({target.full_name})"

    async def _build_edit_code(self, client: GithubClient, target: RepoTarget, intent: GithubIntent, now: datetime):
        draft = intent.code_edit or CodeEditDraft()
        instructions = (draft.instructions or "").strip()
        if not instructions:
            raise ProposalError("Please describe the code changes you want me to make.")
        paths = list(dict.fromkeys(path.strip() for path in draft.files if path.strip()))
        if not paths:
            raise ProposalError('Please specify the file(s) to edit (e.g., "edit README.md").')
        if len(paths) > self._max_edit_files:
            raise ProposalError(f"Too many files. Max {self._max_edit_files} files per edit.")
        if self._code_editor is None:
            raise ProposalError("Code editing is not configured.")

        base_branch = await client.get_default_branch(owner=target.owner, repo=target.repo)
        originals: list[tuple[SourceFile, str]] = []
        for path in paths:
            remote = await client.get_file(owner=target.owner, repo=target.repo, path=path, ref=base_branch)
            try:
                content = base64.b64decode(remote.content).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as exc:
                raise ProposalError(f"{path} is not a text file I can edit.") from exc
            originals.append((SourceFile(path=path, content=content), remote.sha))

        diffs = await self._code_editor.generate_diffs([source for source, _ in originals], instructions)

        edited: list[EditedFile] = []
        previews: list[str] = []
        for source, sha in originals:
            patches = [item for item in diffs if item.path == source.path]
            if not patches:
                raise ProposalError(f"No patch was produced for {source.path}.")
            updated = source.content
            try:
                for patch in patches:
                    updated = apply_diff(updated, patch.diff, source.path)
            except PatchApplyError as exc:
                logger.info("Proposed diff did not apply: path=%s error=%s", source.path, exc)
                raise ProposalError(f"❌ The proposed edit for {source.path} doesn't match the file: {exc}") from exc
            edited.append(
                EditedFile(
                    path=source.path,
                    sha=sha,
                    content_base64=base64.b64encode(updated.encode("utf-8")).decode("ascii"),
                )
            )
            previews.append(f"--- {source.path}\n" + "\n".join(patch.diff for patch in patches))

        branch_name = (draft.branch_name or "").strip() or f"assistant/edit-{int(now.timestamp())}"
        commit_message = (draft.commit_message or "").strip() or (
            f"Update {paths[0]}" if len(paths) == 1 else f"Update {len(paths)} files"
        )
        payload = EditCodePayload(
            owner=target.owner,
            repo=target.repo,
            base_branch=base_branch,
            branch_name=branch_name,
            commit_message=commit_message,
            direct_commit=draft.direct_commit,
            files=edited,
        )
        mode = f"direct commit to {base_branch}" if draft.direct_commit else f"PR from {branch_name} into {base_branch}"
        preview = (
            f"🧪 Code edit preview ({target.full_name}):\n"
            + "\n\n".join(previews)
            + f"\n\nCommit: {commit_message}\nMode: {mode}"
        )
        return payload, preview


async def _run_create_issue(client: GithubClient, p: CreateIssuePayload) -> str:
    issue = await client.create_issue(owner=p.owner, repo=p.repo, title=p.title, body=p.body, labels=p.labels)
    return f"✅ Issue #{issue.number} created: {issue.url}"


async def _run_comment_pr(client: GithubClient, p: CommentPrPayload) -> str:
    url = await client.comment_on_pr(owner=p.owner, repo=p.repo, number=p.number, body=p.comment)
    return f"✅ Comment posted: {url}"


async def _run_assign_reviewers(client: GithubClient, p: AssignReviewersPayload) -> str:
    url = await client.assign_reviewers(owner=p.owner, repo=p.repo, number=p.number, reviewers=p.reviewers)
    return f"✅ Reviewers requested: {url}"


async def _run_request_changes(client: GithubClient, p: RequestChangesPayload) -> str:
    url = await client.request_changes(owner=p.owner, repo=p.repo, number=p.number, body=p.comment)
    return f"✅ Changes requested: {url}"


async def _run_approve_pr(client: GithubClient, p: ApprovePrPayload) -> str:
    url = await client.approve_review(owner=p.owner, repo=p.repo, number=p.number, body=p.comment)
    return f"✅ PR approved: {url}"


async def _run_review_comment(client: GithubClient, p: ReviewCommentPayload) -> str:
    url = await client.comment_review(owner=p.owner, repo=p.repo, number=p.number, body=p.comment)
    return f"✅ Review submitted: {url}"


async def _run_dismiss_review(client: GithubClient, p: DismissReviewPayload) -> str:
    url = await client.dismiss_review(
        owner=p.owner, repo=p.repo, number=p.number, review_id=p.review_id, message=p.message
    )
    return f"✅ Review dismissed: {url}"


async def _run_create_branch(client: GithubClient, p: CreateBranchPayload) -> str:
    source = p.from_branch or await client.get_default_branch(owner=p.owner, repo=p.repo)
    sha = await client.get_branch_sha(owner=p.owner, repo=p.repo, branch=source)
    url = await client.create_branch(owner=p.owner, repo=p.repo, branch=p.branch, from_sha=sha)
    return f"✅ Branch created: {url}"


async def _run_open_pr(client: GithubClient, p: OpenPrPayload) -> str:
    base = p.base or await client.get_default_branch(owner=p.owner, repo=p.repo)
    url = await client.create_pull_request(owner=p.owner, repo=p.repo, title=p.title, head=p.head, base=base, body=p.body)
    return f"✅ PR opened: {url}"


async def _run_merge_pr(client: GithubClient, p: MergePrPayload) -> str:
    url = await client.merge_pull_request(owner=p.owner, repo=p.repo, number=p.number, merge_method=p.merge_method)
    return f"✅ PR merged: {url}"


async def _run_update_pr_branch(client: GithubClient, p: UpdatePrBranchPayload) -> str:
    url = await client.update_pull_request_branch(owner=p.owner, repo=p.repo, number=p.number)
    return f"✅ PR branch updated: {url}"


async def _write_files(client: GithubClient, p: EditCodePayload, branch: str) -> str:
    written: list[str] = []
    last_url = ""
    for item in p.files:
        try:
            last_url = await client.update_file(
                owner=p.owner,
                repo=p.repo,
                path=item.path,
                message=p.commit_message,
                content_base64=item.content_base64,
                sha=item.sha,
                branch=branch,
            )
        except Exception as exc:
            if written:
                raise PartialCommitError(branch, written, item.path) from exc
            raise
        written.append(item.path)
    return last_url


async def _run_edit_code(client: GithubClient, p: EditCodePayload) -> str:
    if p.direct_commit:
        url = await _write_files(client, p, p.base_branch)
        return f"✅ Committed directly to {p.base_branch}: {url}"

    base_sha = await client.get_branch_sha(owner=p.owner, repo=p.repo, branch=p.base_branch)
    await client.create_branch(owner=p.owner, repo=p.repo, branch=p.branch_name, from_sha=base_sha)
    await _write_files(client, p, p.branch_name)
    url = await client.create_pull_request(
        owner=p.owner,
        repo=p.repo,
        title=p.commit_message,
        head=p.branch_name,
        base=p.base_branch,
        body="Created by your assistant after confirmation.",
    )
    return f"✅ PR opened: {url}"


EXECUTORS: dict[type, Callable[[GithubClient, Any], Awaitable[str]]] = {
    CreateIssuePayload: _run_create_issue,
    CommentPrPayload: _run_comment_pr,
    AssignReviewersPayload: _run_assign_reviewers,
    RequestChangesPayload: _run_request_changes,
    ApprovePrPayload: _run_approve_pr,
    ReviewCommentPayload: _run_review_comment,
    DismissReviewPayload: _run_dismiss_review,
    CreateBranchPayload: _run_create_branch,
    OpenPrPayload: _run_open_pr,
    MergePrPayload: _run_merge_pr,
    UpdatePrBranchPayload: _run_update_pr_branch,
    EditCodePayload: _run_edit_code,
}


async def execute_payload(client: GithubClient, payload: RepoTarget) -> str:
    executor = EXECUTORS.get(type(payload))
    if executor is None:
        raise TypeError(f"No executor for {type(payload).__name__}")
    return await executor(client, payload)

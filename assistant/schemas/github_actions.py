"""Typed pending-action payloads.

A ``github`` pending action stores exactly one of the payload models below,
discriminated by ``action``. Payloads are validated when a proposal is written
and again when it is loaded for confirmation.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter


class RepoTarget(BaseModel):
    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class CreateIssuePayload(RepoTarget):
    action: Literal["create_issue"] = "create_issue"
    title: str = Field(min_length=1)
    body: str | None = None
    labels: list[str] = Field(default_factory=list)


class CommentPrPayload(RepoTarget):
    action: Literal["comment_pr"] = "comment_pr"
    number: int = Field(ge=1)
    comment: str = Field(min_length=1)


class AssignReviewersPayload(RepoTarget):
    action: Literal["assign_reviewers"] = "assign_reviewers"
    number: int = Field(ge=1)
    reviewers: list[str] = Field(min_length=1)


class RequestChangesPayload(RepoTarget):
    action: Literal["request_changes"] = "request_changes"
    number: int = Field(ge=1)
    comment: str = Field(min_length=1)


class ApprovePrPayload(RepoTarget):
    action: Literal["approve_pr"] = "approve_pr"
    number: int = Field(ge=1)
    comment: str | None = None


class ReviewCommentPayload(RepoTarget):
    action: Literal["review_comment"] = "review_comment"
    number: int = Field(ge=1)
    comment: str = Field(min_length=1)


class DismissReviewPayload(RepoTarget):
    action: Literal["dismiss_review"] = "dismiss_review"
    number: int = Field(ge=1)
    review_id: int = Field(ge=1)
    message: str = Field(min_length=1)


class CreateBranchPayload(RepoTarget):
    action: Literal["create_branch"] = "create_branch"
    branch: str = Field(min_length=1)
    from_branch: str | None = None


class OpenPrPayload(RepoTarget):
    action: Literal["open_pr"] = "open_pr"
    head: str = Field(min_length=1)
    base: str | None = None
    title: str = Field(min_length=1)
    body: str | None = None


class MergePrPayload(RepoTarget):
    action: Literal["merge_pr"] = "merge_pr"
    number: int = Field(ge=1)
    merge_method: Literal["merge", "squash", "rebase"] = "merge"


class UpdatePrBranchPayload(RepoTarget):
    action: Literal["update_pr_branch"] = "update_pr_branch"
    number: int = Field(ge=1)


class EditedFile(BaseModel):
    path: str = Field(min_length=1)
    sha: str = Field(min_length=1)
    content_base64: str


class EditCodePayload(RepoTarget):
    action: Literal["edit_code"] = "edit_code"
    base_branch: str = Field(min_length=1)
    branch_name: str = Field(min_length=1)
    commit_message: str = Field(min_length=1)
    direct_commit: bool = False
    files: list[EditedFile] = Field(min_length=1)


GithubActionPayload = Annotated[
    CreateIssuePayload
    | CommentPrPayload
    | AssignReviewersPayload
    | RequestChangesPayload
    | ApprovePrPayload
    | ReviewCommentPayload
    | DismissReviewPayload
    | CreateBranchPayload
    | OpenPrPayload
    | MergePrPayload
    | UpdatePrBranchPayload
    | EditCodePayload,
    Field(discriminator="action"),
]

github_payload_adapter = TypeAdapter(GithubActionPayload)

GITHUB_PAYLOAD_TYPES: tuple[type[RepoTarget], ...] = (
    CreateIssuePayload,
    CommentPrPayload,
    AssignReviewersPayload,
    RequestChangesPayload,
    ApprovePrPayload,
    ReviewCommentPayload,
    DismissReviewPayload,
    CreateBranchPayload,
    OpenPrPayload,
    MergePrPayload,
    UpdatePrBranchPayload,
    EditCodePayload,
)


class OAuthStatePayload(BaseModel):
    state: str = Field(min_length=16)
    user_id: str


# Classifier output for a GitHub request. Fields stay optional; the proposal
# step reports what is missing.


class IssueDraft(BaseModel):
    title: str | None = None
    body: str | None = None
    labels: list[str] = Field(default_factory=list)


class PullRequestDraft(BaseModel):
    number: int | None = None
    comment: str | None = None
    reviewers: list[str] = Field(default_factory=list)
    merge_method: Literal["merge", "squash", "rebase"] | None = None
    review_id: int | None = None
    base_branch: str | None = None
    head_branch: str | None = None
    title: str | None = None
    body: str | None = None


class CodeEditDraft(BaseModel):
    instructions: str | None = None
    files: list[str] = Field(default_factory=list)
    branch_name: str | None = None
    commit_message: str | None = None
    direct_commit: bool = False


class BranchDraft(BaseModel):
    name: str | None = None
    from_branch: str | None = None


GithubIntentAction = Literal[
    "create_issue",
    "comment_pr",
    "assign_reviewers",
    "request_changes",
    "approve_pr",
    "review_comment",
    "dismiss_review",
    "create_branch",
    "open_pr",
    "merge_pr",
    "update_pr_branch",
    "edit_code",
    "list_repos",
    "set_default_repo",
]


class GithubIntent(BaseModel):
    action: GithubIntentAction
    repo: str | None = None
    issue: IssueDraft | None = None
    pr: PullRequestDraft | None = None
    code_edit: CodeEditDraft | None = None
    branch: BranchDraft | None = None

"""GitHub webhook event models.

Only three deliveries are understood:
- issues / opened: a new request for generated content
- issue_comment / created: acknowledged and ignored
- pull_request_review_comment / created: feedback on a generated PR
"""

from typing import Union

from pydantic import BaseModel, Field


class _RepositoryEvent(BaseModel):
    """Fields shared by every supported delivery.

    Attributes:
        owner: Repository owner login.
        repository: Repository name (without owner prefix).
        full_name: "{owner}/{repo}" exactly as sent in the payload.
        author: Login of the user who triggered the event.
    """

    owner: str = Field(..., min_length=1)

    repository: str = Field(..., min_length=1)

    full_name: str = Field(..., min_length=1)

    author: str = Field(default="")


class IssueOpenedEvent(_RepositoryEvent):
    """A newly opened issue."""

    issue_number: int = Field(..., gt=0, description="Issue number")

    title: str = Field(..., min_length=1, description="Issue title")

    body: str = Field(default="", description="Issue body (may be empty)")

    @property
    def subject_id(self) -> str:
        return f"{self.full_name}#{self.issue_number}"


class IssueCommentEvent(_RepositoryEvent):
    """A comment on an issue or PR conversation."""

    issue_number: int = Field(..., gt=0)

    comment_id: int = Field(..., gt=0)

    body: str = Field(default="")

    @property
    def subject_id(self) -> str:
        return f"{self.full_name}#{self.issue_number}"


class ReviewCommentEvent(_RepositoryEvent):
    """A pull request review comment.

    Attributes:
        pr_number: Pull request number.
        comment_id: Review comment id, used for reactions.
        body: Comment text.
        head_ref: Name of the PR's head branch.
    """

    pr_number: int = Field(..., gt=0)

    comment_id: int = Field(..., gt=0)

    body: str = Field(default="")

    head_ref: str = Field(..., min_length=1)

    @property
    def subject_id(self) -> str:
        return f"{self.full_name}#{self.pr_number}"


WebhookEvent = Union[IssueOpenedEvent, IssueCommentEvent, ReviewCommentEvent]

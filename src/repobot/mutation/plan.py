"""Mutation plans: ordered GitHub write operations.

A MutationPlan is built by a workflow from an artifact and its target
repository, then run step by step by RepositoryMutator. Plans are checked
when they are built:

- A branch created by the plan is created before any write on it.
- No write on a pull request's head branch follows the step that opens it.
- A branch is created at most once.

Writes to branches the plan does not create (an existing PR head branch)
are allowed anywhere.
"""

from enum import Enum
from string import Template
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.repobot.classifier.models import WorkflowKind


BRANCH_PREFIX = "ai"


class InvalidPlanError(Exception):
    """Raised when a plan's steps are out of order.

    Attributes:
        step_index: Index of the offending step.
    """

    def __init__(self, message: str, step_index: Optional[int] = None):
        self.step_index = step_index
        super().__init__(message)


class ReactionTarget(str, Enum):
    ISSUE = "issue"
    PR_COMMENT = "pr_comment"


class _Step(BaseModel):
    model_config = ConfigDict(frozen=True)


class CreateBranch(_Step):
    """Create ``branch`` from the head of ``base``."""

    kind: Literal["create_branch"] = "create_branch"
    branch: str = Field(..., min_length=1)
    base: str = Field(default="main", min_length=1)


class WriteFile(_Step):
    """Create a file, or update it in place when ``sha`` is given."""

    kind: Literal["write_file"] = "write_file"
    path: str = Field(..., min_length=1)
    content: str
    message: str = Field(..., min_length=1)
    branch: str = Field(..., min_length=1)
    sha: Optional[str] = None

    @property
    def is_update(self) -> bool:
        return self.sha is not None


class DeleteFile(_Step):
    kind: Literal["delete_file"] = "delete_file"
    path: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    branch: str = Field(..., min_length=1)
    sha: str = Field(..., min_length=1)


class OpenPullRequest(_Step):
    kind: Literal["open_pull_request"] = "open_pull_request"
    title: str = Field(..., min_length=1)
    body: str = ""
    head: str = Field(..., min_length=1)
    base: str = Field(default="main", min_length=1)


class Comment(_Step):
    """Comment on an issue or pull request conversation.

    ``body`` may reference outputs of earlier steps as ``$pr_number`` and
    ``$pr_url``; unknown placeholders are left as written.
    """

    kind: Literal["comment"] = "comment"
    issue_number: int = Field(..., gt=0)
    body: str = Field(..., min_length=1)

    def render(self, outputs: Dict[str, Any]) -> str:
        return Template(self.body).safe_substitute(outputs)


class React(_Step):
    """Add a reaction to an issue or a pull request review comment."""

    kind: Literal["react"] = "react"
    target: ReactionTarget = ReactionTarget.ISSUE
    subject_id: int = Field(..., gt=0)
    content: str = Field(..., min_length=1)


MutationStep = Union[CreateBranch, WriteFile, DeleteFile, OpenPullRequest, Comment, React]


def validate_step_order(steps: Tuple[MutationStep, ...]) -> None:
    """Check the ordering rules of a plan.

    Raises:
        InvalidPlanError: On the first violated rule.
    """
    created_at: Dict[str, int] = {}
    for index, step in enumerate(steps):
        if isinstance(step, CreateBranch):
            if step.branch in created_at:
                raise InvalidPlanError(
                    f"Branch {step.branch!r} is created twice",
                    step_index=index,
                )
            created_at[step.branch] = index

    opened: Dict[str, int] = {}
    for index, step in enumerate(steps):
        if isinstance(step, (WriteFile, DeleteFile)):
            created = created_at.get(step.branch)
            if created is not None and created > index:
                raise InvalidPlanError(
                    f"Write to {step.path!r} precedes creation of branch {step.branch!r}",
                    step_index=index,
                )
            if step.branch in opened:
                raise InvalidPlanError(
                    f"Write to {step.path!r} follows the pull request for {step.branch!r}",
                    step_index=index,
                )
        elif isinstance(step, OpenPullRequest):
            created = created_at.get(step.head)
            if created is not None and created > index:
                raise InvalidPlanError(
                    f"Pull request precedes creation of branch {step.head!r}",
                    step_index=index,
                )
            opened[step.head] = index


class MutationPlan(BaseModel):
    """Ordered GitHub write operations against one repository."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
    steps: Tuple[MutationStep, ...] = ()

    @model_validator(mode="after")
    def check_step_order(self) -> "MutationPlan":
        validate_step_order(self.steps)
        return self

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def step_names(self) -> List[str]:
        return [step.kind for step in self.steps]

    def extend(self, *steps: MutationStep) -> "MutationPlan":
        """Return a new plan with ``steps`` appended (re-validated)."""
        return MutationPlan(owner=self.owner, repo=self.repo, steps=self.steps + steps)


def branch_name(workflow: WorkflowKind, number: int) -> str:
    """Deterministic working branch for an issue.

    Example:
        >>> branch_name(WorkflowKind.BLOG, 42)
        'ai-blog-42'
    """
    return f"{BRANCH_PREFIX}-{workflow.value}-{number}"

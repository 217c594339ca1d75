"""Shared workflow driver.

A workflow receives one parsed delivery for its repository and drives it
through classification, generation and the repository mutation plan. The
blog and code workflows differ in vocabulary, paths, fallback behaviour
and PR wording; everything else lives here.

New issue:
    classify → +1 reaction → generate → build artifact
    → [create branch, write file, open PR, comment] → done

PR review comment:
    +1 reaction → classify → lifecycle move or content change → done

Any failed step halts the sequence and posts a best-effort comment on the
originating issue or pull request. Nothing is rolled back or retried.
"""

import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from src.repobot.artifacts.models import Artifact
from src.repobot.artifacts.frontmatter import serialize_artifact
from src.repobot.classifier.intent import classify_comment, classify_issue
from src.repobot.classifier.models import (
    CommentClassification,
    GenerationRequest,
    WorkflowKind,
)
from src.repobot.events.emitter import EventEmitter, NullEventEmitter
from src.repobot.events.models import EventType, WorkflowEvent
from src.repobot.generator.client import ContentGenerator
from src.repobot.github.client import GitHubClient
from src.repobot.github.models import PullRequestFile
from src.repobot.mutation.executor import MutationResult, RepositoryMutator
from src.repobot.mutation.plan import (
    Comment,
    CreateBranch,
    MutationPlan,
    MutationStep,
    OpenPullRequest,
    React,
    ReactionTarget,
    WriteFile,
    branch_name,
)
from src.repobot.state.machine import ProcessingStateMachine
from src.repobot.state.models import ProcessingStage
from src.repobot.webhook.models import (
    IssueCommentEvent,
    IssueOpenedEvent,
    ReviewCommentEvent,
    WebhookEvent,
)
from src.repobot.webhook.router import RepositoryEndpoint


logger = logging.getLogger(__name__)


ACK_REACTION = "+1"
DONE_REACTION = "rocket"
FEEDBACK_TRUNCATE_LIMIT = 50

CHANGE_FAILED_COMMENT = "Sorry, I had trouble making that change. Could you be more specific?"
PR_OPENED_COMMENT = "🤖 I've opened $pr_url for review. Comment on the pull request with any changes you'd like!"


def truncate_text(text: str, limit: int = FEEDBACK_TRUNCATE_LIMIT) -> str:
    """Shorten ``text`` to ``limit`` characters, marking the cut with "..."."""
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class OutcomeStatus(str, Enum):
    COMPLETED = "completed"
    IGNORED = "ignored"
    FAILED = "failed"


class WorkflowOutcome(BaseModel):
    """What happened to one delivery.

    Attributes:
        status: completed, ignored or failed.
        workflow: Workflow that handled the delivery.
        subject_id: "{owner}/{repo}#{number}" of the issue or PR.
        reason: Short machine-readable reason for ignored or failed outcomes.
        stage: Final processing stage, when processing started.
        failed_step: Step that failed, if any.
        completed_steps: Mutation steps that took effect.
        outputs: Values produced by the plan (pr_number, pr_url).
    """

    status: OutcomeStatus

    workflow: str

    subject_id: str

    reason: Optional[str] = None

    stage: Optional[ProcessingStage] = None

    failed_step: Optional[str] = None

    completed_steps: List[str] = Field(default_factory=list)

    outputs: Dict[str, Any] = Field(default_factory=dict)


class Workflow(ABC):
    """Base class for the blog and code workflows.

    Attributes:
        endpoint: Repository this workflow mutates.
        github_client: GitHub API client.
        generator: Content generator gateway.
        mutator: Plan executor.
        event_emitter: Sink for workflow events.
        base_branch: Branch new work is cut from and PRs target.
    """

    kind: WorkflowKind

    # Comment posted on the issue when a new request cannot be completed
    issue_failure_comment: str

    def __init__(
        self,
        endpoint: RepositoryEndpoint,
        github_client: GitHubClient,
        generator: ContentGenerator,
        mutator: RepositoryMutator,
        event_emitter: Optional[EventEmitter] = None,
        base_branch: str = "main",
    ):
        self.endpoint = endpoint
        self.github_client = github_client
        self.generator = generator
        self.mutator = mutator
        self.event_emitter = event_emitter or NullEventEmitter()
        self.base_branch = base_branch

    @property
    def owner(self) -> str:
        return self.endpoint.repo_owner

    @property
    def repo(self) -> str:
        return self.endpoint.repo

    @property
    def repository(self) -> str:
        return self.endpoint.full_name

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def handle(self, event: WebhookEvent) -> WorkflowOutcome:
        """Handle one parsed delivery routed to this workflow."""
        started = time.monotonic()

        if isinstance(event, IssueOpenedEvent):
            outcome = await self.handle_issue(event)
        elif isinstance(event, ReviewCommentEvent):
            outcome = await self.handle_review_comment(event)
        elif isinstance(event, IssueCommentEvent):
            # PR review comments are the editing channel
            outcome = self._ignored(event.subject_id, "issue_comment")
        else:
            outcome = self._ignored("unknown", "unsupported_event")

        if outcome.status == OutcomeStatus.COMPLETED:
            await self._safe_emit(
                WorkflowEvent(
                    event_type=EventType.COMPLETION,
                    subject_id=outcome.subject_id,
                    repository=self.repository,
                    workflow=self.kind.value,
                    details={
                        "duration_seconds": round(time.monotonic() - started, 3),
                        **outcome.outputs,
                    },
                )
            )
        elif outcome.status == OutcomeStatus.IGNORED:
            await self._safe_emit(
                WorkflowEvent(
                    event_type=EventType.IGNORED,
                    subject_id=outcome.subject_id,
                    repository=self.repository,
                    workflow=self.kind.value,
                    details={"reason": outcome.reason},
                )
            )

        return outcome

    # ------------------------------------------------------------------
    # New issues
    # ------------------------------------------------------------------

    async def handle_issue(self, event: IssueOpenedEvent) -> WorkflowOutcome:
        """Turn an actionable issue into a branch, a file and a pull request."""
        request = classify_issue(event.title, event.body, self.kind)
        if request is None:
            return self._ignored(event.subject_id, "not_actionable")

        tracker = self._tracker(event.subject_id)
        await tracker.transition(ProcessingStage.CLASSIFIED)
        await self._react_to_issue(event.issue_number, ACK_REACTION)

        content = await self.generate_content(request, event, tracker)
        if content is None:
            await self._comment(event.issue_number, self.issue_failure_comment)
            return self._outcome(tracker, event.subject_id)

        await tracker.transition(ProcessingStage.GENERATED)
        artifact = Artifact.from_request(request, self.kind, content)
        plan = self.build_issue_plan(event, artifact)

        logger.info(
            "Executing issue plan",
            extra={
                "subject_id": event.subject_id,
                "workflow": self.kind.value,
                "path": artifact.canonical_path,
                "steps": plan.step_names(),
            },
        )

        result = await self.mutator.execute(plan, tracker)
        # A failed PR-link comment leaves the pull request in place
        if not result.success and result.failed_step != "comment":
            await self._comment(event.issue_number, self.issue_failure_comment)

        return self._outcome(tracker, event.subject_id, result)

    @abstractmethod
    async def generate_content(
        self,
        request: GenerationRequest,
        event: IssueOpenedEvent,
        tracker: ProcessingStateMachine,
    ) -> Optional[str]:
        """Produce content for a request, or None after failing the tracker."""

    @abstractmethod
    def commit_message(self, artifact: Artifact) -> str:
        """Commit message for the initial file write."""

    @abstractmethod
    def pull_request_title(self, artifact: Artifact) -> str:
        """Title of the pull request opened for a new issue."""

    @abstractmethod
    def pull_request_body(self, event: IssueOpenedEvent, artifact: Artifact) -> str:
        """Body of the pull request opened for a new issue."""

    def build_issue_plan(self, event: IssueOpenedEvent, artifact: Artifact) -> MutationPlan:
        """[create branch, write file, open PR, acknowledge] for a new issue."""
        branch = branch_name(self.kind, event.issue_number)
        steps: List[MutationStep] = [
            CreateBranch(branch=branch, base=self.base_branch),
            WriteFile(
                path=artifact.canonical_path,
                content=serialize_artifact(artifact),
                message=self.commit_message(artifact),
                branch=branch,
            ),
            OpenPullRequest(
                title=self.pull_request_title(artifact),
                body=self.pull_request_body(event, artifact),
                head=branch,
                base=self.base_branch,
            ),
            Comment(issue_number=event.issue_number, body=PR_OPENED_COMMENT),
        ]
        return MutationPlan(owner=self.owner, repo=self.repo, steps=tuple(steps))

    # ------------------------------------------------------------------
    # PR review comments
    # ------------------------------------------------------------------

    async def handle_review_comment(self, event: ReviewCommentEvent) -> WorkflowOutcome:
        """React, classify and dispatch a PR review comment."""
        await self._react_to_review_comment(event.comment_id, ACK_REACTION)

        verdict = classify_comment(event.body, self.kind)
        if not verdict.is_actionable:
            return self._ignored(event.subject_id, "not_actionable")

        tracker = self._tracker(event.subject_id)
        await tracker.transition(ProcessingStage.CLASSIFIED)

        if verdict.is_lifecycle_change:
            return await self.handle_lifecycle_change(event, verdict, tracker)
        return await self.handle_change_request(event, tracker)

    async def handle_lifecycle_change(
        self,
        event: ReviewCommentEvent,
        verdict: CommentClassification,
        tracker: ProcessingStateMachine,
    ) -> WorkflowOutcome:
        """Move an artifact between lifecycle states.

        Workflows without lifecycle vocabulary never get here.
        """
        await self._fail(
            tracker, "lifecycle_change", f"{self.kind.value} artifacts have no lifecycle"
        )
        return self._outcome(tracker, event.subject_id)

    @abstractmethod
    def select_file(self, files: List[PullRequestFile]) -> Optional[PullRequestFile]:
        """Pick the artifact file among a pull request's changed files."""

    @abstractmethod
    async def apply_change(self, path: str, current_text: str, instruction: str) -> str:
        """Return the new file text for a change request."""

    @abstractmethod
    def change_commit_message(self, instruction: str) -> str:
        """Commit message for a change-request update."""

    async def find_artifact_file(
        self,
        event: ReviewCommentEvent,
        tracker: ProcessingStateMachine,
    ) -> Optional[PullRequestFile]:
        """List the PR's files and pick the artifact; fails the tracker if none."""
        try:
            files = await self.github_client.list_pr_files(
                self.owner, self.repo, event.pr_number
            )
        except Exception as exc:
            await self._fail(tracker, "list_pr_files", exc)
            return None

        selected = self.select_file(files)
        if selected is None:
            await self._fail(
                tracker, "select_file", "No generated artifact file in pull request"
            )
            logger.warning(
                "No artifact file found in pull request",
                extra={
                    "subject_id": event.subject_id,
                    "files": [f.filename for f in files],
                },
            )
        return selected

    async def handle_change_request(
        self,
        event: ReviewCommentEvent,
        tracker: ProcessingStateMachine,
    ) -> WorkflowOutcome:
        """Regenerate the PR's artifact file from the reviewer's instruction."""
        selected = await self.find_artifact_file(event, tracker)
        if selected is None:
            await self._comment(event.pr_number, CHANGE_FAILED_COMMENT)
            return self._outcome(tracker, event.subject_id)

        try:
            current = await self.github_client.get_contents(
                self.owner, self.repo, selected.filename, ref=event.head_ref
            )
        except Exception as exc:
            await self._fail(tracker, "get_contents", exc)
            await self._comment(event.pr_number, CHANGE_FAILED_COMMENT)
            return self._outcome(tracker, event.subject_id)

        try:
            updated = await self.apply_change(selected.filename, current.content, event.body)
        except Exception as exc:
            await self._fail(tracker, "generate", exc)
            await self._comment(event.pr_number, CHANGE_FAILED_COMMENT)
            return self._outcome(tracker, event.subject_id)

        await tracker.transition(ProcessingStage.GENERATED)
        plan = MutationPlan(
            owner=self.owner,
            repo=self.repo,
            steps=(
                WriteFile(
                    path=selected.filename,
                    content=updated,
                    message=self.change_commit_message(event.body),
                    branch=event.head_ref,
                    sha=current.sha,
                ),
                React(
                    target=ReactionTarget.PR_COMMENT,
                    subject_id=event.comment_id,
                    content=DONE_REACTION,
                ),
            ),
        )

        result = await self.mutator.execute(plan, tracker)
        if not result.success:
            await self._comment(event.pr_number, CHANGE_FAILED_COMMENT)

        return self._outcome(tracker, event.subject_id, result)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _tracker(self, subject_id: str) -> ProcessingStateMachine:
        return ProcessingStateMachine(
            subject_id=subject_id,
            repository=self.repository,
            workflow=self.kind.value,
            emitter=self.event_emitter,
        )

    def _ignored(self, subject_id: str, reason: str) -> WorkflowOutcome:
        logger.info(
            "Delivery ignored",
            extra={"subject_id": subject_id, "workflow": self.kind.value, "reason": reason},
        )
        return WorkflowOutcome(
            status=OutcomeStatus.IGNORED,
            workflow=self.kind.value,
            subject_id=subject_id,
            reason=reason,
        )

    def _outcome(
        self,
        tracker: ProcessingStateMachine,
        subject_id: str,
        result: Optional[MutationResult] = None,
    ) -> WorkflowOutcome:
        failed = tracker.is_failed
        return WorkflowOutcome(
            status=OutcomeStatus.FAILED if failed else OutcomeStatus.COMPLETED,
            workflow=self.kind.value,
            subject_id=subject_id,
            reason=tracker.state.error if failed else None,
            stage=tracker.current_stage,
            failed_step=tracker.state.failed_step,
            completed_steps=list(result.completed_steps) if result else [],
            outputs=dict(result.outputs) if result else {},
        )

    async def _fail(
        self,
        tracker: ProcessingStateMachine,
        step: str,
        error: Union[Exception, str],
    ) -> None:
        """Fail the tracker outside a plan and emit an error event."""
        if isinstance(error, Exception):
            message = str(error) or type(error).__name__
            error_type = type(error).__name__
        else:
            message = error
            error_type = "WorkflowError"

        logger.error(
            "Workflow step failed",
            extra={
                "subject_id": tracker.state.subject_id,
                "workflow": self.kind.value,
                "step": step,
                "error": message,
            },
        )
        await tracker.fail(step, message)
        await self._safe_emit(
            WorkflowEvent(
                event_type=EventType.ERROR,
                subject_id=tracker.state.subject_id,
                repository=self.repository,
                workflow=self.kind.value,
                details={
                    "step": step,
                    "error_message": message,
                    "error_type": error_type,
                },
            )
        )

    async def _comment(self, issue_number: int, body: str) -> None:
        """Best-effort comment; failures are logged only."""
        try:
            await self.github_client.create_issue_comment(
                self.owner, self.repo, issue_number, body
            )
        except Exception:
            logger.exception(
                "Failed to post comment",
                extra={"repository": self.repository, "issue_number": issue_number},
            )

    async def _react_to_issue(self, issue_number: int, content: str) -> None:
        try:
            await self.github_client.create_issue_reaction(
                self.owner, self.repo, issue_number, content
            )
        except Exception:
            logger.exception(
                "Failed to react to issue",
                extra={"repository": self.repository, "issue_number": issue_number},
            )

    async def _react_to_review_comment(self, comment_id: int, content: str) -> None:
        try:
            await self.github_client.create_pr_comment_reaction(
                self.owner, self.repo, comment_id, content
            )
        except Exception:
            logger.exception(
                "Failed to react to review comment",
                extra={"repository": self.repository, "comment_id": comment_id},
            )

    async def _safe_emit(self, event: WorkflowEvent) -> None:
        try:
            await self.event_emitter.emit(event)
        except Exception:
            logger.exception(
                "Failed to emit workflow event",
                extra={
                    "event_type": event.event_type.value,
                    "subject_id": event.subject_id,
                },
            )

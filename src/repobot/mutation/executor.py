"""Runs mutation plans against GitHub.

Steps run strictly in order. The first failure halts the plan; steps that
already completed stay in place (a created branch is not deleted when a
later write fails). Each step moves the event's state machine forward:

    CreateBranch          -> branch_created
    WriteFile, DeleteFile -> file_written
    OpenPullRequest       -> pr_created
    Comment, React        -> acknowledged
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.repobot.events.emitter import EventEmitter, NullEventEmitter
from src.repobot.events.models import EventType, WorkflowEvent
from src.repobot.github.client import GitHubClient
from src.repobot.github.models import PRCreateRequest
from src.repobot.mutation.plan import (
    Comment,
    CreateBranch,
    DeleteFile,
    MutationPlan,
    MutationStep,
    OpenPullRequest,
    React,
    ReactionTarget,
    WriteFile,
)
from src.repobot.state.machine import ProcessingStateMachine
from src.repobot.state.models import ProcessingStage


logger = logging.getLogger(__name__)


STEP_STAGES: Dict[str, ProcessingStage] = {
    "create_branch": ProcessingStage.BRANCH_CREATED,
    "write_file": ProcessingStage.FILE_WRITTEN,
    "delete_file": ProcessingStage.FILE_WRITTEN,
    "open_pull_request": ProcessingStage.PR_CREATED,
    "comment": ProcessingStage.ACKNOWLEDGED,
    "react": ProcessingStage.ACKNOWLEDGED,
}


class MutationResult(BaseModel):
    """Outcome of running a plan.

    Attributes:
        completed_steps: Kinds of the steps that succeeded, in order.
        failed_step: Kind of the step that failed, if any.
        failed_step_index: Index of that step within the plan.
        error: Error message of the failure.
        outputs: Values produced by steps (pr_number, pr_url).
    """

    completed_steps: List[str] = Field(default_factory=list)
    failed_step: Optional[str] = None
    failed_step_index: Optional[int] = None
    error: Optional[str] = None
    outputs: Dict[str, Any] = Field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.failed_step is None

    @property
    def is_partial(self) -> bool:
        """Failed after at least one step had already taken effect."""
        return not self.success and bool(self.completed_steps)


class RepositoryMutator:
    """Executes MutationPlans with a GitHub client.

    Attributes:
        github_client: Client used for every step.
        event_emitter: Sink for STEP_COMPLETED and ERROR events.
    """

    def __init__(
        self,
        github_client: GitHubClient,
        event_emitter: Optional[EventEmitter] = None,
    ):
        self.github_client = github_client
        self.event_emitter = event_emitter or NullEventEmitter()

    async def execute(
        self,
        plan: MutationPlan,
        tracker: ProcessingStateMachine,
    ) -> MutationResult:
        """Run ``plan`` step by step.

        Args:
            plan: Validated plan to run.
            tracker: State machine of the event being handled.

        Returns:
            MutationResult; never raises for step failures.
        """
        result = MutationResult()
        subject_id = tracker.state.subject_id

        for index, step in enumerate(plan.steps):
            try:
                await self._run_step(plan, step, result.outputs)
            except Exception as exc:
                result.failed_step = step.kind
                result.failed_step_index = index
                result.error = str(exc) or type(exc).__name__

                logger.error(
                    "Mutation step failed",
                    extra={
                        "subject_id": subject_id,
                        "repository": plan.full_name,
                        "step": step.kind,
                        "step_index": index,
                        "completed_steps": list(result.completed_steps),
                        "error": result.error,
                    },
                )
                if result.completed_steps:
                    logger.warning(
                        "Plan halted after partial completion",
                        extra={
                            "subject_id": subject_id,
                            "completed_steps": list(result.completed_steps),
                            "failed_step": step.kind,
                        },
                    )

                await tracker.fail(step.kind, result.error)
                await self._safe_emit(
                    WorkflowEvent(
                        event_type=EventType.ERROR,
                        subject_id=subject_id,
                        repository=plan.full_name,
                        workflow=tracker.state.workflow,
                        details={
                            "step": step.kind,
                            "error_message": result.error,
                            "error_type": type(exc).__name__,
                            "completed_steps": list(result.completed_steps),
                        },
                    )
                )
                return result

            result.completed_steps.append(step.kind)
            await tracker.transition(STEP_STAGES[step.kind], details={"step": step.kind})
            await self._safe_emit(
                WorkflowEvent(
                    event_type=EventType.STEP_COMPLETED,
                    subject_id=subject_id,
                    repository=plan.full_name,
                    workflow=tracker.state.workflow,
                    details={"step": step.kind, **_step_target(step)},
                )
            )

        return result

    async def _run_step(
        self,
        plan: MutationPlan,
        step: MutationStep,
        outputs: Dict[str, Any],
    ) -> None:
        owner, repo = plan.owner, plan.repo
        github = self.github_client

        if isinstance(step, CreateBranch):
            sha = await github.get_ref(owner, repo, f"heads/{step.base}")
            await github.create_ref(owner, repo, step.branch, sha)

        elif isinstance(step, WriteFile):
            if step.is_update:
                await github.update_file(
                    owner, repo, step.path, step.content, step.message, step.branch, step.sha
                )
            else:
                await github.create_file(
                    owner, repo, step.path, step.content, step.message, step.branch
                )

        elif isinstance(step, DeleteFile):
            await github.delete_file(
                owner, repo, step.path, step.message, step.branch, step.sha
            )

        elif isinstance(step, OpenPullRequest):
            pr = await github.create_pull_request(
                owner,
                repo,
                PRCreateRequest(
                    title=step.title,
                    body=step.body,
                    head_branch=f"{owner}:{step.head}",
                    base_branch=step.base,
                ),
            )
            outputs["pr_number"] = pr.pr_number
            outputs["pr_url"] = pr.pr_url

        elif isinstance(step, Comment):
            await github.create_issue_comment(
                owner, repo, step.issue_number, step.render(outputs)
            )

        elif isinstance(step, React):
            if step.target == ReactionTarget.PR_COMMENT:
                await github.create_pr_comment_reaction(
                    owner, repo, step.subject_id, step.content
                )
            else:
                await github.create_issue_reaction(
                    owner, repo, step.subject_id, step.content
                )

        else:
            raise TypeError(f"Unsupported mutation step: {type(step).__name__}")

    async def _safe_emit(self, event: WorkflowEvent) -> None:
        """Emit an event, logging instead of raising on sink failures."""
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


def _step_target(step: MutationStep) -> Dict[str, Any]:
    if isinstance(step, (WriteFile, DeleteFile)):
        return {"path": step.path, "branch": step.branch}
    if isinstance(step, CreateBranch):
        return {"branch": step.branch}
    if isinstance(step, OpenPullRequest):
        return {"branch": step.head}
    return {}

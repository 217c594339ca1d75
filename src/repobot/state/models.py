"""Processing state models.

This module defines the data models for tracking one webhook event through
the repository mutation sequence:
- ProcessingStage: Enum of all processing stages
- StateTransition: Record of a stage change with timestamp and details
- ProcessingState: Complete state of one handled event
- VALID_TRANSITIONS: Map defining allowed stage changes

State lives only for the duration of a request; nothing is persisted.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ProcessingStage(str, Enum):
    """Stages a handled event progresses through.

    Stage Flow (new issue):
        received → classified → generated → branch_created
        → file_written → pr_created → acknowledged

    PR comments skip branch creation and PR creation: a content change goes
    generated → file_written, a lifecycle move goes classified →
    file_written. Any stage can transition to 'failed', which is terminal.

    Attributes:
        RECEIVED: Event accepted by the router.
        CLASSIFIED: Intent classifier found an actionable request.
        GENERATED: Content produced (by the backend or the fallback template).
        BRANCH_CREATED: Working branch exists.
        FILE_WRITTEN: A file was created, updated or deleted.
        PR_CREATED: Pull request opened.
        ACKNOWLEDGED: Requester notified by comment or reaction.
        FAILED: A step failed; the sequence halted.
    """

    RECEIVED = "received"
    CLASSIFIED = "classified"
    GENERATED = "generated"
    BRANCH_CREATED = "branch_created"
    FILE_WRITTEN = "file_written"
    PR_CREATED = "pr_created"
    ACKNOWLEDGED = "acknowledged"
    FAILED = "failed"


class StateTransition(BaseModel):
    """Record of a stage change.

    Attributes:
        from_stage: The stage before the transition.
        to_stage: The stage after the transition.
        timestamp: When the transition occurred (UTC).
        details: Optional metadata (step name, path, error).
    """

    from_stage: ProcessingStage = Field(
        ...,
        description="The processing stage before this transition",
    )

    to_stage: ProcessingStage = Field(
        ...,
        description="The processing stage after this transition",
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the transition occurred (UTC timezone)",
    )

    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Optional metadata about the transition",
    )


class ProcessingState(BaseModel):
    """State of one handled webhook event.

    Attributes:
        subject_id: "{owner}/{repo}#{number}" of the issue or pull request.
        repository: Full repository path in format "{owner}/{repo}".
        workflow: Workflow handling the event ("blog" or "code").
        current_stage: The current processing stage.
        state_history: Ordered list of all transitions.
        error: Error message once failed.
        failed_step: Name of the step that failed.
        created_at: When processing started (UTC).
    """

    subject_id: str = Field(
        ...,
        min_length=1,
        description='Subject identifier in format "{owner}/{repo}#{number}"',
    )

    repository: str = Field(
        ...,
        min_length=1,
        description='Full repository path in format "{owner}/{repo}"',
    )

    workflow: str = Field(..., min_length=1)

    current_stage: ProcessingStage = Field(
        default=ProcessingStage.RECEIVED,
        description="The current processing stage",
    )

    state_history: List[StateTransition] = Field(
        default_factory=list,
        description="Ordered list of all state transitions",
    )

    error: Optional[str] = Field(
        default=None,
        description="Error message if processing failed",
    )

    failed_step: Optional[str] = Field(
        default=None,
        description="Step that produced the failure",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When processing started (UTC)",
    )


# Stages advance strictly in order. The self-loops let one stage cover
# several steps of the same kind (a lifecycle move writes then deletes;
# a comment is followed by a reaction). FAILED is terminal.
VALID_TRANSITIONS: Dict[ProcessingStage, List[ProcessingStage]] = {
    ProcessingStage.RECEIVED: [
        ProcessingStage.CLASSIFIED,
        ProcessingStage.FAILED,
    ],
    # Lifecycle moves need no generation
    ProcessingStage.CLASSIFIED: [
        ProcessingStage.GENERATED,
        ProcessingStage.FILE_WRITTEN,
        ProcessingStage.FAILED,
    ],
    # Content changes update the existing PR branch
    ProcessingStage.GENERATED: [
        ProcessingStage.BRANCH_CREATED,
        ProcessingStage.FILE_WRITTEN,
        ProcessingStage.FAILED,
    ],
    ProcessingStage.BRANCH_CREATED: [
        ProcessingStage.FILE_WRITTEN,
        ProcessingStage.FAILED,
    ],
    ProcessingStage.FILE_WRITTEN: [
        ProcessingStage.FILE_WRITTEN,
        ProcessingStage.PR_CREATED,
        ProcessingStage.ACKNOWLEDGED,
        ProcessingStage.FAILED,
    ],
    ProcessingStage.PR_CREATED: [
        ProcessingStage.ACKNOWLEDGED,
        ProcessingStage.FAILED,
    ],
    ProcessingStage.ACKNOWLEDGED: [
        ProcessingStage.ACKNOWLEDGED,
        ProcessingStage.FAILED,
    ],
    ProcessingStage.FAILED: [],
}


def is_valid_transition(from_stage: ProcessingStage, to_stage: ProcessingStage) -> bool:
    """Check if a stage change is allowed.

    Example:
        >>> is_valid_transition(ProcessingStage.RECEIVED, ProcessingStage.CLASSIFIED)
        True
        >>> is_valid_transition(ProcessingStage.RECEIVED, ProcessingStage.PR_CREATED)
        False
    """
    return to_stage in VALID_TRANSITIONS.get(from_stage, [])


def is_terminal_stage(stage: ProcessingStage) -> bool:
    """Check if a stage has no outgoing transitions."""
    return len(VALID_TRANSITIONS.get(stage, [])) == 0

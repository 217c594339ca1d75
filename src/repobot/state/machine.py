"""Per-event processing state machine.

ProcessingStateMachine tracks one webhook event from receipt to
acknowledgement, rejecting out-of-order stage changes and recording every
transition. It lives for a single request and shares nothing.
"""

import logging
from typing import Any, Dict, Optional

from src.repobot.events.emitter import EventEmitter, NullEventEmitter
from src.repobot.events.models import EventType, WorkflowEvent
from src.repobot.state.models import (
    ProcessingStage,
    ProcessingState,
    StateTransition,
    is_valid_transition,
)


logger = logging.getLogger(__name__)


class InvalidTransitionError(Exception):
    """Raised when an invalid stage change is attempted.

    Attributes:
        from_stage: The current stage.
        to_stage: The attempted target stage.
        message: Human-readable error message.
    """

    def __init__(
        self,
        from_stage: ProcessingStage,
        to_stage: ProcessingStage,
        message: Optional[str] = None,
    ):
        self.from_stage = from_stage
        self.to_stage = to_stage
        self.message = message or (
            f"Invalid transition from {from_stage.value} to {to_stage.value}"
        )
        super().__init__(self.message)


class ProcessingStateMachine:
    """State machine for one handled event.

    Invariants:
    - Only transitions listed in VALID_TRANSITIONS are allowed
    - Every transition is recorded with a timestamp in state_history
    - A transition to FAILED stores the error and the failing step name

    Example:
        >>> machine = ProcessingStateMachine("org/site#7", "org/site", "blog")
        >>> await machine.transition(ProcessingStage.CLASSIFIED)
        >>> await machine.fail("create_branch", "Reference already exists")
        >>> machine.current_stage
        <ProcessingStage.FAILED: 'failed'>
    """

    def __init__(
        self,
        subject_id: str,
        repository: str,
        workflow: str,
        emitter: Optional[EventEmitter] = None,
    ):
        """Start tracking an event in the RECEIVED stage.

        Args:
            subject_id: "{owner}/{repo}#{number}" of the issue or PR.
            repository: Full repository path.
            workflow: Workflow name, used in emitted events.
            emitter: Sink for STATE_TRANSITION events.
        """
        self.state = ProcessingState(
            subject_id=subject_id,
            repository=repository,
            workflow=workflow,
        )
        self._emitter = emitter or NullEventEmitter()

    @property
    def current_stage(self) -> ProcessingStage:
        return self.state.current_stage

    @property
    def is_failed(self) -> bool:
        return self.state.current_stage == ProcessingStage.FAILED

    async def transition(
        self,
        to_stage: ProcessingStage,
        details: Optional[Dict[str, Any]] = None,
    ) -> ProcessingState:
        """Move to ``to_stage``.

        Args:
            to_stage: The target stage.
            details: Optional metadata recorded with the transition.

        Returns:
            The updated state.

        Raises:
            InvalidTransitionError: If the transition is not allowed.
        """
        details = details or {}
        from_stage = self.state.current_stage

        if not is_valid_transition(from_stage, to_stage):
            logger.warning(
                "Invalid state transition attempted",
                extra={
                    "subject_id": self.state.subject_id,
                    "from_stage": from_stage.value,
                    "to_stage": to_stage.value,
                },
            )
            raise InvalidTransitionError(from_stage, to_stage)

        self.state.state_history.append(
            StateTransition(from_stage=from_stage, to_stage=to_stage, details=details)
        )
        self.state.current_stage = to_stage

        if to_stage == ProcessingStage.FAILED:
            self.state.error = details.get("error") or "Unknown error (no details provided)"
            self.state.failed_step = details.get("step")

        logger.debug(
            "Transitioning processing state",
            extra={
                "subject_id": self.state.subject_id,
                "from_stage": from_stage.value,
                "to_stage": to_stage.value,
            },
        )

        if from_stage != to_stage:
            await self._emitter.emit(
                WorkflowEvent(
                    event_type=EventType.STATE_TRANSITION,
                    subject_id=self.state.subject_id,
                    repository=self.state.repository,
                    workflow=self.state.workflow,
                    details={
                        "from_stage": from_stage.value,
                        "to_stage": to_stage.value,
                    },
                )
            )

        return self.state

    async def fail(self, step: str, error: str) -> ProcessingState:
        """Halt processing, attributing the failure to ``step``."""
        return await self.transition(
            ProcessingStage.FAILED,
            details={"step": step, "error": error},
        )

"""Workflow event models for observability.

This module defines the events emitted while a webhook delivery is handled:
- EventType: Enum of all event types
- WorkflowEvent: Structured event with subject, repository and details

Events feed the logging and metrics sinks in emitter.py and metrics.py.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field, field_serializer


class EventType(str, Enum):
    """Types of events emitted while handling a delivery.

    Attributes:
        STATE_TRANSITION: The processing stage of an event changed.
        STEP_COMPLETED: One repository mutation step succeeded.
        ERROR: A step failed; the details name the step.
        COMPLETION: A delivery was fully handled.
        IGNORED: A delivery was acknowledged without action (unknown
            repository, unsupported event, or nothing actionable).
    """

    STATE_TRANSITION = "state_transition"
    STEP_COMPLETED = "step_completed"
    ERROR = "error"
    COMPLETION = "completion"
    IGNORED = "ignored"


class WorkflowEvent(BaseModel):
    """Structured event emitted by a workflow or the webhook endpoint.

    Attributes:
        event_type: The category of event.
        subject_id: "{owner}/{repo}#{number}" of the originating issue or PR,
            or the bare repository name when no number applies.
        repository: Full repository path in format "{owner}/{repo}".
        workflow: "blog", "code" or "none" for unrouted deliveries.
        timestamp: When the event occurred (UTC).
        details: Event-specific context.

    Details Field Conventions:
        STATE_TRANSITION: from_stage, to_stage
        STEP_COMPLETED: step, path or branch
        ERROR: step, error_message, error_type
        COMPLETION: duration_seconds, pr_number, pr_url
        IGNORED: reason
    """

    event_type: EventType = Field(
        ...,
        description="The category of event being emitted",
    )

    subject_id: str = Field(
        ...,
        min_length=1,
        description='Originating subject in format "{owner}/{repo}#{number}"',
    )

    repository: str = Field(
        ...,
        min_length=1,
        description='Full repository path in format "{owner}/{repo}"',
    )

    workflow: str = Field(
        default="none",
        description="Workflow that handled the delivery",
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC timezone)",
    )

    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context specific to the event type",
    )

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat()

    def to_log_dict(self) -> Dict[str, Any]:
        """Flatten the event for structured logging.

        Example:
            >>> event = WorkflowEvent(
            ...     event_type=EventType.ERROR,
            ...     subject_id="org/site#12",
            ...     repository="org/site",
            ...     details={"step": "create_branch"},
            ... )
            >>> event.to_log_dict()["step"]
            'create_branch'
        """
        return {
            "event_type": self.event_type.value,
            "subject_id": self.subject_id,
            "repository": self.repository,
            "workflow": self.workflow,
            "timestamp": self.timestamp.isoformat(),
            **self.details,
        }

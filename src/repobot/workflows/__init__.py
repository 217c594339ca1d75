"""Blog and code workflows driven by routed webhook deliveries."""

from src.repobot.workflows.base import (
    OutcomeStatus,
    Workflow,
    WorkflowOutcome,
    truncate_text,
)
from src.repobot.workflows.blog import BlogWorkflow
from src.repobot.workflows.code import CodeWorkflow

__all__ = [
    "BlogWorkflow",
    "CodeWorkflow",
    "OutcomeStatus",
    "truncate_text",
    "Workflow",
    "WorkflowOutcome",
]

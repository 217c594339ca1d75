"""Per-event processing state machine.

Tracks one webhook event through:
- received → classified → generated → branch_created
- → file_written → pr_created → acknowledged

with a terminal failed stage. State is held in memory for one request.
"""

from src.repobot.state.machine import (
    InvalidTransitionError,
    ProcessingStateMachine,
)
from src.repobot.state.models import (
    VALID_TRANSITIONS,
    ProcessingStage,
    ProcessingState,
    StateTransition,
    is_terminal_stage,
    is_valid_transition,
)

__all__ = [
    # Models
    "ProcessingStage",
    "ProcessingState",
    "StateTransition",
    "VALID_TRANSITIONS",
    "is_terminal_stage",
    "is_valid_transition",
    # State machine
    "InvalidTransitionError",
    "ProcessingStateMachine",
]

"""Event emitter implementations.

Workflows and the webhook endpoint emit WorkflowEvents without knowing
where they end up. Sinks:

- LoggingEventEmitter: structured log entries
- MetricsEventEmitter (metrics.py): Prometheus counters and histograms
- CompositeEventEmitter: fans out to several sinks
- NullEventEmitter: discards everything (tests)
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from src.repobot.events.models import EventType, WorkflowEvent


logger = logging.getLogger(__name__)


class EventEmitter(ABC):
    """Abstract base class for event emitters.

    Implementations are called from request handlers, so emit() must be
    async-safe and must not raise for sink failures.
    """

    @abstractmethod
    async def emit(self, event: WorkflowEvent) -> None:
        """Publish an event to the sink."""

    async def close(self) -> None:
        """Release sink resources. The default does nothing."""


class LoggingEventEmitter(EventEmitter):
    """Event emitter that writes events as structured log entries.

    Log levels by event type:
    - STATE_TRANSITION, STEP_COMPLETED, COMPLETION: INFO
    - IGNORED: INFO, raised to WARNING for unknown repositories
    - ERROR: ERROR
    """

    def __init__(self, logger_name: Optional[str] = None):
        """Initialize the logging event emitter.

        Args:
            logger_name: Optional logger name. If not provided, uses
                         the module logger.
        """
        self._logger = (
            logging.getLogger(logger_name)
            if logger_name
            else logger
        )
        self._log_level_map = {
            EventType.STATE_TRANSITION: logging.INFO,
            EventType.STEP_COMPLETED: logging.INFO,
            EventType.COMPLETION: logging.INFO,
            EventType.IGNORED: logging.INFO,
            EventType.ERROR: logging.ERROR,
        }

    async def emit(self, event: WorkflowEvent) -> None:
        log_level = self._log_level_map.get(event.event_type, logging.INFO)
        # Unknown repositories usually mean a routing misconfiguration.
        if (
            event.event_type == EventType.IGNORED
            and event.details.get("reason") == "unknown_repository"
        ):
            log_level = logging.WARNING

        self._logger.log(
            log_level,
            "Workflow event: %s for %s",
            event.event_type.value,
            event.subject_id,
            extra=event.to_log_dict(),
        )


class CompositeEventEmitter(EventEmitter):
    """Event emitter that delegates to multiple child emitters.

    Failures in one child are logged and do not stop the others.
    """

    def __init__(self, emitters: Optional[List[EventEmitter]] = None):
        self._emitters: List[EventEmitter] = emitters or []

    @property
    def emitters(self) -> List[EventEmitter]:
        """Read-only copy of the child emitters."""
        return list(self._emitters)

    async def emit(self, event: WorkflowEvent) -> None:
        for emitter in self._emitters:
            try:
                await emitter.emit(event)
            except Exception as e:
                logger.error(
                    "Failed to emit event to %s: %s",
                    type(emitter).__name__,
                    str(e),
                    extra={
                        "emitter_type": type(emitter).__name__,
                        "event_type": event.event_type.value,
                        "subject_id": event.subject_id,
                        "error": str(e),
                    },
                )

    async def close(self) -> None:
        for emitter in self._emitters:
            try:
                await emitter.close()
            except Exception as e:
                logger.error(
                    "Failed to close emitter %s: %s",
                    type(emitter).__name__,
                    str(e),
                )


class NullEventEmitter(EventEmitter):
    """Event emitter that discards all events."""

    async def emit(self, event: WorkflowEvent) -> None:
        pass

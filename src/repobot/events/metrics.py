"""Prometheus metrics for webhook handling.

Metrics are exposed at ``/metrics`` in Prometheus text format:
- repobot_deliveries_handled_total: deliveries handled, by workflow and result
- repobot_deliveries_ignored_total: deliveries acknowledged without action
- repobot_mutation_steps_total: completed repository mutation steps
- repobot_step_failures_total: failed steps, by workflow and step
- repobot_processing_duration_seconds: time to handle a delivery

MetricsEventEmitter keeps them up to date from WorkflowEvents.
"""

import logging
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from src.repobot.events.emitter import EventEmitter
from src.repobot.events.models import EventType, WorkflowEvent


logger = logging.getLogger(__name__)


# Generation calls dominate; most deliveries finish within a minute.
DEFAULT_DURATION_BUCKETS = (0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0)


class RepobotMetrics:
    """Container for all Prometheus metrics.

    Pass a custom ``registry`` in tests to avoid duplicate registration on
    the process-wide default registry.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.deliveries_handled_total = Counter(
            "repobot_deliveries_handled_total",
            "Webhook deliveries handled by a workflow",
            labelnames=["workflow", "result"],
            registry=self.registry,
        )

        self.deliveries_ignored_total = Counter(
            "repobot_deliveries_ignored_total",
            "Webhook deliveries acknowledged without action",
            labelnames=["reason"],
            registry=self.registry,
        )

        self.mutation_steps_total = Counter(
            "repobot_mutation_steps_total",
            "Repository mutation steps completed",
            labelnames=["workflow", "step"],
            registry=self.registry,
        )

        self.step_failures_total = Counter(
            "repobot_step_failures_total",
            "Steps that failed while handling a delivery",
            labelnames=["workflow", "step"],
            registry=self.registry,
        )

        self.processing_duration_seconds = Histogram(
            "repobot_processing_duration_seconds",
            "Time spent handling a webhook delivery in seconds",
            labelnames=["workflow"],
            buckets=DEFAULT_DURATION_BUCKETS,
            registry=self.registry,
        )

    def record_handled(self, workflow: str, success: bool) -> None:
        result = "success" if success else "failure"
        self.deliveries_handled_total.labels(workflow=workflow, result=result).inc()

    def record_ignored(self, reason: str) -> None:
        self.deliveries_ignored_total.labels(reason=reason).inc()

    def record_step(self, workflow: str, step: str) -> None:
        self.mutation_steps_total.labels(workflow=workflow, step=step).inc()

    def record_step_failure(self, workflow: str, step: str) -> None:
        self.step_failures_total.labels(workflow=workflow, step=step).inc()

    def record_duration(self, workflow: str, duration_seconds: float) -> None:
        self.processing_duration_seconds.labels(workflow=workflow).observe(
            duration_seconds
        )


_default_metrics: Optional[RepobotMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> RepobotMetrics:
    """Get the metrics for the default registry, or new ones for ``registry``."""
    global _default_metrics

    if registry is not None:
        return RepobotMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = RepobotMetrics()

    return _default_metrics


def generate_metrics_output(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Render the registry in Prometheus text format."""
    return generate_latest(registry or REGISTRY)


class MetricsEventEmitter(EventEmitter):
    """Event emitter that updates Prometheus metrics.

    - STEP_COMPLETED: increments mutation_steps_total
    - ERROR: increments step_failures_total and counts a failed delivery
    - COMPLETION: counts a successful delivery and records its duration
    - IGNORED: increments deliveries_ignored_total by reason
    """

    def __init__(
        self,
        metrics: Optional[RepobotMetrics] = None,
        registry: Optional[CollectorRegistry] = None,
    ):
        self._metrics = metrics if metrics is not None else get_metrics(registry)

    @property
    def metrics(self) -> RepobotMetrics:
        return self._metrics

    async def emit(self, event: WorkflowEvent) -> None:
        try:
            if event.event_type == EventType.STEP_COMPLETED:
                self._metrics.record_step(
                    event.workflow, str(event.details.get("step", "unknown"))
                )
            elif event.event_type == EventType.ERROR:
                self._metrics.record_step_failure(
                    event.workflow, str(event.details.get("step", "unknown"))
                )
                self._metrics.record_handled(event.workflow, success=False)
            elif event.event_type == EventType.COMPLETION:
                self._metrics.record_handled(event.workflow, success=True)
                duration = event.details.get("duration_seconds")
                if duration is not None:
                    self._metrics.record_duration(event.workflow, float(duration))
            elif event.event_type == EventType.IGNORED:
                self._metrics.record_ignored(
                    str(event.details.get("reason", "unknown"))
                )
        except Exception as e:
            logger.error(
                "Failed to update metrics for event %s: %s",
                event.event_type.value,
                str(e),
                extra={
                    "event_type": event.event_type.value,
                    "subject_id": event.subject_id,
                    "error": str(e),
                },
            )

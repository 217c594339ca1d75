"""Tests for the FastAPI webhook endpoint.

The router and workflows are injected, so settings are never loaded and
no GitHub or generation calls are made.
"""

import json
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry

from src.repobot.classifier import WorkflowKind
from src.repobot.events.emitter import EventEmitter
from src.repobot.events.metrics import MetricsEventEmitter
from src.repobot.events.models import EventType, WorkflowEvent
from src.repobot.main import create_app
from src.repobot.webhook import (
    EventRouter,
    IssueOpenedEvent,
    RepositoryEndpoint,
    ReviewCommentEvent,
    compute_signature,
)
from src.repobot.workflows import OutcomeStatus, WorkflowOutcome


BLOG_SECRET = "blog-secret"
CODE_SECRET = "code-secret"


class RecordingEmitter(EventEmitter):
    def __init__(self) -> None:
        self.events: List[WorkflowEvent] = []

    async def emit(self, event: WorkflowEvent) -> None:
        self.events.append(event)


# =============================================================================
# Fixtures and helpers
# =============================================================================


def _router() -> EventRouter:
    return EventRouter(
        [
            RepositoryEndpoint(
                identifier="website-repo",
                owner="acme",
                webhook_secret=BLOG_SECRET,
                workflow=WorkflowKind.BLOG,
            ),
            RepositoryEndpoint(
                identifier="automation-repo",
                owner="acme",
                webhook_secret=CODE_SECRET,
                workflow=WorkflowKind.CODE,
            ),
        ]
    )


def _workflow(kind: WorkflowKind) -> MagicMock:
    workflow = MagicMock()
    workflow.handle = AsyncMock(
        return_value=WorkflowOutcome(
            status=OutcomeStatus.COMPLETED,
            workflow=kind.value,
            subject_id="acme/website-repo#12",
            outputs={"pr_number": 21},
        )
    )
    return workflow


@pytest.fixture
def workflows() -> Dict[WorkflowKind, MagicMock]:
    return {kind: _workflow(kind) for kind in WorkflowKind}


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def client(workflows, emitter):
    app = create_app(
        router=_router(),
        workflows=workflows,
        event_emitter=emitter,
        registry=CollectorRegistry(),
    )
    with TestClient(app) as test_client:
        yield test_client


def _issue_payload(full_name: str = "acme/website-repo") -> Dict[str, Any]:
    owner, name = full_name.split("/", 1)
    return {
        "action": "opened",
        "issue": {"number": 12, "title": "Blog post: Hello", "body": ""},
        "repository": {"name": name, "full_name": full_name, "owner": {"login": owner}},
    }


def _post(
    client: TestClient,
    payload: Any,
    secret: Optional[str] = BLOG_SECRET,
    event_name: str = "issues",
    path: str = "/webhooks/github",
):
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    headers = {"X-GitHub-Event": event_name, "Content-Type": "application/json"}
    if secret is not None:
        headers["X-Hub-Signature-256"] = compute_signature(secret, body)
    return client.post(path, content=body, headers=headers)


# =============================================================================
# Health and metrics
# =============================================================================


class TestHealthAndMetrics:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_metrics_reflect_ignored_deliveries(self, workflows):
        registry = CollectorRegistry()
        app = create_app(
            router=_router(),
            workflows=workflows,
            event_emitter=MetricsEventEmitter(registry=registry),
            registry=registry,
        )

        with TestClient(app) as client:
            _post(client, _issue_payload("acme/unrelated"))
            response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert 'repobot_deliveries_ignored_total{reason="unknown_repository"} 1.0' in response.text


# =============================================================================
# Webhook endpoint
# =============================================================================


class TestWebhookEndpoint:
    def test_issue_is_dispatched_to_blog_workflow(self, client, workflows):
        response = _post(client, _issue_payload())

        assert response.status_code == 200
        assert response.json() == {
            "status": "completed",
            "workflow": "blog",
            "subject_id": "acme/website-repo#12",
            "completed_steps": [],
            "outputs": {"pr_number": 21},
        }
        event = workflows[WorkflowKind.BLOG].handle.await_args.args[0]
        assert isinstance(event, IssueOpenedEvent)
        assert event.issue_number == 12
        workflows[WorkflowKind.CODE].handle.assert_not_awaited()

    def test_code_repository_uses_its_own_secret(self, client, workflows):
        payload = {
            "action": "created",
            "comment": {"id": 5, "body": "please add tests"},
            "pull_request": {"number": 9, "head": {"ref": "ai-code-3"}},
            "repository": {"full_name": "acme/automation-repo"},
        }

        response = _post(
            client, payload, secret=CODE_SECRET, event_name="pull_request_review_comment"
        )

        assert response.status_code == 200
        event = workflows[WorkflowKind.CODE].handle.await_args.args[0]
        assert isinstance(event, ReviewCommentEvent)
        assert event.head_ref == "ai-code-3"

    def test_legacy_path_alias(self, client, workflows):
        response = _post(client, _issue_payload(), path="/webhook")

        assert response.status_code == 200
        workflows[WorkflowKind.BLOG].handle.assert_awaited_once()

    def test_invalid_json_is_400(self, client):
        response = _post(client, b"{not json")

        assert response.status_code == 400
        assert response.json()["status"] == "error"

    def test_missing_repository_is_400(self, client, workflows):
        response = _post(client, {"action": "opened"})

        assert response.status_code == 400
        workflows[WorkflowKind.BLOG].handle.assert_not_awaited()

    def test_unknown_repository_is_ignored_with_event(self, client, workflows, emitter):
        response = _post(client, _issue_payload("acme/unrelated"), secret="whatever")

        assert response.status_code == 200
        assert response.json() == {"status": "ignored", "reason": "unknown_repository"}
        assert [e.event_type for e in emitter.events] == [EventType.IGNORED]
        assert emitter.events[0].details == {"reason": "unknown_repository"}
        for workflow in workflows.values():
            workflow.handle.assert_not_awaited()

    @pytest.mark.parametrize("secret", [None, "wrong-secret", CODE_SECRET])
    def test_bad_signature_is_401(self, client, workflows, secret):
        response = _post(client, _issue_payload(), secret=secret)

        assert response.status_code == 401
        assert response.json() == {"status": "error", "message": "Invalid signature"}
        workflows[WorkflowKind.BLOG].handle.assert_not_awaited()

    def test_unsupported_event_is_ignored(self, client, workflows):
        payload = _issue_payload()
        payload["action"] = "closed"

        response = _post(client, payload)

        assert response.status_code == 200
        assert response.json() == {"status": "ignored", "reason": "unsupported_event"}
        workflows[WorkflowKind.BLOG].handle.assert_not_awaited()

    def test_malformed_supported_event_is_400(self, client):
        payload = _issue_payload()
        del payload["issue"]["number"]

        response = _post(client, payload)

        assert response.status_code == 400

    def test_missing_workflow_is_ignored(self, emitter):
        app = create_app(
            router=_router(),
            workflows={WorkflowKind.BLOG: _workflow(WorkflowKind.BLOG)},
            event_emitter=emitter,
            registry=CollectorRegistry(),
        )
        payload = _issue_payload("acme/automation-repo")

        with TestClient(app) as client:
            response = _post(client, payload, secret=CODE_SECRET)

        assert response.json() == {"status": "ignored", "reason": "no_workflow"}

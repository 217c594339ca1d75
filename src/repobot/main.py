"""FastAPI application entry point for repobot.

Receives GitHub webhook deliveries for the blog and code repositories,
routes each to its workflow and answers once the workflow has finished.

Endpoints:
- POST /webhooks/github (alias POST /webhook): webhook receiver
- GET /health: liveness probe
- GET /metrics: Prometheus metrics
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry

from src.repobot.classifier.models import WorkflowKind
from src.repobot.config import BotSettings, get_settings
from src.repobot.events.emitter import (
    CompositeEventEmitter,
    EventEmitter,
    LoggingEventEmitter,
)
from src.repobot.events.metrics import MetricsEventEmitter, generate_metrics_output
from src.repobot.events.models import EventType, WorkflowEvent
from src.repobot.generator.client import ContentGenerator
from src.repobot.github.client import GitHubClient
from src.repobot.logging_config import configure_logging
from src.repobot.mutation.executor import RepositoryMutator
from src.repobot.webhook.handler import (
    EVENT_HEADER,
    SIGNATURE_HEADER,
    SignatureVerificationError,
    WebhookHandler,
    WebhookPayloadError,
    extract_full_name,
    verify_signature,
)
from src.repobot.webhook.router import EventRouter
from src.repobot.workflows.base import Workflow
from src.repobot.workflows.blog import BlogWorkflow
from src.repobot.workflows.code import CodeWorkflow


logger = logging.getLogger(__name__)


def _redact_secret(value: Optional[str], visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if not value:
        return ""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: BotSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info(
        "repobot configuration",
        extra={
            "github_base_url": settings.github_base_url,
            "github_token": _redact_secret(settings.github_token),
            "github_owner": settings.github_owner,
            "blog_repo": settings.blog_repo,
            "code_repo": settings.code_repo,
            "github_webhook_secret": _redact_secret(settings.github_webhook_secret),
            "code_webhook_secret": _redact_secret(settings.code_webhook_secret),
            "base_branch": settings.base_branch,
            "llm_url": settings.llm_url,
            "llm_model": settings.llm_model,
            "llm_api_key": _redact_secret(settings.llm_api_key),
            "llm_max_tokens": settings.llm_max_tokens,
            "llm_timeout_seconds": settings.llm_timeout_seconds,
            "host": settings.host,
            "port": settings.port,
        },
    )


def build_workflows(
    settings: BotSettings,
    router: EventRouter,
    github_client: GitHubClient,
    generator: ContentGenerator,
    event_emitter: EventEmitter,
) -> Dict[WorkflowKind, Workflow]:
    """Wire one workflow per configured endpoint."""
    mutator = RepositoryMutator(github_client=github_client, event_emitter=event_emitter)
    classes = {WorkflowKind.BLOG: BlogWorkflow, WorkflowKind.CODE: CodeWorkflow}

    return {
        endpoint.workflow: classes[endpoint.workflow](
            endpoint=endpoint,
            github_client=github_client,
            generator=generator,
            mutator=mutator,
            event_emitter=event_emitter,
            base_branch=settings.base_branch,
        )
        for endpoint in router.endpoints
    }


def create_app(
    settings: Optional[BotSettings] = None,
    router: Optional[EventRouter] = None,
    workflows: Optional[Dict[WorkflowKind, Workflow]] = None,
    event_emitter: Optional[EventEmitter] = None,
    registry: Optional[CollectorRegistry] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Anything not passed in is built from settings at startup. Tests pass a
    router and workflows and never load settings.

    Args:
        settings: Bot settings; read from the environment when omitted.
        router: Endpoint router; derived from settings when omitted.
        workflows: Workflow per kind; wired from settings when omitted.
        event_emitter: Event sink for router-level events.
        registry: Prometheus registry served at /metrics.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        github_client: Optional[GitHubClient] = None
        emitter = event_emitter
        app_router = router
        app_workflows = workflows

        if app_workflows is None or app_router is None:
            cfg = settings or get_settings()
            configure_logging(cfg.log_level, json_logs=cfg.json_logs)
            logger.info("repobot starting up")
            _log_configuration(cfg)

            if emitter is None:
                emitter = CompositeEventEmitter(
                    [LoggingEventEmitter(), MetricsEventEmitter(registry=registry)]
                )
            app_router = app_router or EventRouter.from_settings(cfg)

            if app_workflows is None:
                github_client = GitHubClient(
                    token=cfg.github_token,
                    base_url=cfg.github_base_url,
                )
                generator = ContentGenerator(
                    llm_url=cfg.llm_url,
                    model_name=cfg.llm_model,
                    api_key=cfg.llm_api_key,
                    max_tokens=cfg.llm_max_tokens,
                    timeout=cfg.llm_timeout_seconds,
                )
                app_workflows = build_workflows(
                    cfg, app_router, github_client, generator, emitter
                )

        app.state.router = app_router
        app.state.workflows = app_workflows
        app.state.event_emitter = emitter or LoggingEventEmitter()
        app.state.webhook_handler = WebhookHandler()

        logger.info(
            "repobot started",
            extra={"endpoints": [e.full_name for e in app_router.endpoints]},
        )

        yield

        logger.info("repobot shutting down")
        if github_client is not None:
            await github_client.close()
        await app.state.event_emitter.close()

    app = FastAPI(
        title="repobot",
        description="Turns GitHub issues and review comments into pull requests",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health():
        """Liveness probe; always 200."""
        return {"status": "healthy"}

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_metrics_output(registry),
            media_type=CONTENT_TYPE_LATEST,
        )

    async def receive_webhook(request: Request):
        """GitHub webhook receiver.

        The delivery is routed by the repository named in its payload, its
        signature checked with that repository's secret, then handled to
        completion before responding.

        Returns:
            200 with the workflow outcome, or ``ignored``; 400 for bad
            payloads; 401 for bad signatures.
        """
        body = await request.body()
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("Rejected delivery with invalid JSON body")
            return _error(400, "Invalid JSON payload")

        try:
            full_name = extract_full_name(payload)
        except WebhookPayloadError as e:
            logger.warning("Rejected delivery without repository", extra={"error": str(e)})
            return _error(400, str(e))

        endpoint = request.app.state.router.route(full_name)
        if endpoint is None:
            await request.app.state.event_emitter.emit(
                WorkflowEvent(
                    event_type=EventType.IGNORED,
                    subject_id=full_name,
                    repository=full_name,
                    details={"reason": "unknown_repository"},
                )
            )
            return {"status": "ignored", "reason": "unknown_repository"}

        try:
            verify_signature(
                endpoint.webhook_secret, body, request.headers.get(SIGNATURE_HEADER)
            )
        except SignatureVerificationError as e:
            logger.warning(
                "Rejected delivery with bad signature",
                extra={"full_name": full_name, "error": str(e)},
            )
            return _error(401, "Invalid signature")

        event_name = request.headers.get(EVENT_HEADER)
        try:
            event = request.app.state.webhook_handler.parse_event(event_name, payload)
        except WebhookPayloadError as e:
            logger.warning(
                "Rejected malformed delivery",
                extra={"full_name": full_name, "event_name": event_name, "error": str(e)},
            )
            return _error(400, str(e))

        if event is None:
            return {"status": "ignored", "reason": "unsupported_event"}

        workflow = request.app.state.workflows.get(endpoint.workflow)
        if workflow is None:
            logger.error(
                "No workflow wired for endpoint",
                extra={"full_name": full_name, "workflow": endpoint.workflow.value},
            )
            return {"status": "ignored", "reason": "no_workflow"}

        outcome = await workflow.handle(event)
        return outcome.model_dump(mode="json", exclude_none=True)

    app.add_api_route("/webhooks/github", receive_webhook, methods=["POST"])
    app.add_api_route("/webhook", receive_webhook, methods=["POST"])

    return app


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message},
    )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "src.repobot.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
    )

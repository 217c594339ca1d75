"""GitHub webhook intake: signature verification, parsing and routing."""

from src.repobot.webhook.handler import (
    SignatureVerificationError,
    WebhookHandler,
    WebhookPayloadError,
    compute_signature,
    extract_full_name,
    verify_signature,
)
from src.repobot.webhook.models import (
    IssueCommentEvent,
    IssueOpenedEvent,
    ReviewCommentEvent,
    WebhookEvent,
)
from src.repobot.webhook.router import EventRouter, RepositoryEndpoint, names_match

__all__ = [
    "compute_signature",
    "EventRouter",
    "extract_full_name",
    "IssueCommentEvent",
    "IssueOpenedEvent",
    "names_match",
    "RepositoryEndpoint",
    "ReviewCommentEvent",
    "SignatureVerificationError",
    "verify_signature",
    "WebhookEvent",
    "WebhookHandler",
    "WebhookPayloadError",
]

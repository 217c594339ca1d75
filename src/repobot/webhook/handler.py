"""GitHub webhook parsing and signature verification.

Deliveries are verified with the HMAC-SHA256 signature GitHub sends in
``X-Hub-Signature-256`` ("sha256=<hexdigest>" of the raw body), then parsed
into the event models in models.py.

GitHub Webhook Payload Structure (pull_request_review_comment event):
{
  "action": "created",
  "comment": {"id": 99, "body": "Ready to publish!", "user": {"login": "me"}},
  "pull_request": {"number": 7, "head": {"ref": "ai-blog-3"}},
  "repository": {"name": "site", "full_name": "me/site", "owner": {"login": "me"}}
}
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, Optional, Tuple

from src.repobot.webhook.models import (
    IssueCommentEvent,
    IssueOpenedEvent,
    ReviewCommentEvent,
    WebhookEvent,
)


logger = logging.getLogger(__name__)


SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_HEADER = "X-GitHub-Event"
SIGNATURE_PREFIX = "sha256="

SUPPORTED_EVENTS: Tuple[Tuple[str, str], ...] = (
    ("issues", "opened"),
    ("issue_comment", "created"),
    ("pull_request_review_comment", "created"),
)


class WebhookPayloadError(ValueError):
    """Raised when a supported delivery is missing required fields."""


class SignatureVerificationError(Exception):
    """Raised when a delivery's signature is missing or does not match."""


def compute_signature(secret: str, body: bytes) -> str:
    """Signature header value GitHub would send for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, body: bytes, signature_header: Optional[str]) -> None:
    """Check a delivery signature in constant time.

    Raises:
        SignatureVerificationError: If the header is missing, malformed or wrong.
    """
    if not signature_header:
        raise SignatureVerificationError("Missing signature header")

    if not signature_header.startswith(SIGNATURE_PREFIX):
        raise SignatureVerificationError("Unsupported signature algorithm")

    if not hmac.compare_digest(compute_signature(secret, body), signature_header):
        raise SignatureVerificationError("Signature mismatch")


def extract_full_name(payload: Any) -> str:
    """Repository full name embedded in a payload.

    Raises:
        WebhookPayloadError: If the payload carries no repository full name.
    """
    if not isinstance(payload, dict):
        raise WebhookPayloadError("Payload is not a JSON object")

    repo_data = payload.get("repository")
    if not isinstance(repo_data, dict):
        raise WebhookPayloadError("Missing 'repository' object")

    full_name = repo_data.get("full_name")
    if isinstance(full_name, str) and full_name.strip():
        return full_name.strip()

    name = repo_data.get("name")
    owner = _login(repo_data.get("owner"))
    if isinstance(name, str) and name.strip() and owner:
        return f"{owner}/{name.strip()}"

    raise WebhookPayloadError("Missing repository full name")


def _login(user_data: Any) -> Optional[str]:
    if isinstance(user_data, dict):
        login = user_data.get("login")
        if isinstance(login, str) and login.strip():
            return login.strip()
    return None


def _require_dict(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise WebhookPayloadError(f"Missing or invalid '{key}' object")
    return value


def _require_positive_int(data: Dict[str, Any], key: str, context: str) -> int:
    value = data.get(key)
    # bool is an int subclass
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise WebhookPayloadError(f"Invalid {context} {key}: {value!r}")
    return value


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


class WebhookHandler:
    """Parser for the GitHub deliveries this service understands."""

    def is_supported(self, event_name: Optional[str], payload: Any) -> bool:
        if not isinstance(payload, dict):
            return False
        return (event_name, payload.get("action")) in SUPPORTED_EVENTS

    def parse_event(
        self,
        event_name: Optional[str],
        payload: Any,
    ) -> Optional[WebhookEvent]:
        """Parse a delivery.

        Args:
            event_name: Value of the X-GitHub-Event header.
            payload: Decoded JSON body.

        Returns:
            The parsed event, or None for unsupported event/action pairs.

        Raises:
            WebhookPayloadError: If a supported delivery is malformed.
        """
        if not self.is_supported(event_name, payload):
            logger.debug(
                "Ignoring unsupported delivery",
                extra={
                    "event_name": event_name,
                    "action": payload.get("action") if isinstance(payload, dict) else None,
                },
            )
            return None

        repo_data = _require_dict(payload, "repository")
        full_name = extract_full_name(payload)
        owner = _login(repo_data.get("owner")) or full_name.split("/", 1)[0]
        repository = _text(repo_data.get("name")).strip() or full_name.rsplit("/", 1)[-1]
        common = {"owner": owner, "repository": repository, "full_name": full_name}

        if event_name == "issues":
            issue = _require_dict(payload, "issue")
            title = _text(issue.get("title")).strip()
            if not title:
                raise WebhookPayloadError("Missing issue title")
            event: WebhookEvent = IssueOpenedEvent(
                issue_number=_require_positive_int(issue, "number", "issue"),
                title=title,
                body=_text(issue.get("body")),
                author=_login(issue.get("user")) or "",
                **common,
            )

        elif event_name == "issue_comment":
            issue = _require_dict(payload, "issue")
            comment = _require_dict(payload, "comment")
            event = IssueCommentEvent(
                issue_number=_require_positive_int(issue, "number", "issue"),
                comment_id=_require_positive_int(comment, "id", "comment"),
                body=_text(comment.get("body")),
                author=_login(comment.get("user")) or "",
                **common,
            )

        else:
            comment = _require_dict(payload, "comment")
            pull_request = _require_dict(payload, "pull_request")
            head = _require_dict(pull_request, "head")
            head_ref = _text(head.get("ref")).strip()
            if not head_ref:
                raise WebhookPayloadError("Missing pull request head ref")
            event = ReviewCommentEvent(
                pr_number=_require_positive_int(pull_request, "number", "pull request"),
                comment_id=_require_positive_int(comment, "id", "comment"),
                body=_text(comment.get("body")),
                head_ref=head_ref,
                author=_login(comment.get("user")) or "",
                **common,
            )

        logger.info(
            "Parsed webhook event",
            extra={
                "event_name": event_name,
                "subject_id": event.subject_id,
                "author": event.author,
            },
        )
        return event

"""Tests for webhook signature checks, payload parsing and routing."""

from typing import Any, Dict, Optional

import pytest
from hypothesis import given, settings, strategies as st

from src.repobot.classifier import WorkflowKind
from src.repobot.config import BotSettings
from src.repobot.webhook import (
    EventRouter,
    IssueCommentEvent,
    IssueOpenedEvent,
    RepositoryEndpoint,
    ReviewCommentEvent,
    SignatureVerificationError,
    WebhookHandler,
    WebhookPayloadError,
    compute_signature,
    extract_full_name,
    names_match,
    verify_signature,
)


# =============================================================================
# Payload factories
# =============================================================================


def _repo(full_name: str = "acme/website-repo") -> Dict[str, Any]:
    owner, name = full_name.split("/", 1)
    return {"name": name, "full_name": full_name, "owner": {"login": owner}}


def _issue_payload(
    number: int = 12,
    title: str = "Blog post: Hello",
    body: Optional[str] = "About things",
    full_name: str = "acme/website-repo",
) -> Dict[str, Any]:
    return {
        "action": "opened",
        "issue": {"number": number, "title": title, "body": body, "user": {"login": "dev1"}},
        "repository": _repo(full_name),
    }


def _review_payload(
    pr_number: int = 7,
    comment_id: int = 99,
    body: str = "Ready to publish!",
    head_ref: str = "ai-blog-3",
) -> Dict[str, Any]:
    return {
        "action": "created",
        "comment": {"id": comment_id, "body": body, "user": {"login": "me"}},
        "pull_request": {"number": pr_number, "head": {"ref": head_ref}},
        "repository": _repo(),
    }


def _endpoint(identifier: str, workflow: WorkflowKind, owner: str = "acme") -> RepositoryEndpoint:
    return RepositoryEndpoint(
        identifier=identifier,
        owner=owner,
        webhook_secret=f"{workflow.value}-secret",
        workflow=workflow,
    )


# =============================================================================
# Signatures
# =============================================================================


class TestSignature:
    """Tests for compute_signature and verify_signature."""

    def test_known_digest(self):
        # Example from GitHub's webhook documentation
        signature = compute_signature("It's a Secret to Everybody", b"Hello, World!")
        assert signature == (
            "sha256=757107ea0eb2509fc211221cce984b8a37570b6d7586c22c46f4379c8b043e17"
        )

    def test_valid_signature_passes(self):
        body = b'{"a": 1}'
        verify_signature("s3cret", body, compute_signature("s3cret", body))

    @pytest.mark.parametrize("header", [None, "", "sha1=abc", "sha256=deadbeef"])
    def test_bad_headers_fail(self, header):
        with pytest.raises(SignatureVerificationError):
            verify_signature("s3cret", b"{}", header)

    @settings(max_examples=50)
    @given(body=st.binary(max_size=200), other=st.text(min_size=1, max_size=20))
    def test_other_secret_fails(self, body: bytes, other: str):
        signature = compute_signature("right-secret", body)
        if other == "right-secret":
            return
        with pytest.raises(SignatureVerificationError):
            verify_signature(other, body, signature)


# =============================================================================
# Parsing
# =============================================================================


class TestExtractFullName:
    """Tests for extract_full_name."""

    def test_full_name(self):
        assert extract_full_name(_issue_payload()) == "acme/website-repo"

    def test_falls_back_to_owner_and_name(self):
        payload = {"repository": {"name": "site", "owner": {"login": "acme"}}}
        assert extract_full_name(payload) == "acme/site"

    @pytest.mark.parametrize("payload", [[], {}, {"repository": "x"}, {"repository": {}}])
    def test_missing_repository(self, payload):
        with pytest.raises(WebhookPayloadError):
            extract_full_name(payload)


class TestWebhookHandler:
    """Tests for WebhookHandler.parse_event."""

    def setup_method(self):
        self.handler = WebhookHandler()

    def test_issue_opened(self):
        event = self.handler.parse_event("issues", _issue_payload(body=None))

        assert isinstance(event, IssueOpenedEvent)
        assert event.issue_number == 12
        assert event.title == "Blog post: Hello"
        assert event.body == ""
        assert event.owner == "acme"
        assert event.repository == "website-repo"
        assert event.author == "dev1"
        assert event.subject_id == "acme/website-repo#12"

    def test_review_comment(self):
        event = self.handler.parse_event("pull_request_review_comment", _review_payload())

        assert isinstance(event, ReviewCommentEvent)
        assert event.pr_number == 7
        assert event.comment_id == 99
        assert event.head_ref == "ai-blog-3"
        assert event.subject_id == "acme/website-repo#7"

    def test_issue_comment(self):
        payload = {
            "action": "created",
            "issue": {"number": 4},
            "comment": {"id": 5, "body": "hi"},
            "repository": _repo(),
        }

        event = self.handler.parse_event("issue_comment", payload)

        assert isinstance(event, IssueCommentEvent)
        assert event.issue_number == 4

    @pytest.mark.parametrize(
        "event_name,action",
        [("issues", "closed"), ("push", None), ("pull_request_review_comment", "edited"), (None, "opened")],
    )
    def test_unsupported_is_none(self, event_name, action):
        payload = _issue_payload()
        payload["action"] = action
        assert self.handler.parse_event(event_name, payload) is None

    def test_missing_issue_number(self):
        payload = _issue_payload()
        del payload["issue"]["number"]
        with pytest.raises(WebhookPayloadError):
            self.handler.parse_event("issues", payload)

    def test_boolean_number_is_rejected(self):
        payload = _issue_payload()
        payload["issue"]["number"] = True
        with pytest.raises(WebhookPayloadError):
            self.handler.parse_event("issues", payload)

    def test_missing_head_ref(self):
        with pytest.raises(WebhookPayloadError):
            self.handler.parse_event("pull_request_review_comment", _review_payload(head_ref=""))


# =============================================================================
# Routing
# =============================================================================


class TestNamesMatch:
    """Tests for names_match."""

    @pytest.mark.parametrize(
        "full_name,identifier,expected",
        [
            ("owner/website-repo", "website-repo", True),
            ("owner/website-repo", "owner/website-repo", True),
            ("Owner/Website-Repo", "website-repo", True),
            ("website-repo", "owner/website-repo", True),
            ("owner/my-website-repo", "website-repo", False),
            ("owner/website-repo-2", "website-repo", False),
            ("owner/website-repo", "", False),
        ],
    )
    def test_match_rules(self, full_name, identifier, expected):
        assert names_match(full_name, identifier) is expected

    @settings(max_examples=100)
    @given(
        owner=st.from_regex(r"[a-z][a-z0-9-]{0,10}", fullmatch=True),
        repo=st.from_regex(r"[a-z][a-z0-9_.-]{0,15}", fullmatch=True),
    )
    def test_suffix_match_is_symmetric(self, owner: str, repo: str):
        full_name = f"{owner}/{repo}"
        assert names_match(full_name, repo)
        assert names_match(repo, full_name)


class TestEventRouter:
    """Tests for EventRouter."""

    def test_routes_by_suffix(self):
        router = EventRouter(
            [
                _endpoint("website-repo", WorkflowKind.BLOG),
                _endpoint("automation-repo", WorkflowKind.CODE),
            ]
        )

        assert router.route("owner/website-repo").workflow == WorkflowKind.BLOG
        assert router.route("owner/automation-repo").workflow == WorkflowKind.CODE

    def test_unknown_repository_is_none(self):
        router = EventRouter([_endpoint("website-repo", WorkflowKind.BLOG)])
        assert router.route("owner/other") is None

    def test_first_match_wins(self):
        router = EventRouter(
            [
                _endpoint("acme/site", WorkflowKind.BLOG),
                _endpoint("site", WorkflowKind.CODE),
            ]
        )
        assert router.route("acme/site").workflow == WorkflowKind.BLOG

    def test_endpoint_owner_and_repo(self):
        bare = _endpoint("website-repo", WorkflowKind.BLOG, owner="acme")
        qualified = _endpoint("other-org/website-repo", WorkflowKind.BLOG, owner="acme")

        assert (bare.repo_owner, bare.repo) == ("acme", "website-repo")
        assert qualified.full_name == "other-org/website-repo"

    def test_from_settings_blog_only(self, repobot_env):
        router = EventRouter.from_settings(BotSettings())

        assert [e.workflow for e in router.endpoints] == [WorkflowKind.BLOG]
        assert router.endpoints[0].webhook_secret == "shhh-secret"

    def test_from_settings_with_code_repo(self, repobot_env, monkeypatch):
        monkeypatch.setenv("REPOBOT_CODE_REPO", "automation-repo")
        monkeypatch.setenv("REPOBOT_CODE_WEBHOOK_SECRET", "code-secret")

        router = EventRouter.from_settings(BotSettings())

        assert [e.workflow for e in router.endpoints] == [WorkflowKind.BLOG, WorkflowKind.CODE]
        assert router.endpoints[1].webhook_secret == "code-secret"
        assert router.endpoints[1].full_name == "acme/automation-repo"

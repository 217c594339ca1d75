"""Unit tests for the blog and code workflows.

The GitHub client and the generator are mocks; the mutator, state machine
and artifact code are real, so these tests exercise whole deliveries from
parsed event to GitHub calls.
"""

import asyncio
from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.repobot.artifacts.paths import BLOG_DRAFTS_DIR, BLOG_POSTS_DIR
from src.repobot.classifier import WorkflowKind
from src.repobot.events.emitter import EventEmitter
from src.repobot.events.models import EventType, WorkflowEvent
from src.repobot.generator import GenerationError
from src.repobot.github import FileContent, GitHubAPIError, PRCreateResult, PullRequestFile
from src.repobot.mutation import RepositoryMutator
from src.repobot.state import ProcessingStage
from src.repobot.webhook import (
    IssueCommentEvent,
    IssueOpenedEvent,
    RepositoryEndpoint,
    ReviewCommentEvent,
)
from src.repobot.workflows import (
    BlogWorkflow,
    CodeWorkflow,
    OutcomeStatus,
    truncate_text,
)


def run_async(coro):
    return asyncio.run(coro)


class RecordingEmitter(EventEmitter):
    def __init__(self) -> None:
        self.events: List[WorkflowEvent] = []

    async def emit(self, event: WorkflowEvent) -> None:
        self.events.append(event)

    def types(self) -> List[EventType]:
        return [e.event_type for e in self.events]


STORED_DRAFT = """---
created_at: 2024-05-01
is_draft: true
key: foo
language: en
summary: A casual exploration of foo
tags:
  - ai-generated
title: Foo
type: post
---

Original body.
"""

PR_URL = "https://github.com/acme/website-repo/pull/21"


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def _make_github() -> AsyncMock:
    github = AsyncMock()
    github.get_ref.return_value = "base-sha"
    github.create_pull_request.return_value = PRCreateResult(pr_number=21, pr_url=PR_URL)
    return github


def _make_generator(text: str = "Generated body.\n", error: Exception = None) -> MagicMock:
    generator = MagicMock()
    generator.generate = AsyncMock(return_value=text, side_effect=error)
    generator.modify = AsyncMock(return_value="Modified body.\n")
    return generator


def _make_workflow(cls, github=None, generator=None, emitter=None):
    kind = cls.kind
    repo = "website-repo" if kind is WorkflowKind.BLOG else "automation-repo"
    github = github if github is not None else _make_github()
    emitter = emitter or RecordingEmitter()
    return cls(
        endpoint=RepositoryEndpoint(
            identifier=repo,
            owner="acme",
            webhook_secret="secret",
            workflow=kind,
        ),
        github_client=github,
        generator=generator or _make_generator(),
        mutator=RepositoryMutator(github_client=github, event_emitter=emitter),
        event_emitter=emitter,
    )


def _issue(
    title: str,
    body: str = "",
    number: int = 12,
    repo: str = "website-repo",
) -> IssueOpenedEvent:
    return IssueOpenedEvent(
        owner="acme",
        repository=repo,
        full_name=f"acme/{repo}",
        issue_number=number,
        title=title,
        body=body,
    )


def _review_comment(
    body: str,
    pr_number: int = 21,
    comment_id: int = 555,
    head_ref: str = "ai-blog-12",
    repo: str = "website-repo",
) -> ReviewCommentEvent:
    return ReviewCommentEvent(
        owner="acme",
        repository=repo,
        full_name=f"acme/{repo}",
        pr_number=pr_number,
        comment_id=comment_id,
        body=body,
        head_ref=head_ref,
    )


def _comment_bodies(github: AsyncMock) -> List[str]:
    return [c.args[3] for c in github.create_issue_comment.await_args_list]


# ---------------------------------------------------------------------------
# Blog: new issues
# ---------------------------------------------------------------------------


class TestBlogIssue:
    """New issues in the blog repository."""

    def test_generation_failure_falls_back_to_template(self):
        """Scenario: backend down, post is built from the local template."""
        github = _make_github()
        generator = _make_generator(error=GenerationError("backend unreachable"))
        workflow = _make_workflow(BlogWorkflow, github=github, generator=generator)

        outcome = run_async(
            workflow.handle(_issue("Blog post: Why Go and HTMX work well together"))
        )

        assert outcome.status == OutcomeStatus.COMPLETED
        assert outcome.stage == ProcessingStage.ACKNOWLEDGED
        assert outcome.outputs == {"pr_number": 21, "pr_url": PR_URL}

        github.create_ref.assert_awaited_once_with("acme", "website-repo", "ai-blog-12", "base-sha")
        owner, repo, path, content, message, branch = github.create_file.await_args.args
        assert path == f"{BLOG_DRAFTS_DIR}/why-go-and-htmx-work-well-together.md"
        assert message == "Add AI-generated blog post"
        assert branch == "ai-blog-12"
        assert "is_draft: true" in content
        assert "tags:\n  - ai-generated\n" in content
        assert "title: Why Go and HTMX work well together\n" in content
        body = content.split("---\n\n", 1)[1]
        assert body.count("Why Go and HTMX work well together") == 2

    def test_pull_request_and_acknowledgements(self):
        github = _make_github()
        workflow = _make_workflow(BlogWorkflow, github=github)

        run_async(workflow.handle(_issue("Blog post: Hello Go", body="Tags: golang")))

        pr_request = github.create_pull_request.await_args.args[2]
        assert pr_request.title == "Add blog post: Hello Go"
        assert pr_request.head_branch == "acme:ai-blog-12"
        assert "**Tags:** ai-generated, golang" in pr_request.body
        assert pr_request.body.endswith("Closes #12")
        github.create_issue_reaction.assert_awaited_once_with("acme", "website-repo", 12, "+1")
        assert _comment_bodies(github) == [
            f"🤖 I've opened {PR_URL} for review. Comment on the pull request with any changes you'd like!"
        ]

    def test_path_line_in_body_does_not_move_post_out_of_drafts(self):
        github = _make_github()
        workflow = _make_workflow(BlogWorkflow, github=github)

        run_async(
            workflow.handle(
                _issue(
                    "Blog post: Walking paths",
                    body="Path: the road less travelled\nFile: notes.txt",
                )
            )
        )

        path = github.create_file.await_args.args[2]
        assert path == f"{BLOG_DRAFTS_DIR}/walking-paths.md"
        assert workflow.select_file([PullRequestFile(filename=path)]) is not None

    def test_failed_pr_link_comment_skips_error_comment(self):
        github = _make_github()
        github.create_issue_comment.side_effect = GitHubAPIError("nope", status_code=502)
        workflow = _make_workflow(BlogWorkflow, github=github)

        outcome = run_async(workflow.handle(_issue("Blog post: Hello Go")))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.failed_step == "comment"
        assert outcome.outputs == {"pr_number": 21, "pr_url": PR_URL}
        # Only the PR-link comment was attempted; no error comment follows it
        assert github.create_issue_comment.await_count == 1
        assert "opened" in github.create_issue_comment.await_args.args[3]

    def test_not_actionable_issue_is_ignored(self):
        github = _make_github()
        emitter = RecordingEmitter()
        workflow = _make_workflow(BlogWorkflow, github=github, emitter=emitter)

        outcome = run_async(workflow.handle(_issue("Typo on homepage")))

        assert outcome.status == OutcomeStatus.IGNORED
        assert outcome.reason == "not_actionable"
        assert github.mock_calls == []
        assert emitter.types() == [EventType.IGNORED]

    def test_branch_failure_posts_comment_and_halts(self):
        github = _make_github()
        github.create_ref.side_effect = GitHubAPIError("Reference already exists", status_code=422)
        emitter = RecordingEmitter()
        workflow = _make_workflow(BlogWorkflow, github=github, emitter=emitter)

        outcome = run_async(workflow.handle(_issue("Blog post: Again")))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.failed_step == "create_branch"
        github.create_file.assert_not_awaited()
        github.create_pull_request.assert_not_awaited()
        assert _comment_bodies(github) == [
            "Sorry, I ran into an error creating the blog post. Could you check the request format?"
        ]
        assert EventType.ERROR in emitter.types()
        assert EventType.COMPLETION not in emitter.types()

    def test_reaction_failure_does_not_stop_processing(self):
        github = _make_github()
        github.create_issue_reaction.side_effect = GitHubAPIError("nope", status_code=500)
        workflow = _make_workflow(BlogWorkflow, github=github)

        outcome = run_async(workflow.handle(_issue("Blog post: Resilient")))

        assert outcome.status == OutcomeStatus.COMPLETED

    def test_completion_event_carries_duration(self):
        emitter = RecordingEmitter()
        workflow = _make_workflow(BlogWorkflow, emitter=emitter)

        run_async(workflow.handle(_issue("Blog post: Timing")))

        completion = [e for e in emitter.events if e.event_type == EventType.COMPLETION]
        assert len(completion) == 1
        assert completion[0].details["duration_seconds"] >= 0
        assert completion[0].details["pr_number"] == 21


# ---------------------------------------------------------------------------
# Blog: review comments
# ---------------------------------------------------------------------------


class TestBlogReviewComments:
    """PR review comments in the blog repository."""

    def _github_with_draft(self) -> AsyncMock:
        github = _make_github()
        github.list_pr_files.return_value = [
            PullRequestFile(filename="README.md"),
            PullRequestFile(filename=f"{BLOG_DRAFTS_DIR}/foo.md", status="added"),
        ]
        github.get_contents.return_value = FileContent(
            path=f"{BLOG_DRAFTS_DIR}/foo.md", content=STORED_DRAFT, sha="draft-sha"
        )
        return github

    def test_ready_to_publish_moves_the_post(self):
        """Scenario: "Ready to publish!" writes posts/foo.md and deletes drafts/foo.md."""
        github = self._github_with_draft()
        workflow = _make_workflow(BlogWorkflow, github=github)

        outcome = run_async(workflow.handle(_review_comment("Ready to publish!")))

        assert outcome.status == OutcomeStatus.COMPLETED
        assert outcome.completed_steps == ["write_file", "delete_file", "comment"]
        github.get_contents.assert_awaited_once_with(
            "acme", "website-repo", f"{BLOG_DRAFTS_DIR}/foo.md", ref="ai-blog-12"
        )

        _, _, path, content, message, branch = github.create_file.await_args.args
        assert path == f"{BLOG_POSTS_DIR}/foo.md"
        assert "is_draft: false" in content
        assert content.endswith("Original body.\n")
        assert message == "Move blog post to published"
        assert branch == "ai-blog-12"

        github.delete_file.assert_awaited_once_with(
            "acme",
            "website-repo",
            f"{BLOG_DRAFTS_DIR}/foo.md",
            "Remove old blog post file",
            "ai-blog-12",
            "draft-sha",
        )
        assert _comment_bodies(github) == ["✅ Blog post published!"]
        github.create_pr_comment_reaction.assert_awaited_once_with(
            "acme", "website-repo", 555, "+1"
        )
        github.update_file.assert_not_awaited()

    def test_move_to_draft_on_a_draft_rewrites_in_place(self):
        github = self._github_with_draft()
        workflow = _make_workflow(BlogWorkflow, github=github)

        outcome = run_async(workflow.handle(_review_comment("please move to draft")))

        assert outcome.status == OutcomeStatus.COMPLETED
        github.delete_file.assert_not_awaited()
        github.create_file.assert_not_awaited()
        args = github.update_file.await_args.args
        assert args[2] == f"{BLOG_DRAFTS_DIR}/foo.md"
        assert args[6] == "draft-sha"
        assert _comment_bodies(github) == ["✅ Blog post moved to drafts!"]

    def test_failed_delete_is_reported_as_partial_move(self):
        github = self._github_with_draft()
        github.delete_file.side_effect = GitHubAPIError("conflict", status_code=409)
        workflow = _make_workflow(BlogWorkflow, github=github)

        outcome = run_async(workflow.handle(_review_comment("publish")))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.failed_step == "delete_file"
        assert outcome.completed_steps == ["write_file"]
        comments = _comment_bodies(github)
        assert len(comments) == 1
        assert comments[0].startswith("⚠️")
        assert f"{BLOG_POSTS_DIR}/foo.md" in comments[0]
        assert f"{BLOG_DRAFTS_DIR}/foo.md" in comments[0]

    def test_change_request_rewrites_body_and_keeps_front_matter(self):
        github = self._github_with_draft()
        generator = _make_generator()
        workflow = _make_workflow(BlogWorkflow, github=github, generator=generator)

        outcome = run_async(workflow.handle(_review_comment("Can you add a code example?")))

        assert outcome.status == OutcomeStatus.COMPLETED
        generator.modify.assert_awaited_once_with(
            "Original body.\n", "Can you add a code example?", WorkflowKind.BLOG
        )
        _, _, path, content, message, branch, sha = github.update_file.await_args.args
        assert path == f"{BLOG_DRAFTS_DIR}/foo.md"
        assert content == STORED_DRAFT.replace("Original body.\n", "Modified body.\n")
        assert message == "Update blog post based on feedback: Can you add a code example?"
        assert branch == "ai-blog-12"
        assert sha == "draft-sha"
        github.create_pr_comment_reaction.assert_any_await("acme", "website-repo", 555, "rocket")

    def test_change_request_on_unparseable_post_edits_raw_text(self):
        github = self._github_with_draft()
        github.get_contents.return_value = FileContent(
            path=f"{BLOG_DRAFTS_DIR}/foo.md", content="no front matter", sha="s"
        )
        generator = _make_generator()
        workflow = _make_workflow(BlogWorkflow, github=github, generator=generator)

        run_async(workflow.handle(_review_comment("please fix the intro")))

        generator.modify.assert_awaited_once_with(
            "no front matter", "please fix the intro", WorkflowKind.BLOG
        )
        assert github.update_file.await_args.args[3] == "Modified body.\n"

    def test_generation_failure_on_change_posts_trouble_comment(self):
        github = self._github_with_draft()
        generator = _make_generator()
        generator.modify.side_effect = GenerationError("down")
        workflow = _make_workflow(BlogWorkflow, github=github, generator=generator)

        outcome = run_async(workflow.handle(_review_comment("Please rewrite it")))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.failed_step == "generate"
        github.update_file.assert_not_awaited()
        assert _comment_bodies(github) == [
            "Sorry, I had trouble making that change. Could you be more specific?"
        ]

    def test_no_post_in_pull_request(self):
        github = _make_github()
        github.list_pr_files.return_value = [PullRequestFile(filename="README.md")]
        workflow = _make_workflow(BlogWorkflow, github=github)

        outcome = run_async(workflow.handle(_review_comment("Ready to publish!")))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.failed_step == "select_file"
        assert len(_comment_bodies(github)) == 1
        github.get_contents.assert_not_awaited()

    def test_chatter_is_reacted_to_then_ignored(self):
        github = _make_github()
        workflow = _make_workflow(BlogWorkflow, github=github)

        outcome = run_async(workflow.handle(_review_comment("Looks good")))

        assert outcome.status == OutcomeStatus.IGNORED
        github.create_pr_comment_reaction.assert_awaited_once_with(
            "acme", "website-repo", 555, "+1"
        )
        github.list_pr_files.assert_not_awaited()

    def test_issue_comments_are_ignored(self):
        github = _make_github()
        workflow = _make_workflow(BlogWorkflow, github=github)
        event = IssueCommentEvent(
            owner="acme",
            repository="website-repo",
            full_name="acme/website-repo",
            issue_number=3,
            comment_id=4,
            body="please publish",
        )

        outcome = run_async(workflow.handle(event))

        assert outcome.status == OutcomeStatus.IGNORED
        assert outcome.reason == "issue_comment"
        assert github.mock_calls == []


# ---------------------------------------------------------------------------
# Code workflow
# ---------------------------------------------------------------------------


class TestCodeWorkflow:
    """Issues and review comments in the code repository."""

    def test_file_line_overrides_keyword_path(self):
        """Scenario: "File: pkg/bot-ai/client.go" decides where the code goes."""
        github = _make_github()
        generator = _make_generator(text="package ai\n")
        workflow = _make_workflow(CodeWorkflow, github=github, generator=generator)

        outcome = run_async(
            workflow.handle(
                _issue(
                    "Code: Add rate limiting to AI client",
                    body="File: pkg/bot-ai/client.go",
                    repo="automation-repo",
                )
            )
        )

        assert outcome.status == OutcomeStatus.COMPLETED
        _, repo, path, content, message, branch = github.create_file.await_args.args
        assert repo == "automation-repo"
        assert path == "pkg/bot-ai/client.go"
        assert content == "package ai\n"
        assert message == "Add: Add rate limiting to AI client"
        assert branch == "ai-code-12"
        pr_request = github.create_pull_request.await_args.args[2]
        assert pr_request.title == "Add code: Add rate limiting to AI client"
        assert "**File:** `pkg/bot-ai/client.go`" in pr_request.body

    def test_generation_failure_has_no_fallback(self):
        github = _make_github()
        generator = _make_generator(error=GenerationError("empty response"))
        emitter = RecordingEmitter()
        workflow = _make_workflow(CodeWorkflow, github=github, generator=generator, emitter=emitter)

        outcome = run_async(
            workflow.handle(_issue("Implement retries", repo="automation-repo"))
        )

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.failed_step == "generate"
        github.create_ref.assert_not_awaited()
        github.create_file.assert_not_awaited()
        assert _comment_bodies(github) == [
            "Sorry, I ran into an error creating the code change. Could you check the request format?"
        ]
        errors = [e for e in emitter.events if e.event_type == EventType.ERROR]
        assert errors[0].details["step"] == "generate"

    def test_change_request_updates_go_file(self):
        github = _make_github()
        github.list_pr_files.return_value = [
            PullRequestFile(filename="docs/notes.md"),
            PullRequestFile(filename="pkg/bot-code/client.go"),
        ]
        github.get_contents.return_value = FileContent(
            path="pkg/bot-code/client.go", content="package ai\n", sha="go-sha"
        )
        generator = _make_generator()
        workflow = _make_workflow(CodeWorkflow, github=github, generator=generator)
        long_request = "Please refactor this to use a token bucket and add tests for the edge cases"

        outcome = run_async(
            workflow.handle(
                _review_comment(long_request, head_ref="ai-code-12", repo="automation-repo")
            )
        )

        assert outcome.status == OutcomeStatus.COMPLETED
        generator.modify.assert_awaited_once_with("package ai\n", long_request, WorkflowKind.CODE)
        args = github.update_file.await_args.args
        assert args[2] == "pkg/bot-code/client.go"
        assert args[3] == "Modified body.\n"
        assert args[4] == f"Update code based on feedback: {long_request[:50]}..."
        assert args[6] == "go-sha"

    def test_title_without_slug_characters_gets_untitled_file(self):
        github = _make_github()
        workflow = _make_workflow(CodeWorkflow, github=github)

        run_async(workflow.handle(_issue("Code: 日本語", repo="automation-repo")))

        assert github.create_file.await_args.args[2] == "pkg/bot-code/untitled.go"

    def test_publish_is_not_a_code_directive(self):
        github = _make_github()
        workflow = _make_workflow(CodeWorkflow, github=github)

        outcome = run_async(
            workflow.handle(_review_comment("publish", head_ref="ai-code-1", repo="automation-repo"))
        )

        assert outcome.status == OutcomeStatus.IGNORED


@pytest.mark.parametrize(
    "text,expected",
    [
        ("short", "short"),
        ("x" * 50, "x" * 50),
        ("x" * 51, "x" * 50 + "..."),
        ("multi\nline   text", "multi line text"),
    ],
)
def test_truncate_text(text, expected):
    assert truncate_text(text) == expected

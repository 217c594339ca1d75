"""Blog post workflow.

Issues titled "Blog Post: ..." become draft posts under the drafts
directory of the blog repository, opened as a pull request. Review
comments on that pull request either ask for content changes or move the
post between drafts and published posts.
"""

import logging
from typing import List, Optional

from src.repobot.artifacts.frontmatter import (
    ArtifactParseError,
    artifact_from_file,
    serialize_artifact,
)
from src.repobot.artifacts.lifecycle import transition_lifecycle
from src.repobot.artifacts.models import Artifact
from src.repobot.artifacts.paths import is_blog_post_path
from src.repobot.classifier.models import (
    CommentClassification,
    GenerationRequest,
    LifecycleState,
    WorkflowKind,
)
from src.repobot.generator.client import GenerationError
from src.repobot.generator.prompts import render_fallback_post
from src.repobot.github.models import PullRequestFile
from src.repobot.mutation.plan import Comment, MutationPlan
from src.repobot.state.machine import ProcessingStateMachine
from src.repobot.webhook.models import IssueOpenedEvent, ReviewCommentEvent
from src.repobot.workflows.base import (
    CHANGE_FAILED_COMMENT,
    Workflow,
    WorkflowOutcome,
    truncate_text,
)


logger = logging.getLogger(__name__)


CREATE_COMMIT_MESSAGE = "Add AI-generated blog post"
PUBLISHED_COMMENT = "✅ Blog post published!"
DRAFTED_COMMENT = "✅ Blog post moved to drafts!"
PARTIAL_MOVE_COMMENT = (
    "⚠️ I wrote the post to `{target}` but could not remove `{source}`. "
    "Both copies are now on this branch; please delete the old one by hand."
)
NO_POST_COMMENT = "I couldn't find a blog post file in this pull request to update."

PR_BODY_TEMPLATE = """🤖 Blog post generated from issue #{issue_number}

**Title:** {title}
**Summary:** {summary}
**Tags:** {tags}

This post was written automatically and starts out as a draft. Comment on this pull request to request changes, or say "ready to publish" to move it to the published posts.

Closes #{issue_number}"""


class BlogWorkflow(Workflow):
    """Draft, revise and publish blog posts."""

    kind = WorkflowKind.BLOG

    issue_failure_comment = (
        "Sorry, I ran into an error creating the blog post. "
        "Could you check the request format?"
    )

    async def generate_content(
        self,
        request: GenerationRequest,
        event: IssueOpenedEvent,
        tracker: ProcessingStateMachine,
    ) -> Optional[str]:
        """Generate a post body, falling back to the local template."""
        try:
            return await self.generator.generate(request, self.kind)
        except GenerationError as e:
            logger.warning(
                "Generation failed, using fallback post",
                extra={"subject_id": event.subject_id, "error": str(e)},
            )
            return render_fallback_post(request.topic)

    def commit_message(self, artifact: Artifact) -> str:
        return CREATE_COMMIT_MESSAGE

    def pull_request_title(self, artifact: Artifact) -> str:
        return f"Add blog post: {artifact.title}"

    def pull_request_body(self, event: IssueOpenedEvent, artifact: Artifact) -> str:
        return PR_BODY_TEMPLATE.format(
            issue_number=event.issue_number,
            title=artifact.title,
            summary=artifact.summary,
            tags=", ".join(artifact.tags),
        )

    def select_file(self, files: List[PullRequestFile]) -> Optional[PullRequestFile]:
        for f in files:
            if f.status != "removed" and is_blog_post_path(f.filename):
                return f
        return None

    def change_commit_message(self, instruction: str) -> str:
        return f"Update blog post based on feedback: {truncate_text(instruction)}"

    async def apply_change(self, path: str, current_text: str, instruction: str) -> str:
        """Rewrite the post body and keep its front matter.

        Files without parseable front matter are handed to the generator
        whole.
        """
        try:
            artifact = artifact_from_file(path, current_text)
        except ArtifactParseError as e:
            logger.warning(
                "Could not parse post front matter, editing raw file",
                extra={"path": path, "error": str(e)},
            )
            return await self.generator.modify(current_text, instruction, self.kind)

        artifact.content = await self.generator.modify(
            artifact.content, instruction, self.kind
        )
        return serialize_artifact(artifact)

    async def handle_lifecycle_change(
        self,
        event: ReviewCommentEvent,
        verdict: CommentClassification,
        tracker: ProcessingStateMachine,
    ) -> WorkflowOutcome:
        """Move the PR's post to drafts/ or posts/ on its head branch."""
        selected = await self.find_artifact_file(event, tracker)
        if selected is None:
            await self._comment(event.pr_number, NO_POST_COMMENT)
            return self._outcome(tracker, event.subject_id)

        try:
            current = await self.github_client.get_contents(
                self.owner, self.repo, selected.filename, ref=event.head_ref
            )
            artifact = artifact_from_file(selected.filename, current.content)
        except Exception as e:
            await self._fail(tracker, "load_artifact", e)
            await self._comment(event.pr_number, CHANGE_FAILED_COMMENT)
            return self._outcome(tracker, event.subject_id)

        target_state = verdict.desired_lifecycle or LifecycleState.PUBLISHED
        move = transition_lifecycle(
            artifact,
            target_state,
            branch=event.head_ref,
            source_sha=current.sha,
            source_text=current.content,
        )

        done_comment = (
            PUBLISHED_COMMENT if target_state is LifecycleState.PUBLISHED else DRAFTED_COMMENT
        )
        plan = MutationPlan(
            owner=self.owner,
            repo=self.repo,
            steps=move.steps + (Comment(issue_number=event.pr_number, body=done_comment),),
        )

        logger.info(
            "Executing lifecycle plan",
            extra={
                "subject_id": event.subject_id,
                "source_path": move.source_path,
                "target_path": move.target_path,
                "target_state": target_state.value,
            },
        )

        result = await self.mutator.execute(plan, tracker)
        if not result.success:
            if result.failed_step == "delete_file":
                await self._comment(
                    event.pr_number,
                    PARTIAL_MOVE_COMMENT.format(
                        target=move.target_path, source=move.source_path
                    ),
                )
            elif result.failed_step != "comment":
                await self._comment(event.pr_number, CHANGE_FAILED_COMMENT)

        return self._outcome(tracker, event.subject_id, result)

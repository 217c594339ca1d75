"""Code workflow.

Issues like "Code: add retry helper" or "Implement ..." become a single Go
file in the code repository, opened as a pull request. Review comments
with change requests regenerate that file in place. There is no
template fallback: when generation fails the issue gets an error comment.
"""

import logging
from typing import List, Optional

from src.repobot.artifacts.models import Artifact
from src.repobot.artifacts.paths import is_code_path
from src.repobot.classifier.models import GenerationRequest, WorkflowKind
from src.repobot.generator.client import GenerationError
from src.repobot.github.models import PullRequestFile
from src.repobot.state.machine import ProcessingStateMachine
from src.repobot.webhook.models import IssueOpenedEvent
from src.repobot.workflows.base import Workflow, truncate_text


logger = logging.getLogger(__name__)


PR_BODY_TEMPLATE = """🤖 Code change generated from issue #{issue_number}

**File:** `{path}`
**Description:** {title}

This code was written automatically. Comment on this pull request with any changes you'd like.

Closes #{issue_number}"""


class CodeWorkflow(Workflow):
    """Generate and revise Go source files."""

    kind = WorkflowKind.CODE

    issue_failure_comment = (
        "Sorry, I ran into an error creating the code change. "
        "Could you check the request format?"
    )

    async def generate_content(
        self,
        request: GenerationRequest,
        event: IssueOpenedEvent,
        tracker: ProcessingStateMachine,
    ) -> Optional[str]:
        try:
            return await self.generator.generate(request, self.kind)
        except GenerationError as e:
            await self._fail(tracker, "generate", e)
            return None

    def commit_message(self, artifact: Artifact) -> str:
        return f"Add: {artifact.title}"

    def pull_request_title(self, artifact: Artifact) -> str:
        return f"Add code: {artifact.title}"

    def pull_request_body(self, event: IssueOpenedEvent, artifact: Artifact) -> str:
        return PR_BODY_TEMPLATE.format(
            issue_number=event.issue_number,
            path=artifact.canonical_path,
            title=artifact.title,
        )

    def select_file(self, files: List[PullRequestFile]) -> Optional[PullRequestFile]:
        for f in files:
            if f.status != "removed" and is_code_path(f.filename):
                return f
        return None

    def change_commit_message(self, instruction: str) -> str:
        return f"Update code based on feedback: {truncate_text(instruction)}"

    async def apply_change(self, path: str, current_text: str, instruction: str) -> str:
        return await self.generator.modify(current_text, instruction, self.kind)

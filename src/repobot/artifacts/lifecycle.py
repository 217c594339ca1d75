"""Draft/published lifecycle transitions.

The contents API has no rename, so moving a post between drafts/ and
posts/ is two independent steps: write the new file, then delete the old
one. If the write lands and the delete fails, both copies stay in the
branch; the caller reports that and leaves it for a human.
"""

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from src.repobot.artifacts.frontmatter import serialize_artifact, set_draft_flag
from src.repobot.artifacts.models import Artifact
from src.repobot.classifier.intent import desired_lifecycle_label
from src.repobot.classifier.models import LifecycleState
from src.repobot.mutation.plan import DeleteFile, MutationStep, WriteFile


MOVE_COMMIT_MESSAGE = "Move blog post to {label}"
REMOVE_COMMIT_MESSAGE = "Remove old blog post file"


class LifecycleMove(BaseModel):
    """Steps realising a lifecycle transition.

    Attributes:
        source_path: Where the artifact lived before the transition.
        target_path: Where it lives afterwards.
        steps: (WriteFile target, DeleteFile source) for a move, or a single
            in-place WriteFile when the path does not change.
    """

    model_config = ConfigDict(frozen=True)

    source_path: str
    target_path: str
    steps: Tuple[MutationStep, ...]

    @property
    def is_move(self) -> bool:
        return self.source_path != self.target_path


def transition_lifecycle(
    artifact: Artifact,
    new_state: LifecycleState,
    branch: str,
    source_sha: str,
    source_text: Optional[str] = None,
) -> LifecycleMove:
    """Set ``artifact`` to ``new_state`` and plan the file changes.

    Args:
        artifact: Artifact to transition; its state is updated in place.
        new_state: Desired lifecycle state.
        branch: Branch holding the file.
        source_sha: Blob SHA of the file at its current path.
        source_text: Stored file text. When given, only its is_draft line is
            rewritten so front-matter fields this model does not know about
            survive the move. Otherwise the artifact is re-serialized.

    Returns:
        LifecycleMove describing the write and the delete.
    """
    source_path = artifact.canonical_path
    artifact.lifecycle_state = new_state
    target_path = artifact.canonical_path

    if source_text is not None:
        content = set_draft_flag(source_text, new_state.is_draft)
    else:
        content = serialize_artifact(artifact)

    message = MOVE_COMMIT_MESSAGE.format(label=desired_lifecycle_label(new_state))

    if source_path == target_path:
        steps: Tuple[MutationStep, ...] = (
            WriteFile(
                path=target_path,
                content=content,
                message=message,
                branch=branch,
                sha=source_sha,
            ),
        )
    else:
        steps = (
            WriteFile(path=target_path, content=content, message=message, branch=branch),
            DeleteFile(
                path=source_path,
                message=REMOVE_COMMIT_MESSAGE,
                branch=branch,
                sha=source_sha,
            ),
        )

    return LifecycleMove(source_path=source_path, target_path=target_path, steps=steps)

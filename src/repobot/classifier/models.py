"""Intent classification models.

This module defines the structured outputs of the intent classifier:
- WorkflowKind: which per-repository pipeline an event belongs to
- LifecycleState: draft/published state of a generated artifact
- GenerationRequest: an actionable issue, ready for the generator
- CommentClassification: verdict for a PR comment

The models use Pydantic for validation, consistent with the webhook and
state models.
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_TAG = "ai-generated"


class WorkflowKind(str, Enum):
    """Per-repository pipelines.

    Attributes:
        BLOG: Generates markdown blog posts in the content repository.
        CODE: Generates source files in the automation-target repository.
    """

    BLOG = "blog"
    CODE = "code"


class LifecycleState(str, Enum):
    """Lifecycle state of a generated artifact.

    The state determines the artifact's canonical storage path, so a
    change of state is always a change of path.
    """

    DRAFT = "draft"
    PUBLISHED = "published"

    @property
    def is_draft(self) -> bool:
        return self is LifecycleState.DRAFT

    @classmethod
    def from_is_draft(cls, is_draft: bool) -> "LifecycleState":
        return cls.DRAFT if is_draft else cls.PUBLISHED


class GenerationRequest(BaseModel):
    """Structured request extracted from a new issue.

    Built once by the classifier and never modified afterwards.

    Attributes:
        title: Canonical title with the trigger prefix stripped.
        topic: Free-form description, taken from the issue body.
        tags: Ordered tags, always starting with the default tag.
        target_path: Explicit file path from a "File:"/"Path:" body line.
        is_draft: Whether the resulting artifact starts as a draft.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Request title without trigger prefix")

    topic: str = Field(default="", description="Description or topic text")

    tags: Tuple[str, ...] = Field(
        default=(DEFAULT_TAG,),
        description="Ordered tags, default tag first",
    )

    target_path: Optional[str] = Field(
        default=None,
        description="Explicit target path supplied by the requester",
    )

    is_draft: bool = Field(default=True, description="Start in draft state")

    @property
    def lifecycle_state(self) -> LifecycleState:
        return LifecycleState.from_is_draft(self.is_draft)


class CommentClassification(BaseModel):
    """Verdict for a pull-request comment.

    A lifecycle directive is never also a change request: when
    is_lifecycle_change is True, is_change_request is always False.

    Attributes:
        is_change_request: The comment asks for a content change.
        is_lifecycle_change: The comment asks to publish or un-publish.
        desired_lifecycle: Target state when is_lifecycle_change is True.
    """

    model_config = ConfigDict(frozen=True)

    is_change_request: bool = False

    is_lifecycle_change: bool = False

    desired_lifecycle: Optional[LifecycleState] = None

    @property
    def is_actionable(self) -> bool:
        return self.is_change_request or self.is_lifecycle_change

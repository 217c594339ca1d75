"""Generated artifact model.

An Artifact is one unit of generated content (a blog post or a code
file) tracked through its draft/published lifecycle. Its canonical path
is derived from (kind, key, lifecycle state, title, target path) on every
access, so a lifecycle change can never leave a stale path behind.
"""

from datetime import date, datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.repobot.artifacts.paths import UNTITLED_KEY, blog_path, code_path, slugify
from src.repobot.classifier.models import (
    GenerationRequest,
    LifecycleState,
    WorkflowKind,
)


DEFAULT_LANGUAGE = "en"
DEFAULT_POST_TYPE = "post"
SUMMARY_PREFIX = "A casual exploration of "


def _single_line(value: str) -> str:
    return " ".join(value.split())


def build_summary(topic: str) -> str:
    """Summary line derived from the first non-empty line of the topic."""
    first_line = next((line for line in topic.splitlines() if line.strip()), "")
    return SUMMARY_PREFIX + _single_line(first_line)


class Artifact(BaseModel):
    """A generated blog post or code file.

    Attributes:
        kind: Workflow that owns the artifact.
        key: Slug derived from the title; names the file for blog posts.
        title: Human title.
        content: Generated body (without front matter).
        tags: Ordered, de-duplicated tags.
        created_at: Creation date.
        lifecycle_state: Draft or published.
        summary: One-line summary used in front matter and PR bodies.
        language: Content language code.
        target_path: Explicit path override for code files; unused for blog posts.
    """

    model_config = ConfigDict(validate_assignment=True)

    kind: WorkflowKind

    key: str = Field(..., min_length=1)

    title: str = Field(..., min_length=1)

    content: str = ""

    tags: List[str] = Field(default_factory=list)

    created_at: date = Field(
        default_factory=lambda: datetime.now(timezone.utc).date(),
    )

    lifecycle_state: LifecycleState = LifecycleState.DRAFT

    summary: str = ""

    language: str = DEFAULT_LANGUAGE

    post_type: str = DEFAULT_POST_TYPE

    target_path: Optional[str] = None

    @field_validator("title", "summary", "key", "language", "post_type")
    @classmethod
    def validate_single_line(cls, v: str) -> str:
        """Front-matter scalars are single-line."""
        return _single_line(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        """Strip tags and drop blanks and duplicates, keeping order."""
        seen: List[str] = []
        for tag in v:
            cleaned = _single_line(tag)
            if cleaned and cleaned not in seen:
                seen.append(cleaned)
        return seen

    @property
    def is_draft(self) -> bool:
        return self.lifecycle_state.is_draft

    @property
    def canonical_path(self) -> str:
        """Repository path this artifact must live at right now."""
        return determine_path(self)

    @classmethod
    def from_request(
        cls,
        request: GenerationRequest,
        kind: WorkflowKind,
        content: str,
    ) -> "Artifact":
        """Wrap freshly generated content for a classified request."""
        return cls(
            kind=kind,
            key=slugify(request.title) or UNTITLED_KEY,
            title=request.title,
            content=content,
            tags=list(request.tags),
            lifecycle_state=request.lifecycle_state,
            summary=build_summary(request.topic),
            target_path=request.target_path if kind is WorkflowKind.CODE else None,
        )


def determine_path(artifact: Artifact) -> str:
    """Compute the canonical repository path of an artifact.

    Blog posts always go to the drafts or posts directory by lifecycle
    state; a target path is ignored for them. Code files use an explicit
    target path, or else the title keyword conventions.
    """
    if artifact.kind is WorkflowKind.BLOG:
        return blog_path(artifact.key, artifact.lifecycle_state)

    return code_path(artifact.title, artifact.target_path)

"""Keyword-based intent classification.

This package decides what a new issue or PR comment means:
- Whether an issue title triggers the blog or code workflow
- The canonical request title, target path, and tags
- Whether a PR comment asks for a content change or a lifecycle move
"""

from src.repobot.classifier.intent import (
    classify_comment,
    classify_issue,
    is_actionable_title,
    parse_body_directives,
    strip_title_prefix,
)
from src.repobot.classifier.models import (
    DEFAULT_TAG,
    CommentClassification,
    GenerationRequest,
    LifecycleState,
    WorkflowKind,
)

__all__ = [
    "DEFAULT_TAG",
    "classify_comment",
    "classify_issue",
    "CommentClassification",
    "GenerationRequest",
    "is_actionable_title",
    "LifecycleState",
    "parse_body_directives",
    "strip_title_prefix",
    "WorkflowKind",
]

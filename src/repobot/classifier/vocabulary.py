"""Keyword vocabulary for intent detection.

Every phrase the classifier reacts to lives in one of these tables so the
vocabulary can be tested on its own. Matching is case-insensitive
substring containment; tables are scanned in order and the first hit wins.
"""

from typing import Dict, Tuple

from src.repobot.classifier.models import LifecycleState, WorkflowKind


# Issue titles containing one of these phrases are actionable for the workflow.
ISSUE_TRIGGERS: Dict[WorkflowKind, Tuple[str, ...]] = {
    WorkflowKind.BLOG: ("blog post",),
    WorkflowKind.CODE: ("code:", "add feature", "refactor", "implement"),
}

# Leading title prefixes stripped to produce the canonical request title.
TITLE_PREFIXES: Dict[WorkflowKind, Tuple[str, ...]] = {
    WorkflowKind.BLOG: ("blog post:",),
    WorkflowKind.CODE: ("code:",),
}

_COMMON_CHANGE_PHRASES: Tuple[str, ...] = (
    "can you",
    "could you",
    "please",
    "add",
    "remove",
    "change",
    "update",
    "make it",
    "make this",
    "more",
    "less",
    "fix",
    "improve",
    "rewrite",
)

# Comment phrases that mark a content-change request.
CHANGE_REQUEST_PHRASES: Dict[WorkflowKind, Tuple[str, ...]] = {
    WorkflowKind.BLOG: _COMMON_CHANGE_PHRASES,
    WorkflowKind.CODE: _COMMON_CHANGE_PHRASES + ("refactor",),
}

# Comment phrases that move an artifact between lifecycle states.
# "publish" is checked before the draft phrases, so a comment mentioning
# both resolves to PUBLISHED.
LIFECYCLE_PHRASES: Dict[WorkflowKind, Tuple[Tuple[str, LifecycleState], ...]] = {
    WorkflowKind.BLOG: (
        ("ready to publish", LifecycleState.PUBLISHED),
        ("publish", LifecycleState.PUBLISHED),
        ("move to draft", LifecycleState.DRAFT),
        ("make it a draft", LifecycleState.DRAFT),
    ),
    WorkflowKind.CODE: (),
}

# Body line prefixes (after trimming, case-insensitive).
TARGET_PATH_LINE_PREFIXES: Tuple[str, ...] = ("file:", "path:")
TAGS_LINE_PREFIX = "tags:"

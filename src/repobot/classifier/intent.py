"""Keyword-driven intent classifier.

Maps a new issue's (title, body) to a GenerationRequest, and a PR comment
to a CommentClassification. Both functions are pure: the phrase tables in
vocabulary.py are the only inputs besides the event text.

Issue body conventions:
    File: pkg/bot-ai/client.go      -> target_path (code only)
    Path: pkg/bot-ai/client.go      -> target_path (code only)
    Tags: golang, htmx, web         -> appended to the default tag
"""

import logging
from typing import List, Optional, Tuple

from src.repobot.classifier.models import (
    DEFAULT_TAG,
    CommentClassification,
    GenerationRequest,
    LifecycleState,
    WorkflowKind,
)
from src.repobot.classifier.vocabulary import (
    CHANGE_REQUEST_PHRASES,
    ISSUE_TRIGGERS,
    LIFECYCLE_PHRASES,
    TAGS_LINE_PREFIX,
    TARGET_PATH_LINE_PREFIXES,
    TITLE_PREFIXES,
)


logger = logging.getLogger(__name__)


def _contains_any(text: str, phrases: Tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(phrase in lowered for phrase in phrases)


def is_actionable_title(title: str, workflow: WorkflowKind) -> bool:
    """Check whether an issue title triggers the given workflow."""
    return _contains_any(title or "", ISSUE_TRIGGERS[workflow])


def strip_title_prefix(title: str, workflow: WorkflowKind) -> str:
    """Remove a leading trigger prefix (any case) and surrounding whitespace.

    Example:
        >>> strip_title_prefix("Blog post: Why Go", WorkflowKind.BLOG)
        'Why Go'
    """
    cleaned = title.strip()
    for prefix in TITLE_PREFIXES[workflow]:
        if cleaned.lower().startswith(prefix):
            cleaned = cleaned[len(prefix):].strip()
            break
    return cleaned


def parse_body_directives(body: str) -> Tuple[Optional[str], List[str]]:
    """Scan an issue body for File:/Path: and Tags: lines.

    Only the first Tags: line is used. When several File:/Path: lines are
    present the last one wins.

    Args:
        body: Raw issue body.

    Returns:
        Tuple of (target_path or None, extra tags in order of appearance).
    """
    target_path: Optional[str] = None
    tags: List[str] = []
    tags_seen = False

    for line in (body or "").splitlines():
        stripped = line.strip()
        lowered = stripped.lower()

        if lowered.startswith(TARGET_PATH_LINE_PREFIXES):
            value = stripped.split(":", 1)[1].strip()
            if value:
                target_path = value
            continue

        if lowered.startswith(TAGS_LINE_PREFIX) and not tags_seen:
            tags_seen = True
            remainder = lowered.split(":", 1)[1]
            tags.extend(tag.strip() for tag in remainder.split(",") if tag.strip())

    return target_path, tags


def _merge_tags(extra: List[str]) -> Tuple[str, ...]:
    merged = [DEFAULT_TAG]
    for tag in extra:
        if tag not in merged:
            merged.append(tag)
    return tuple(merged)


def classify_issue(
    title: str,
    body: str,
    workflow: WorkflowKind,
) -> Optional[GenerationRequest]:
    """Turn a new issue into a GenerationRequest, or None if not actionable.

    Args:
        title: Issue title.
        body: Issue body (may be empty).
        workflow: Workflow whose trigger vocabulary applies.

    Returns:
        GenerationRequest for actionable issues, None otherwise.
    """
    if not is_actionable_title(title, workflow):
        logger.debug(
            "Issue title is not actionable",
            extra={"workflow": workflow.value, "title": (title or "")[:100]},
        )
        return None

    clean_title = strip_title_prefix(title, workflow)
    if not clean_title:
        logger.info(
            "Issue title is empty after prefix removal",
            extra={"workflow": workflow.value, "title": title[:100]},
        )
        return None

    target_path, extra_tags = parse_body_directives(body)
    # Blog posts always live under the drafts/posts root
    if workflow is not WorkflowKind.CODE:
        target_path = None
    topic = (body or "").strip() or clean_title

    request = GenerationRequest(
        title=clean_title,
        topic=topic,
        tags=_merge_tags(extra_tags),
        target_path=target_path,
        is_draft=workflow is WorkflowKind.BLOG,
    )

    logger.info(
        "Issue classified as actionable",
        extra={
            "workflow": workflow.value,
            "title": clean_title[:100],
            "tags": list(request.tags),
            "target_path": target_path,
        },
    )
    return request


def classify_comment(text: str, workflow: WorkflowKind) -> CommentClassification:
    """Classify a PR comment.

    Lifecycle directives are checked first; a comment that matches one is
    reported purely as a lifecycle change even if it also contains
    change-request phrases.

    Args:
        text: Comment body.
        workflow: Workflow whose vocabulary applies.

    Returns:
        CommentClassification verdict.
    """
    lowered = (text or "").lower()

    for phrase, state in LIFECYCLE_PHRASES[workflow]:
        if phrase in lowered:
            return CommentClassification(
                is_lifecycle_change=True,
                desired_lifecycle=state,
            )

    if _contains_any(lowered, CHANGE_REQUEST_PHRASES[workflow]):
        return CommentClassification(is_change_request=True)

    return CommentClassification()


def desired_lifecycle_label(state: LifecycleState) -> str:
    """Human wording used in commit messages for a lifecycle target."""
    return "published" if state is LifecycleState.PUBLISHED else "draft"

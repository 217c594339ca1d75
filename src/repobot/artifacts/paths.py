"""Canonical storage paths for generated artifacts.

Blog posts live under one content root split into drafts/ and posts/;
code files live under the conventional code directory. The path is
always a function of the artifact, never stored on its own.
"""

import posixpath
import re
from typing import Optional, Tuple

from src.repobot.classifier.models import LifecycleState


BLOG_CONTENT_ROOT = "pkg/blog_markdown_content"
BLOG_DRAFTS_DIR = f"{BLOG_CONTENT_ROOT}/drafts"
BLOG_POSTS_DIR = f"{BLOG_CONTENT_ROOT}/posts"
BLOG_EXTENSION = ".md"

CODE_DIR = "pkg/bot-code"
CODE_EXTENSION = ".go"

# Title keyword -> conventional code path, checked in order.
CODE_KEYWORD_PATHS: Tuple[Tuple[str, str], ...] = (
    ("handler", f"{CODE_DIR}/handlers.go"),
    ("client", f"{CODE_DIR}/client.go"),
    ("test", f"{CODE_DIR}/code_test.go"),
)

SLUG_SEPARATOR = "-"

# Used when a title has no characters left after slugifying
UNTITLED_KEY = "untitled"


def slugify(text: str, separator: str = SLUG_SEPARATOR) -> str:
    """Build a URL- and filename-safe key from free text.

    Lowercases, turns whitespace runs into the separator, drops every
    character outside [a-z0-9] and the separator, then collapses and trims
    repeated separators.

    Example:
        >>> slugify("Add Feature: Rate Limiting!")
        'add-feature-rate-limiting'
    """
    sep = re.escape(separator)
    slug = re.sub(r"\s+", separator, text.strip().lower())
    slug = re.sub(rf"[^a-z0-9{sep}]", "", slug)
    slug = re.sub(rf"{sep}{{2,}}", separator, slug)
    return slug.strip(separator)


def blog_path(key: str, state: LifecycleState) -> str:
    """Path of a blog post with the given key in the given lifecycle state."""
    directory = BLOG_DRAFTS_DIR if state.is_draft else BLOG_POSTS_DIR
    return f"{directory}/{key}{BLOG_EXTENSION}"


def code_path(title: str, target_path: Optional[str] = None) -> str:
    """Path of a generated code file.

    An explicit target path is used verbatim. Otherwise a title keyword
    selects a conventional path, falling back to a slug of the title
    under the code directory.
    """
    if target_path:
        return target_path

    lowered = title.lower()
    for keyword, path in CODE_KEYWORD_PATHS:
        if keyword in lowered:
            return path

    return f"{CODE_DIR}/{slugify(title) or UNTITLED_KEY}{CODE_EXTENSION}"


def is_blog_post_path(path: str) -> bool:
    """Check whether a repository path is a managed blog post file."""
    return path.endswith(BLOG_EXTENSION) and (
        path.startswith(f"{BLOG_DRAFTS_DIR}/") or path.startswith(f"{BLOG_POSTS_DIR}/")
    )


def is_code_path(path: str) -> bool:
    return path.endswith(CODE_EXTENSION)


def lifecycle_from_path(path: str) -> LifecycleState:
    """Infer the lifecycle state from a blog post path."""
    if path.startswith(f"{BLOG_POSTS_DIR}/"):
        return LifecycleState.PUBLISHED
    return LifecycleState.DRAFT


def key_from_path(path: str) -> str:
    """Blog post key (file stem) of a repository path."""
    stem, _ = posixpath.splitext(posixpath.basename(path))
    return stem

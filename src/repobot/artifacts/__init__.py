"""Generated artifacts: model, storage paths, serialized form and lifecycle."""

from src.repobot.artifacts.frontmatter import (
    ArtifactParseError,
    artifact_from_file,
    parse_artifact,
    serialize_artifact,
    set_draft_flag,
)
from src.repobot.artifacts.lifecycle import LifecycleMove, transition_lifecycle
from src.repobot.artifacts.models import Artifact, build_summary, determine_path
from src.repobot.artifacts.paths import (
    blog_path,
    code_path,
    is_blog_post_path,
    is_code_path,
    slugify,
)

__all__ = [
    "Artifact",
    "ArtifactParseError",
    "artifact_from_file",
    "blog_path",
    "build_summary",
    "code_path",
    "determine_path",
    "is_blog_post_path",
    "is_code_path",
    "LifecycleMove",
    "parse_artifact",
    "serialize_artifact",
    "set_draft_flag",
    "slugify",
    "transition_lifecycle",
]

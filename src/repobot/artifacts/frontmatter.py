"""Serialized form of artifacts.

Blog posts are stored as a front-matter block followed by a blank line
and the raw body:

    ---
    created_at: 2024-05-01
    is_draft: true
    key: why-go-and-htmx-work-well-together
    language: en
    summary: A casual exploration of Go and HTMX
    tags:
      - ai-generated
      - golang
    title: Why Go and HTMX work well together
    type: post
    ---

    <body>

Field order is fixed, so parse -> serialize reproduces the input byte for
byte. Code artifacts serialize as their raw content.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from src.repobot.artifacts.models import Artifact
from src.repobot.artifacts.paths import key_from_path, lifecycle_from_path
from src.repobot.classifier.models import LifecycleState, WorkflowKind


FRONT_MATTER_DELIMITER = "---"
DATE_FORMAT = "%Y-%m-%d"
TAG_ITEM_PREFIX = "  - "


class ArtifactParseError(ValueError):
    """Raised when a stored blog post cannot be read back into an Artifact.

    Attributes:
        path: Repository path of the offending file, if known.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


def render_front_matter(artifact: Artifact) -> str:
    """Render the fixed-order front-matter block, delimiters included."""
    lines = [
        FRONT_MATTER_DELIMITER,
        f"created_at: {artifact.created_at.strftime(DATE_FORMAT)}",
        f"is_draft: {_format_bool(artifact.is_draft)}",
        f"key: {artifact.key}",
        f"language: {artifact.language}",
        f"summary: {artifact.summary}",
        "tags:",
    ]
    lines.extend(f"{TAG_ITEM_PREFIX}{tag}" for tag in artifact.tags)
    lines.extend(
        [
            f"title: {artifact.title}",
            f"type: {artifact.post_type}",
            FRONT_MATTER_DELIMITER,
        ]
    )
    return "\n".join(lines) + "\n"


def serialize_artifact(artifact: Artifact) -> str:
    """Serialize an artifact to the text stored in the repository."""
    if artifact.kind is WorkflowKind.CODE:
        return artifact.content
    return render_front_matter(artifact) + "\n" + artifact.content


def _split_document(text: str, path: Optional[str]):
    lines = text.split("\n")
    if not lines or lines[0].rstrip("\r") != FRONT_MATTER_DELIMITER:
        raise ArtifactParseError("missing opening front-matter delimiter", path)

    for index in range(1, len(lines)):
        if lines[index].rstrip("\r") == FRONT_MATTER_DELIMITER:
            header = lines[1:index]
            body_lines = lines[index + 1:]
            if body_lines and body_lines[0] == "":
                body_lines = body_lines[1:]
            return header, "\n".join(body_lines)

    raise ArtifactParseError("missing closing front-matter delimiter", path)


def _parse_header(header: List[str], path: Optional[str]) -> Dict[str, object]:
    fields: Dict[str, object] = {}
    current_list: Optional[List[str]] = None

    for raw in header:
        line = raw.rstrip("\r")
        if not line.strip():
            continue

        if line.startswith(TAG_ITEM_PREFIX.rstrip()) or line.lstrip().startswith("- "):
            if current_list is None:
                raise ArtifactParseError(f"list item outside a list: {line!r}", path)
            current_list.append(line.lstrip()[2:].strip())
            continue

        name, sep, value = line.partition(":")
        if not sep:
            raise ArtifactParseError(f"malformed front-matter line: {line!r}", path)

        name = name.strip()
        value = value.strip()
        if name == "tags" and not value:
            current_list = []
            fields[name] = current_list
        else:
            current_list = None
            fields[name] = value

    return fields


def _parse_bool(value: object, path: Optional[str]) -> bool:
    text = str(value).lower()
    if text in ("true", "false"):
        return text == "true"
    raise ArtifactParseError(f"invalid is_draft value: {value!r}", path)


def _parse_date(value: object, path: Optional[str]) -> date:
    try:
        return datetime.strptime(str(value), DATE_FORMAT).date()
    except ValueError as e:
        raise ArtifactParseError(f"invalid created_at value: {value!r}", path) from e


def parse_artifact(text: str, path: Optional[str] = None) -> Artifact:
    """Read a stored blog post back into an Artifact.

    Args:
        text: File content including front matter.
        path: Repository path, used as key fallback and in error messages.

    Returns:
        The reconstructed blog Artifact.

    Raises:
        ArtifactParseError: If the front matter is missing or malformed.
    """
    header, body = _split_document(text, path)
    fields = _parse_header(header, path)

    missing = [name for name in ("is_draft", "title") if name not in fields]
    if missing:
        raise ArtifactParseError(f"missing front-matter fields: {missing}", path)

    key = str(fields.get("key") or (key_from_path(path) if path else ""))
    tags = fields.get("tags") or []

    try:
        artifact_fields = {
            "kind": WorkflowKind.BLOG,
            "key": key,
            "title": str(fields["title"]),
            "content": body,
            "tags": list(tags) if isinstance(tags, list) else [],
            "lifecycle_state": LifecycleState.from_is_draft(
                _parse_bool(fields["is_draft"], path)
            ),
            "summary": str(fields.get("summary", "")),
            "language": str(fields.get("language", "")),
            "post_type": str(fields.get("type", "")),
        }
        if "created_at" in fields:
            artifact_fields["created_at"] = _parse_date(fields["created_at"], path)
        return Artifact(**artifact_fields)
    except ValueError as e:
        if isinstance(e, ArtifactParseError):
            raise
        raise ArtifactParseError(str(e), path) from e


def set_draft_flag(text: str, is_draft: bool) -> str:
    """Rewrite only the is_draft line of a stored post, leaving the rest intact."""
    lines = text.split("\n")
    for index, line in enumerate(lines):
        if line.startswith("is_draft:"):
            lines[index] = f"is_draft: {_format_bool(is_draft)}"
            break
    return "\n".join(lines)


def artifact_from_file(path: str, text: str) -> Artifact:
    """Parse a stored post and align key and state with where it actually lives.

    The file location is authoritative: a post found under drafts/ is a
    draft whatever its is_draft line says, and its key is the file stem.
    """
    artifact = parse_artifact(text, path)
    artifact.key = key_from_path(path)
    artifact.lifecycle_state = lifecycle_from_path(path)
    return artifact

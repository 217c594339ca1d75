"""GitHub API data models.

Request and result shapes for the repository operations the bot performs:
- PRCreateRequest / PRCreateResult: pull request creation
- FileContent: a decoded file read from the contents API
- PullRequestFile: one entry of a PR's changed-file listing
"""

import base64
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class PRCreateRequest(BaseModel):
    """Request to open a pull request.

    Attributes:
        title: Pull request title.
        body: Pull request description in markdown.
        head_branch: Branch with the changes; "owner:branch" is accepted.
        base_branch: Branch to merge into.
    """

    title: str = Field(..., min_length=1, description="Pull request title")

    body: str = Field(default="", description="Pull request body (markdown)")

    head_branch: str = Field(
        ...,
        min_length=1,
        description="Branch containing the changes",
    )

    base_branch: str = Field(
        default="main",
        min_length=1,
        description="Branch the pull request targets",
    )


class PRCreateResult(BaseModel):
    """Result of a pull request creation."""

    pr_number: int = Field(..., gt=0, description="Pull request number")

    pr_url: str = Field(..., description="Browser URL of the pull request")

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "PRCreateResult":
        """Build a result from the GitHub create-pull-request response."""
        return cls(pr_number=data["number"], pr_url=data.get("html_url", ""))


class FileContent(BaseModel):
    """A file read through the contents API.

    Attributes:
        path: Repository path.
        content: Decoded UTF-8 text.
        sha: Blob SHA, required to update or delete the file.
    """

    path: str

    content: str

    sha: str = Field(..., min_length=1)

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "FileContent":
        """Decode a contents API response.

        GitHub wraps base64 content at 60 columns, so embedded newlines are
        removed before decoding.
        """
        raw = data.get("content") or ""
        encoding = data.get("encoding", "base64")
        if encoding == "base64":
            text = base64.b64decode("".join(raw.split())).decode("utf-8")
        else:
            text = raw
        return cls(path=data.get("path", ""), content=text, sha=data["sha"])


class PullRequestFile(BaseModel):
    """One changed file of a pull request."""

    filename: str

    status: str = "modified"

    sha: Optional[str] = None

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "PullRequestFile":
        return cls(
            filename=data["filename"],
            status=data.get("status", "modified"),
            sha=data.get("sha"),
        )

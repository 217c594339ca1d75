"""GitHub API client for repository mutations.

This package wraps the GitHub REST API operations the bot needs:
- Branch references
- File contents (create, update, delete)
- Pull requests and their changed files
- Comments and reactions
"""

from src.repobot.github.client import (
    GitHubAPIError,
    GitHubClient,
    RateLimitError,
)
from src.repobot.github.models import (
    FileContent,
    PRCreateRequest,
    PRCreateResult,
    PullRequestFile,
)

__all__ = [
    "FileContent",
    "GitHubAPIError",
    "GitHubClient",
    "PRCreateRequest",
    "PRCreateResult",
    "PullRequestFile",
    "RateLimitError",
]

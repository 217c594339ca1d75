"""Routing of deliveries to the blog or code workflow.

The repository full name comes from the payload. It matches a configured
identifier when the two are equal, or when the longer one ends with "/"
plus the shorter one (so "website-repo" matches "owner/website-repo").
Endpoints are tried in a fixed order; no match means the delivery is
acknowledged and dropped.
"""

import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from src.repobot.classifier.models import WorkflowKind
from src.repobot.config import BotSettings


logger = logging.getLogger(__name__)


def names_match(full_name: str, identifier: str) -> bool:
    """Exact or trailing-path-segment match, ignoring case.

    Example:
        >>> names_match("owner/website-repo", "website-repo")
        True
        >>> names_match("owner/my-website-repo", "website-repo")
        False
    """
    a = full_name.strip().lower()
    b = identifier.strip().lower()
    if not a or not b:
        return False
    if a == b:
        return True
    longer, shorter = (a, b) if len(a) > len(b) else (b, a)
    return longer.endswith("/" + shorter)


class RepositoryEndpoint(BaseModel):
    """One target repository and how its deliveries are handled.

    Attributes:
        identifier: Configured repository name, bare or "{owner}/{repo}".
        owner: Configured owner, used when the identifier is bare.
        webhook_secret: Shared secret for this repository's deliveries.
        workflow: Workflow that handles its events.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(..., min_length=1)

    owner: str = Field(..., min_length=1)

    webhook_secret: str = Field(..., min_length=1, repr=False)

    workflow: WorkflowKind

    @property
    def repo(self) -> str:
        return self.identifier.rstrip("/").rsplit("/", 1)[-1]

    @property
    def repo_owner(self) -> str:
        """Owner for API calls: the identifier's own owner when qualified."""
        parts = self.identifier.strip("/").split("/")
        return parts[-2] if len(parts) >= 2 else self.owner

    @property
    def full_name(self) -> str:
        return f"{self.repo_owner}/{self.repo}"

    def matches(self, full_name: str) -> bool:
        return names_match(full_name, self.identifier)


class EventRouter:
    """Picks the endpoint for a repository full name.

    Endpoints are checked in the order given; the first match wins.
    """

    def __init__(self, endpoints: Sequence[RepositoryEndpoint]):
        self._endpoints: List[RepositoryEndpoint] = list(endpoints)

    @property
    def endpoints(self) -> List[RepositoryEndpoint]:
        return list(self._endpoints)

    def route(self, full_name: str) -> Optional[RepositoryEndpoint]:
        """Return the matching endpoint, or None for unknown repositories."""
        for endpoint in self._endpoints:
            if endpoint.matches(full_name):
                logger.debug(
                    "Routed delivery",
                    extra={
                        "full_name": full_name,
                        "workflow": endpoint.workflow.value,
                    },
                )
                return endpoint

        logger.warning(
            "No endpoint configured for repository",
            extra={
                "full_name": full_name,
                "configured": [e.identifier for e in self._endpoints],
            },
        )
        return None

    @classmethod
    def from_settings(cls, settings: BotSettings) -> "EventRouter":
        """Blog endpoint first, then the code endpoint when configured."""
        endpoints = [
            RepositoryEndpoint(
                identifier=settings.blog_repo,
                owner=settings.github_owner,
                webhook_secret=settings.github_webhook_secret,
                workflow=WorkflowKind.BLOG,
            )
        ]
        if settings.code_repo:
            endpoints.append(
                RepositoryEndpoint(
                    identifier=settings.code_repo,
                    owner=settings.github_owner,
                    webhook_secret=settings.effective_code_webhook_secret,
                    workflow=WorkflowKind.CODE,
                )
            )
        return cls(endpoints)

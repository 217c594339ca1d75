"""GitHub API client for repository mutations.

This module provides an async wrapper around the GitHub REST API for:
- Reading and creating git references (branches)
- Reading, creating, updating and deleting files through the contents API
- Opening pull requests and listing their changed files
- Commenting on issues and pull requests
- Adding reactions to issues and pull request review comments

Requests are made once. Failures, rate limits included, are raised to the
caller and never retried here.
"""

import base64
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from src.repobot.github.models import (
    FileContent,
    PRCreateRequest,
    PRCreateResult,
    PullRequestFile,
)


logger = logging.getLogger(__name__)


class GitHubAPIError(Exception):
    """Raised when a GitHub API request fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response.
        response_body: Response body from GitHub API.
        request_url: The URL that was requested.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)


class RateLimitError(GitHubAPIError):
    """Raised when GitHub API rate limit is exceeded.

    Attributes:
        reset_at: Unix timestamp when the rate limit resets.
        retry_after: Seconds until the limit resets, if known.
    """

    def __init__(
        self,
        message: str,
        reset_at: Optional[int] = None,
        retry_after: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at
        self.retry_after = retry_after


def _encode_content(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def _contents_path(owner: str, repo: str, path: str) -> str:
    return f"/repos/{owner}/{repo}/contents/{quote(path.lstrip('/'))}"


class GitHubClient:
    """Async GitHub API client.

    Supports both github.com and GitHub Enterprise Server through
    ``base_url``. One instance is built at startup and shared by the
    workflows; it owns a single pooled httpx client.

    Example:
        >>> client = GitHubClient(token="ghp_xxx")
        >>> async with client:
        ...     await client.create_issue_comment("owner", "repo", 12, "Hello!")
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: GitHub API token for authentication.
            base_url: Base URL for GitHub API.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used by tests.
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "repobot/1.0",
        }

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _parse_int_header(self, headers: httpx.Headers, name: str) -> Optional[int]:
        value = headers.get(name)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                return None
        return None

    def _rate_limit_error(self, response: httpx.Response) -> RateLimitError:
        reset_at = self._parse_int_header(response.headers, "x-ratelimit-reset")
        retry_after = self._parse_int_header(response.headers, "retry-after")
        if retry_after is None and reset_at is not None:
            retry_after = max(0, reset_at - int(time.time()))

        logger.warning(
            "GitHub API rate limit exceeded",
            extra={
                "reset_at": reset_at,
                "retry_after": retry_after,
                "path": response.request.url.path,
            },
        )
        return RateLimitError(
            message="GitHub API rate limit exceeded",
            status_code=response.status_code,
            response_body=response.text,
            request_url=str(response.url),
            reset_at=reset_at,
            retry_after=retry_after,
        )

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make a single HTTP request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE).
            path: API path (e.g., /repos/owner/repo/git/refs).
            json_data: Optional JSON body for the request.
            params: Optional query parameters.

        Returns:
            The HTTP response from GitHub.

        Raises:
            RateLimitError: If the rate limit is exhausted.
            GitHubAPIError: On transport failures and 4xx/5xx responses.
        """
        try:
            response = await self.client.request(
                method=method,
                url=path,
                json=json_data,
                params=params,
            )
        except httpx.RequestError as e:
            logger.error(
                "GitHub API request failed",
                extra={"path": path, "method": method, "error": str(e)},
            )
            raise GitHubAPIError(
                message=f"GitHub API request failed: {e}",
                request_url=f"{self.base_url}{path}",
            ) from e

        if response.status_code == 429 or (
            response.status_code == 403
            and self._parse_int_header(response.headers, "x-ratelimit-remaining") == 0
        ):
            raise self._rate_limit_error(response)

        if response.status_code >= 400:
            error_body = response.text
            logger.error(
                "GitHub API error",
                extra={
                    "status_code": response.status_code,
                    "path": path,
                    "method": method,
                    "response_body": error_body[:500],
                },
            )
            raise GitHubAPIError(
                message=f"GitHub API error: {response.status_code}",
                status_code=response.status_code,
                response_body=error_body,
                request_url=str(response.url),
            )

        return response

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    async def get_ref(self, owner: str, repo: str, ref: str) -> str:
        """Resolve a reference such as ``heads/main`` to its commit SHA.

        Raises:
            GitHubAPIError: If the reference does not exist or the request fails.
        """
        path = f"/repos/{owner}/{repo}/git/ref/{ref}"
        response = await self._request(method="GET", path=path)
        sha = response.json()["object"]["sha"]

        logger.debug(
            "Resolved git reference",
            extra={"owner": owner, "repo": repo, "ref": ref, "sha": sha},
        )
        return sha

    async def create_ref(
        self,
        owner: str,
        repo: str,
        branch: str,
        sha: str,
    ) -> Dict[str, Any]:
        """Create branch ``branch`` pointing at ``sha``.

        Raises:
            GitHubAPIError: If the branch already exists (422) or the request fails.
        """
        logger.info(
            "Creating branch",
            extra={"owner": owner, "repo": repo, "branch": branch, "sha": sha},
        )

        response = await self._request(
            method="POST",
            path=f"/repos/{owner}/{repo}/git/refs",
            json_data={"ref": f"refs/heads/{branch}", "sha": sha},
        )
        return response.json()

    # ------------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------------

    async def get_contents(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: Optional[str] = None,
    ) -> FileContent:
        """Read a file, optionally at a given branch or commit.

        Returns:
            FileContent with decoded text and the blob SHA.
        """
        params = {"ref": ref} if ref else None
        response = await self._request(
            method="GET",
            path=_contents_path(owner, repo, path),
            params=params,
        )

        data = response.json()
        if isinstance(data, list):
            raise GitHubAPIError(
                message=f"Path is a directory, not a file: {path}",
                request_url=f"{self.base_url}{_contents_path(owner, repo, path)}",
            )

        result = FileContent.from_github_response(data)
        logger.debug(
            "Fetched file contents",
            extra={
                "owner": owner,
                "repo": repo,
                "path": path,
                "ref": ref,
                "content_length": len(result.content),
            },
        )
        return result

    async def _put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        branch: str,
        sha: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "message": message,
            "content": _encode_content(content),
            "branch": branch,
        }
        if sha:
            payload["sha"] = sha

        response = await self._request(
            method="PUT",
            path=_contents_path(owner, repo, path),
            json_data=payload,
        )
        return response.json()

    async def create_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        branch: str,
    ) -> Dict[str, Any]:
        """Create a new file on a branch.

        Raises:
            GitHubAPIError: If the file already exists (422) or the request fails.
        """
        logger.info(
            "Creating file",
            extra={
                "owner": owner,
                "repo": repo,
                "path": path,
                "branch": branch,
                "content_length": len(content),
            },
        )
        return await self._put_file(owner, repo, path, content, message, branch)

    async def update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        branch: str,
        sha: str,
    ) -> Dict[str, Any]:
        """Replace an existing file; ``sha`` must be the current blob SHA."""
        logger.info(
            "Updating file",
            extra={
                "owner": owner,
                "repo": repo,
                "path": path,
                "branch": branch,
                "content_length": len(content),
            },
        )
        return await self._put_file(owner, repo, path, content, message, branch, sha)

    async def delete_file(
        self,
        owner: str,
        repo: str,
        path: str,
        message: str,
        branch: str,
        sha: str,
    ) -> Dict[str, Any]:
        """Delete a file from a branch."""
        logger.info(
            "Deleting file",
            extra={"owner": owner, "repo": repo, "path": path, "branch": branch},
        )

        response = await self._request(
            method="DELETE",
            path=_contents_path(owner, repo, path),
            json_data={"message": message, "sha": sha, "branch": branch},
        )
        return response.json()

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        request: PRCreateRequest,
    ) -> PRCreateResult:
        """Open a pull request.

        Args:
            owner: Repository owner (user or organization).
            repo: Repository name.
            request: Pull request creation request with title, body, branches.

        Returns:
            PRCreateResult with the created PR number and URL.

        Raises:
            GitHubAPIError: If the request fails.
        """
        logger.info(
            "Creating pull request",
            extra={
                "owner": owner,
                "repo": repo,
                "title": request.title,
                "head": request.head_branch,
                "base": request.base_branch,
            },
        )

        response = await self._request(
            method="POST",
            path=f"/repos/{owner}/{repo}/pulls",
            json_data={
                "title": request.title,
                "body": request.body,
                "head": request.head_branch,
                "base": request.base_branch,
            },
        )

        result = PRCreateResult.from_github_response(response.json())
        logger.info(
            "Pull request created successfully",
            extra={
                "owner": owner,
                "repo": repo,
                "pr_number": result.pr_number,
                "pr_url": result.pr_url,
            },
        )
        return result

    async def list_pr_files(
        self,
        owner: str,
        repo: str,
        pr_number: int,
    ) -> List[PullRequestFile]:
        """List the files changed by a pull request (first 100)."""
        response = await self._request(
            method="GET",
            path=f"/repos/{owner}/{repo}/pulls/{pr_number}/files",
            params={"per_page": 100},
        )
        return [PullRequestFile.from_github_response(item) for item in response.json()]

    # ------------------------------------------------------------------
    # Comments and reactions
    # ------------------------------------------------------------------

    async def create_issue_comment(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        body: str,
    ) -> Dict[str, Any]:
        """Create a comment on an issue or pull request conversation.

        Raises:
            GitHubAPIError: If the request fails.
        """
        path = f"/repos/{owner}/{repo}/issues/{issue_number}/comments"

        logger.info(
            "Creating comment on issue",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": issue_number,
                "body_length": len(body),
            },
        )

        response = await self._request(
            method="POST",
            path=path,
            json_data={"body": body},
        )

        result = response.json()
        logger.info(
            "Comment created successfully",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": issue_number,
                "comment_id": result.get("id"),
            },
        )
        return result

    async def create_issue_reaction(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        content: str,
    ) -> Dict[str, Any]:
        """React to an issue (content is e.g. "+1" or "rocket")."""
        response = await self._request(
            method="POST",
            path=f"/repos/{owner}/{repo}/issues/{issue_number}/reactions",
            json_data={"content": content},
        )
        return response.json()

    async def create_pr_comment_reaction(
        self,
        owner: str,
        repo: str,
        comment_id: int,
        content: str,
    ) -> Dict[str, Any]:
        """React to a pull request review comment."""
        response = await self._request(
            method="POST",
            path=f"/repos/{owner}/{repo}/pulls/comments/{comment_id}/reactions",
            json_data={"content": content},
        )
        return response.json()

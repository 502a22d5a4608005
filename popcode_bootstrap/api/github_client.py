"""GitHub REST client for the parts of the API the workspace imports from.

Provides:
- Gist read, create and update
- Repository contents listing
- Git blob reads (decoded to text)
- Token authentication and rate limit tracking

Requests are made once; retrying is the caller's decision (see
popcode_bootstrap.retry).

Usage:
    ```python
    from popcode_bootstrap.api.github_client import GitHubClient

    async with GitHubClient(auth="ghp_xxxxxxxxxxxx") as client:
        gist = await client.rest.gists.get("aa5a315d61ae9438b18d")
        listing = await client.rest.repos.get_content("popcodeorg", "popcode", "")
    ```
"""

from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from popcode_bootstrap.failures import RequestError

logger = logging.getLogger(__name__)


@dataclass
class RateLimitInfo:
    """GitHub API rate limit information."""

    limit: int
    remaining: int
    reset_timestamp: int
    used: int

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> Optional["RateLimitInfo"]:
        if "x-ratelimit-limit" not in headers:
            return None
        return cls(
            limit=int(headers.get("x-ratelimit-limit", 0)),
            remaining=int(headers.get("x-ratelimit-remaining", 0)),
            reset_timestamp=int(headers.get("x-ratelimit-reset", 0)),
            used=int(headers.get("x-ratelimit-used", 0)),
        )

    @property
    def is_exceeded(self) -> bool:
        return self.remaining <= 0

    @property
    def reset_in_seconds(self) -> int:
        return max(0, self.reset_timestamp - int(time.time()))


class AuthStrategy:
    """Base authentication strategy."""

    async def get_auth_header(self) -> Dict[str, str]:
        raise NotImplementedError


class TokenAuth(AuthStrategy):
    """OAuth or personal access token authentication."""

    def __init__(self, token: str):
        self.token = token

    async def get_auth_header(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@dataclass
class ClientConfig:
    """GitHub client configuration."""

    base_url: str = "https://api.github.com"
    user_agent: str = "popcode-bootstrap/1.0"
    timeout: float = 30.0


class RestEndpoint:
    """REST API endpoint wrapper."""

    def __init__(self, client: "GitHubClient"):
        self._client = client

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        return await self._client._request(method, path, **kwargs)


class GistsEndpoint(RestEndpoint):
    """Gists REST API endpoints."""

    async def get(self, gist_id: str) -> Dict[str, Any]:
        """Get a gist, including file contents."""
        return await self._request("GET", f"/gists/{gist_id}")

    async def create(
        self,
        files: Dict[str, Dict[str, Any]],
        description: Optional[str] = None,
        public: bool = True,
    ) -> Dict[str, Any]:
        """Create a gist."""
        data: Dict[str, Any] = {"files": files, "public": public}
        if description is not None:
            data["description"] = description
        return await self._request("POST", "/gists", json=data)

    async def update(
        self,
        gist_id: str,
        description: Optional[str] = None,
        files: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Update a gist's description and/or files."""
        data: Dict[str, Any] = {}
        if description is not None:
            data["description"] = description
        if files:
            data["files"] = files
        return await self._request("PATCH", f"/gists/{gist_id}", json=data)


class ReposEndpoint(RestEndpoint):
    """Repositories REST API endpoints."""

    async def get_content(
        self,
        owner: str,
        repo: str,
        path: str = "",
        ref: Optional[str] = None,
    ) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Get repository content; a directory path yields a listing.

        Without ``ref`` GitHub reads the repository's default branch.
        """
        params = {"ref": ref} if ref else {}
        return await self._request(
            "GET",
            f"/repos/{owner}/{repo}/contents/{path}",
            params=params,
        )


class GitEndpoint(RestEndpoint):
    """Git database REST API endpoints."""

    async def get_blob(self, owner: str, repo: str, file_sha: str) -> str:
        """Get a blob's content as text."""
        blob = await self._request("GET", f"/repos/{owner}/{repo}/git/blobs/{file_sha}")
        content = blob.get("content", "")
        if blob.get("encoding") == "base64":
            return base64.b64decode(content).decode("utf-8")
        return content


class RestAPI:
    """REST API namespace."""

    def __init__(self, client: "GitHubClient"):
        self.gists = GistsEndpoint(client)
        self.repos = ReposEndpoint(client)
        self.git = GitEndpoint(client)


class GitHubClient:
    """Async GitHub API client."""

    def __init__(
        self,
        auth: Optional[Union[str, AuthStrategy]] = None,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize GitHub client.

        Args:
            auth: Authentication - string token or AuthStrategy; None is anonymous
            config: Client configuration
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.config = config or ClientConfig()

        if isinstance(auth, str):
            self._auth = TokenAuth(auth)
        elif isinstance(auth, AuthStrategy):
            self._auth = auth
        else:
            self._auth = None

        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None
        self._rate_limit: Optional[RateLimitInfo] = None

        self.rest = RestAPI(self)

    @property
    def is_authenticated(self) -> bool:
        return self._auth is not None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make a single API request.

        Raises:
            RequestError: GitHub answered with an error status
            httpx.TransportError: the request did not complete
        """
        client = await self._get_client()

        request_headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self.config.user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._auth:
            request_headers.update(await self._auth.get_auth_header())

        response = await client.request(
            method,
            path,
            params=params,
            json=json,
            headers=request_headers,
        )

        rate_limit = RateLimitInfo.from_headers(response.headers)
        if rate_limit is not None:
            self._rate_limit = rate_limit
            if rate_limit.is_exceeded:
                logger.warning(
                    f"GitHub rate limit exhausted, resets in {rate_limit.reset_in_seconds}s"
                )

        if response.status_code < 400:
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        try:
            error_data = response.json() if response.content else {}
        except ValueError:
            error_data = {}
        raise RequestError(
            status=response.status_code,
            message=error_data.get("message", response.reason_phrase),
            documentation_url=error_data.get("documentation_url"),
            errors=error_data.get("errors", []),
        )

    @property
    def rate_limit(self) -> Optional[RateLimitInfo]:
        """Get current rate limit info."""
        return self._rate_limit

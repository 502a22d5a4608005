"""GitHub as the workspace's source host.

Picks an authenticated or anonymous client per call from the credential at
hand, and converts every raw failure into a tagged SourceFailure before it
leaves this module.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import httpx

from popcode_bootstrap.api.github_client import ClientConfig, GitHubClient
from popcode_bootstrap.failures import OtherSourceFailure, source_failure_from
from popcode_bootstrap.models import IdentityCredential, RepoRef, RepoTreeEntry
from popcode_bootstrap.settings import GitHubSettings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_github_token(credential: Optional[IdentityCredential]) -> Optional[str]:
    if credential is None:
        return None
    return credential.github_token


def client_config_from_settings(settings: Optional[GitHubSettings] = None) -> ClientConfig:
    settings = settings or get_settings().github
    return ClientConfig(
        base_url=settings.base_url,
        user_agent=settings.user_agent,
        timeout=settings.timeout,
    )


def client_for_user(
    credential: Optional[IdentityCredential],
    config: Optional[ClientConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> GitHubClient:
    """A fresh client carrying the user's GitHub token, or an anonymous one."""
    return GitHubClient(
        auth=get_github_token(credential),
        config=config or client_config_from_settings(),
        transport=transport,
    )


def _log_rate_limit(client: GitHubClient) -> None:
    rate_limit = client.rate_limit
    if rate_limit is None:
        return
    who = "authenticated" if client.is_authenticated else "anonymous"
    logger.debug(
        f"GitHub rate limit ({who}): {rate_limit.remaining}/{rate_limit.limit} left, "
        f"resets in {rate_limit.reset_in_seconds}s"
    )


class GitHubSourceHost:
    """SourceHost implementation backed by the GitHub REST API."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or client_config_from_settings()
        self._transport = transport

    def client_for(self, credential: Optional[IdentityCredential]) -> GitHubClient:
        return client_for_user(credential, self.config, self._transport)

    async def _call(
        self,
        credential: Optional[IdentityCredential],
        call: Callable[[GitHubClient], Awaitable[T]],
    ) -> T:
        async with self.client_for(credential) as client:
            try:
                return await call(client)
            except Exception as e:
                raise source_failure_from(e) from e
            finally:
                _log_rate_limit(client)

    async def read_gist(
        self, gist_id: str, credential: Optional[IdentityCredential] = None
    ) -> Dict[str, Any]:
        logger.debug(f"Reading gist {gist_id}")
        return await self._call(credential, lambda client: client.rest.gists.get(gist_id))

    async def list_repo_tree(
        self,
        repo: RepoRef,
        ref: Optional[str],
        credential: Optional[IdentityCredential],
    ) -> List[RepoTreeEntry]:
        """List the files at the root of ``repo`` (default branch when ref is None)."""
        logger.debug(f"Listing {repo} at {ref or 'default branch'}")
        listing = await self._call(
            credential,
            lambda client: client.rest.repos.get_content(repo.owner, repo.name, "", ref=ref),
        )
        if not isinstance(listing, list):
            raise OtherSourceFailure(
                TypeError(f"Expected a directory listing for {repo}, got {type(listing).__name__}")
            )
        return [
            RepoTreeEntry(filename=item["name"], blob_id=item["sha"])
            for item in listing
            if item.get("type", "file") == "file"
        ]

    async def read_blob(
        self,
        repo: RepoRef,
        blob_id: str,
        credential: Optional[IdentityCredential],
    ) -> str:
        return await self._call(
            credential,
            lambda client: client.rest.git.get_blob(repo.owner, repo.name, blob_id),
        )

    async def create_gist(
        self,
        gist: Dict[str, Any],
        credential: Optional[IdentityCredential],
    ) -> Dict[str, Any]:
        return await self._call(
            credential,
            lambda client: client.rest.gists.create(
                files=gist["files"],
                description=gist.get("description"),
                public=gist.get("public", True),
            ),
        )

    async def update_gist_description(
        self,
        gist_id: str,
        description: str,
        credential: Optional[IdentityCredential],
    ) -> Dict[str, Any]:
        return await self._call(
            credential,
            lambda client: client.rest.gists.update(gist_id, description=description),
        )

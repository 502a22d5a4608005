"""Interfaces the bootstrap orchestrator consumes.

The orchestrator only talks to these protocols; concrete implementations live
in identity.py, services/github.py, projects.py and notifications.py, and
tests substitute their own.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol

from popcode_bootstrap.classifier import OutcomeTag
from popcode_bootstrap.models import (
    IdentityCredential,
    ImportedSourceBundle,
    RepoRef,
    RepoTreeEntry,
)


class IdentityProvider(Protocol):
    async def resolve_identity(self) -> Optional[IdentityCredential]:
        """The already signed-in user, or None when logged out."""
        ...

    async def interactive_sign_in(self) -> IdentityCredential:
        """Ask the user to sign in.

        Rejects with something carrying a provider ``code`` (see
        failures.sign_in_failure_from) on cancellation or error.
        """
        ...


class SourceHost(Protocol):
    """Reads gists and repositories.

    Implementations raise tagged SourceFailure variants.
    """

    async def read_gist(
        self, gist_id: str, credential: Optional[IdentityCredential] = None
    ) -> Dict[str, Any]: ...

    async def list_repo_tree(
        self,
        repo: RepoRef,
        ref: Optional[str],
        credential: Optional[IdentityCredential],
    ) -> List[RepoTreeEntry]: ...

    async def read_blob(
        self,
        repo: RepoRef,
        blob_id: str,
        credential: Optional[IdentityCredential],
    ) -> str: ...


class ProjectStore(Protocol):
    """Project-store mutations; each returns the new current project's key."""

    async def create_empty_project(self) -> str: ...

    async def initialize_from_bundle(self, bundle: ImportedSourceBundle) -> str: ...

    async def initialize_from_repo(
        self, repo: RepoRef, bundle: ImportedSourceBundle
    ) -> str: ...


class Notifier(Protocol):
    def emit_notification(
        self,
        tag: OutcomeTag,
        severity: str = "error",
        context: Optional[Mapping[str, Any]] = None,
    ) -> None: ...


class FirstLoginHook(Protocol):
    async def __call__(self, credential: IdentityCredential) -> None: ...

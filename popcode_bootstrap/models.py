"""Value types shared by the bootstrap layer.

Pydantic models that carry data between the orchestrator and its
collaborators. Everything here is immutable except Project, which the project
store owns and updates.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import parse_qs
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

GITHUB_PROVIDER = "github.com"


# =============================================================================
# Bootstrap input
# =============================================================================


def parse_query_params(query_string: str) -> Dict[str, str]:
    """First value of each parameter in a query string (a leading ``?`` is allowed)."""
    parsed = parse_qs(query_string.lstrip("?"))
    return {key: values[0] for key, values in parsed.items()}


class BootstrapQuery(BaseModel):
    """What the page was loaded with: a gist, a repository, both or neither."""

    gist_id: Optional[str] = Field(default=None, description="Gist to import")
    repo_owner: Optional[str] = Field(default=None, description="Repository owner")
    repo_name: Optional[str] = Field(default=None, description="Repository name")

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("gist_id", "repo_owner", "repo_name", mode="before")
    @classmethod
    def _blank_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @model_validator(mode="after")
    def _repo_needs_owner_and_name(self) -> "BootstrapQuery":
        if (self.repo_owner is None) != (self.repo_name is None):
            raise ValueError("repo_owner and repo_name must be given together")
        return self

    @classmethod
    def from_params(cls, params: Mapping[str, Optional[str]]) -> "BootstrapQuery":
        """Build a query from the ``gist``, ``user`` and ``repo`` parameters.

        Blank values count as absent. A lone ``user`` or ``repo`` is not a
        repository reference and is dropped.
        """

        def _value(key: str) -> Optional[str]:
            value = params.get(key)
            if value is None:
                return None
            value = value.strip()
            return value or None

        owner, name = _value("user"), _value("repo")
        if owner is None or name is None:
            owner = name = None
        return cls(gist_id=_value("gist"), repo_owner=owner, repo_name=name)

    @classmethod
    def from_query_string(cls, query_string: str) -> "BootstrapQuery":
        """Parse ``gist=...&user=...&repo=...`` (a leading ``?`` is allowed)."""
        return cls.from_params(parse_query_params(query_string))

    @property
    def has_gist(self) -> bool:
        return self.gist_id is not None

    @property
    def has_repo(self) -> bool:
        return self.repo_owner is not None and self.repo_name is not None

    @property
    def repo(self) -> Optional["RepoRef"]:
        if not self.has_repo:
            return None
        return RepoRef(owner=self.repo_owner, name=self.repo_name)


# =============================================================================
# Identity
# =============================================================================


class IdentityCredential(BaseModel):
    """A signed-in user and the provider tokens they granted."""

    user_id: str
    access_tokens: Dict[str, str] = Field(default_factory=dict)
    display_name: Optional[str] = None

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def github_token(self) -> Optional[str]:
        return self.access_tokens.get(GITHUB_PROVIDER)


# =============================================================================
# Imported sources
# =============================================================================


class RepoRef(BaseModel):
    """A repository on the source host."""

    owner: str = Field(min_length=1)
    name: str = Field(min_length=1)

    model_config = {"frozen": True, "extra": "forbid"}

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


class RepoTreeEntry(BaseModel):
    """One file at the root of a repository listing."""

    filename: str
    blob_id: str

    model_config = {"frozen": True, "extra": "forbid"}


class ImportedSourceBundle(BaseModel):
    """Normalized sources extracted from a gist or a repository."""

    html: str = ""
    css: str = ""
    javascript: str = ""
    enabled_libraries: Tuple[str, ...] = ()

    model_config = {"frozen": True, "extra": "forbid"}


# =============================================================================
# Projects
# =============================================================================

DEFAULT_HTML = """<!DOCTYPE html>
<html>
  <head>
    <title>Page Title</title>
  </head>
  <body>
  </body>
</html>
"""


class ProjectSources(BaseModel):
    html: str = ""
    css: str = ""
    javascript: str = ""


class Project(BaseModel):
    """A workspace project as held by the project store."""

    project_key: str = Field(default_factory=lambda: str(uuid4()))
    sources: ProjectSources = Field(default_factory=ProjectSources)
    enabled_libraries: Tuple[str, ...] = ()
    repo: Optional[RepoRef] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def empty(cls) -> "Project":
        return cls(sources=ProjectSources(html=DEFAULT_HTML))

    @classmethod
    def from_bundle(
        cls, bundle: ImportedSourceBundle, repo: Optional[RepoRef] = None
    ) -> "Project":
        return cls(
            sources=ProjectSources(
                html=bundle.html,
                css=bundle.css,
                javascript=bundle.javascript,
            ),
            enabled_libraries=bundle.enabled_libraries,
            repo=repo,
        )

"""Export a workspace project as a gist.

The gist uses the same file layout the importer reads, so an exported gist
can be imported back with ``?gist=<id>``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

from popcode_bootstrap.failures import EmptyGistError
from popcode_bootstrap.importer import POPCODE_JSON, create_popcode_json
from popcode_bootstrap.models import IdentityCredential, Project
from popcode_bootstrap.retry import RetryPolicy, perform_with_retries
from popcode_bootstrap.services.github import GitHubSourceHost, get_github_token
from popcode_bootstrap.settings import get_settings

logger = logging.getLogger(__name__)

GIST_DESCRIPTION = "Exported from Popcode."


def build_gist_from_project(project: Project) -> Dict[str, Any]:
    """Build the gist document for a project, skipping blank sources."""
    files: Dict[str, Dict[str, str]] = {}
    if project.sources.html.strip():
        files["index.html"] = {"content": project.sources.html, "language": "HTML"}
    if project.sources.css.strip():
        files["styles.css"] = {"content": project.sources.css, "language": "CSS"}
    if project.sources.javascript.strip():
        files["script.js"] = {
            "content": project.sources.javascript,
            "language": "JavaScript",
        }
    if project.enabled_libraries:
        files[POPCODE_JSON] = {
            "content": create_popcode_json(project.enabled_libraries),
            "language": "JSON",
        }

    return {
        "description": GIST_DESCRIPTION,
        "public": True,
        "files": files,
    }


def import_url(gist_id: str, app_url: Optional[str] = None) -> str:
    """Workspace URL that imports ``gist_id`` on load."""
    scheme, netloc, path, _, _ = urlsplit(app_url or get_settings().app_url)
    return urlunsplit((scheme, netloc, path or "/", urlencode({"gist": gist_id}), ""))


async def create_gist_from_project(
    project: Project,
    credential: Optional[IdentityCredential],
    host: GitHubSourceHost,
    policy: Optional[RetryPolicy] = None,
    app_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a gist from ``project``.

    Anonymous users get an anonymous gist. Users with a GitHub token also get
    an import link appended to the gist description.

    Raises:
        EmptyGistError: the project has nothing worth exporting
        SourceFailure: the source host rejected the request
    """
    gist = build_gist_from_project(project)
    if not gist["files"]:
        raise EmptyGistError(f"Project {project.project_key} has no content to export")

    policy = policy or get_settings().retry.to_policy()
    gist_data = await perform_with_retries(lambda: host.create_gist(gist, credential), policy)
    logger.info(f"Exported project {project.project_key} to gist {gist_data['id']}")

    if get_github_token(credential) is None:
        return gist_data

    description = (
        f"{gist_data.get('description') or GIST_DESCRIPTION} "
        f"Click to import: {import_url(gist_data['id'], app_url)}"
    )
    return await perform_with_retries(
        lambda: host.update_gist_description(gist_data["id"], description, credential),
        policy,
    )

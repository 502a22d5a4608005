"""In-memory project store.

Holds the user's projects and which one is current. Saved projects (what a
signed-in user has from earlier sessions) are loaded on first login.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from popcode_bootstrap.models import ImportedSourceBundle, Project, RepoRef

logger = logging.getLogger(__name__)


class InMemoryProjectStore:
    """ProjectStore implementation keeping everything in process memory."""

    def __init__(self, saved_projects: Optional[Iterable[Project]] = None):
        self._saved: List[Project] = list(saved_projects or [])
        self._projects: Dict[str, Project] = {}
        self.current_project_key: Optional[str] = None

    # -- queries ---------------------------------------------------------

    @property
    def current_project(self) -> Optional[Project]:
        if self.current_project_key is None:
            return None
        return self._projects[self.current_project_key]

    def get(self, project_key: str) -> Project:
        return self._projects[project_key]

    @property
    def projects(self) -> List[Project]:
        return list(self._projects.values())

    def find_repo_project(self, repo: RepoRef) -> Optional[Project]:
        """Most recently updated project bound to ``repo``."""
        candidates = [p for p in self._projects.values() if p.repo == repo]
        if not candidates:
            return None
        return max(candidates, key=lambda project: project.updated_at)

    # -- mutations -------------------------------------------------------

    def _make_current(self, project: Project) -> str:
        self._projects[project.project_key] = project
        self.current_project_key = project.project_key
        return project.project_key

    async def load_all_projects(self) -> List[Project]:
        """Merge the user's saved projects into the store."""
        for project in self._saved:
            self._projects.setdefault(project.project_key, project)
        logger.debug(f"Loaded {len(self._saved)} saved project(s)")
        return list(self._saved)

    async def create_empty_project(self) -> str:
        return self._make_current(Project.empty())

    async def initialize_from_bundle(self, bundle: ImportedSourceBundle) -> str:
        return self._make_current(Project.from_bundle(bundle))

    async def initialize_from_repo(self, repo: RepoRef, bundle: ImportedSourceBundle) -> str:
        """Open the project bound to ``repo``, creating it from ``bundle`` if none exists.

        An existing project keeps its own sources; the repository content only
        seeds a project the first time it is imported.
        """
        existing = self.find_repo_project(repo)
        if existing is not None:
            logger.info(f"Reopening project {existing.project_key} for {repo}")
            self.current_project_key = existing.project_key
            return existing.project_key
        return self._make_current(Project.from_bundle(bundle, repo=repo))

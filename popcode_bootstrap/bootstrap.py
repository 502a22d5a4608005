"""Decide what project a page load starts with.

A run looks at the page-load query and ends in exactly one project action:

- gist only: resolve identity and fetch the gist concurrently, then open the
  gist (or an empty project if it failed)
- repository only: resolve identity, signing in if needed, then open the
  repository (or an empty project if anything failed)
- both: complain about the link, then behave as if neither was given
- neither: resolve identity and create an empty project

Every branch turns its own failures into an OutcomeTag, so at most one
notification is emitted and a run always ends with a usable project.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from popcode_bootstrap.classifier import (
    OutcomeTag,
    Reporter,
    classify_gist_failure,
    classify_repo_failure,
    classify_sign_in_failure,
)
from popcode_bootstrap.collaborators import (
    FirstLoginHook,
    IdentityProvider,
    Notifier,
    ProjectStore,
    SourceHost,
)
from popcode_bootstrap.failures import sign_in_failure_from, source_failure_from
from popcode_bootstrap.importer import bundle_from_gist, bundle_from_repo_tree
from popcode_bootstrap.models import (
    BootstrapQuery,
    IdentityCredential,
    ImportedSourceBundle,
    RepoRef,
)
from popcode_bootstrap.retry import RetryPolicy, perform_with_retries
from popcode_bootstrap.settings import Settings, get_settings
from popcode_bootstrap.telemetry import report_to_telemetry

logger = logging.getLogger(__name__)


def import_retry_policy(settings: Optional[Settings] = None) -> RetryPolicy:
    """Retry policy for gist and repository imports, from configuration."""
    retry = (settings or get_settings()).retry
    return retry.to_policy().with_retries(retry.import_retries)


class BootstrapAction(str, Enum):
    """The project action a run ended with."""

    CREATE_EMPTY = "create-empty"
    FROM_GIST = "from-gist"
    FROM_REPO = "from-repo"


@dataclass(frozen=True)
class BootstrapResult:
    action: BootstrapAction
    project_key: str
    notification: Optional[OutcomeTag] = None
    authenticated: bool = False


def _best_effort(report: Reporter) -> Reporter:
    """Wrap a reporter so its own failures are logged and dropped."""

    def _report(error: Any) -> None:
        try:
            report(error)
        except Exception as e:
            logger.debug(f"Failed to report to telemetry: {e}")

    return _report


# Either the imported bundle or the outcome explaining why there is none
ImportAttempt = Union[ImportedSourceBundle, OutcomeTag]


class BootstrapOrchestrator:
    """Runs the page-load decision against injected collaborators."""

    def __init__(
        self,
        identity: IdentityProvider,
        source_host: SourceHost,
        project_store: ProjectStore,
        notifier: Notifier,
        first_login: FirstLoginHook,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        report: Reporter = report_to_telemetry,
        default_ref: Optional[str] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self._identity = identity
        self._source_host = source_host
        self._project_store = project_store
        self._notifier = notifier
        self._first_login = first_login
        self._retry_policy = retry_policy or import_retry_policy()
        self._report = _best_effort(report)
        self._default_ref = default_ref
        self._sleep = sleep

    async def run(self, query: BootstrapQuery) -> BootstrapResult:
        """Drive one page load to its single project action."""
        if query.has_gist and query.has_repo:
            logger.info("Query names both a gist and a repository; importing neither")
            self._notify(OutcomeTag.URL_QUERY_ERROR)
            return await self._start_fresh(notification=OutcomeTag.URL_QUERY_ERROR)
        if query.has_gist:
            return await self._import_gist(query.gist_id)
        if query.has_repo:
            return await self._import_repo(query.repo)
        return await self._start_fresh()

    # -- paths -----------------------------------------------------------

    async def _start_fresh(
        self, notification: Optional[OutcomeTag] = None
    ) -> BootstrapResult:
        credential = await self._resolve_identity()
        return await self._create_empty(notification, credential)

    async def _import_gist(self, gist_id: str) -> BootstrapResult:
        attempt, credential = await asyncio.gather(
            self._retrieve_gist(gist_id),
            self._resolve_identity(),
        )
        if isinstance(attempt, OutcomeTag):
            self._notify(attempt, {"gist_id": gist_id})
            return await self._create_empty(attempt, credential)

        project_key = await self._project_store.initialize_from_bundle(attempt)
        logger.info(f"Initialized project {project_key} from gist {gist_id}")
        return BootstrapResult(
            action=BootstrapAction.FROM_GIST,
            project_key=project_key,
            authenticated=credential is not None,
        )

    async def _import_repo(self, repo: RepoRef) -> BootstrapResult:
        credential = await self._resolve_identity()
        if credential is None:
            try:
                credential = await self._identity.interactive_sign_in()
            except Exception as error:
                tag = classify_sign_in_failure(sign_in_failure_from(error), self._report)
                logger.info(f"Sign-in for {repo} failed ({tag.value}); not importing")
                self._notify(tag)
                return await self._create_empty(tag, None)
            await self._run_first_login(credential)

        attempt = await self._retrieve_repo(repo, credential)
        if isinstance(attempt, OutcomeTag):
            self._notify(attempt, {"owner": repo.owner, "name": repo.name})
            return await self._create_empty(attempt, credential)

        project_key = await self._project_store.initialize_from_repo(repo, attempt)
        logger.info(f"Initialized project {project_key} from {repo}")
        return BootstrapResult(
            action=BootstrapAction.FROM_REPO,
            project_key=project_key,
            authenticated=True,
        )

    # -- branches --------------------------------------------------------

    async def _resolve_identity(self) -> Optional[IdentityCredential]:
        """Resolve the current user, running first login if one is found."""
        try:
            credential = await self._identity.resolve_identity()
        except Exception as error:
            logger.warning(f"Identity resolution failed, continuing logged out: {error}")
            self._report(error)
            return None
        if credential is not None:
            await self._run_first_login(credential)
        return credential

    async def _run_first_login(self, credential: IdentityCredential) -> None:
        try:
            await self._first_login(credential)
        except Exception as error:
            logger.warning(f"First login side effects failed: {error}")
            self._report(error)

    async def _retrieve_gist(self, gist_id: str) -> ImportAttempt:
        try:
            payload = await perform_with_retries(
                lambda: self._source_host.read_gist(gist_id, None),
                self._retry_policy,
                sleep=self._sleep,
            )
            return bundle_from_gist(payload)
        except Exception as error:
            return classify_gist_failure(source_failure_from(error), self._report)

    async def _retrieve_repo(
        self, repo: RepoRef, credential: IdentityCredential
    ) -> ImportAttempt:
        async def _fetch_blob(blob_id: str) -> str:
            return await self._source_host.read_blob(repo, blob_id, credential)

        try:
            entries = await perform_with_retries(
                lambda: self._source_host.list_repo_tree(repo, self._default_ref, credential),
                self._retry_policy,
                sleep=self._sleep,
            )
            return await bundle_from_repo_tree(
                entries, _fetch_blob, self._retry_policy, sleep=self._sleep
            )
        except Exception as error:
            return classify_repo_failure(source_failure_from(error), self._report)

    # -- terminal actions ------------------------------------------------

    def _notify(self, tag: OutcomeTag, context: Optional[dict] = None) -> None:
        self._notifier.emit_notification(tag, "error", context or {})

    async def _create_empty(
        self,
        notification: Optional[OutcomeTag],
        credential: Optional[IdentityCredential],
    ) -> BootstrapResult:
        project_key = await self._project_store.create_empty_project()
        logger.info(f"Created empty project {project_key}")
        return BootstrapResult(
            action=BootstrapAction.CREATE_EMPTY,
            project_key=project_key,
            notification=notification,
            authenticated=credential is not None,
        )


async def bootstrap(
    query: BootstrapQuery,
    *,
    identity: IdentityProvider,
    source_host: SourceHost,
    project_store: ProjectStore,
    notifier: Notifier,
    first_login: FirstLoginHook,
    **options: Any,
) -> BootstrapResult:
    """Run a single bootstrap with a throwaway orchestrator."""
    orchestrator = BootstrapOrchestrator(
        identity,
        source_host,
        project_store,
        notifier,
        first_login,
        **options,
    )
    return await orchestrator.run(query)

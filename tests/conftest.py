"""Pytest configuration and fixtures for popcode-bootstrap tests.

This file intentionally keeps the test environment lean (no extra deps).
To support `async def` tests without pytest-asyncio, we provide a minimal
hook that runs coroutine test functions using the stdlib's asyncio.
"""

import asyncio
import inspect
from typing import Any, Dict, List, Optional, Tuple, Union
from unittest.mock import MagicMock

import pytest

from popcode_bootstrap.bootstrap import BootstrapOrchestrator, BootstrapResult
from popcode_bootstrap.models import (
    BootstrapQuery,
    IdentityCredential,
    ImportedSourceBundle,
    RepoRef,
    RepoTreeEntry,
)
from popcode_bootstrap.notifications import NotificationQueue
from popcode_bootstrap.projects import InMemoryProjectStore
from popcode_bootstrap.retry import RetryPolicy
from popcode_bootstrap.settings import clear_settings_cache

# Instant retries so transient-failure tests don't sleep
FAST_POLICY = RetryPolicy(retries=3, factor=2.0, min_delay=0.0, max_delay=0.0)


@pytest.fixture(autouse=True)
def isolate_settings_between_tests(monkeypatch):
    """Keep the developer's environment out of the settings under test."""
    for var in ("GITHUB_TOKEN", "LOGFIRE_TOKEN"):
        monkeypatch.delenv(var, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


def pytest_pyfunc_call(pyfuncitem: pytest.Item) -> Optional[bool]:
    """Enable running `async def` tests without external plugins.

    If the test function is a coroutine function, execute it via asyncio.run.
    """
    test_func = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_func):
        kwargs = {
            name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
        }
        asyncio.run(test_func(**kwargs))
        return True
    return None


# =============================================================================
# Fake collaborators
# =============================================================================


def make_credential(user_id: str = "123", token: str = "gh-token") -> IdentityCredential:
    return IdentityCredential(user_id=user_id, access_tokens={"github.com": token})


def make_gist(gist_id: str, files: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    return {
        "id": gist_id,
        "description": "A gist",
        "files": {
            name: {"filename": name, "content": content}
            for name, content in (files or {}).items()
        },
    }


class Replies:
    """Answers consumed one per call, unlike a plain value returned every time."""

    def __init__(self, *answers: Any):
        self.answers = list(answers)

    def next(self) -> Any:
        return self.answers.pop(0)


# A canned answer, or Replies. Exceptions are raised.
Answer = Union[Any, Replies]


def _answer(answers: Dict[Any, Answer], key: Any) -> Any:
    if key not in answers:
        # Unconfigured reads hang forever, like an unresolved request
        return asyncio.get_running_loop().create_future()
    answer = answers[key]
    if isinstance(answer, Replies):
        answer = answer.next()
    if isinstance(answer, BaseException):
        raise answer
    return answer


class FakeIdentity:
    """IdentityProvider with a fixed current user and sign-in result."""

    def __init__(self):
        self.credential: Optional[IdentityCredential] = None
        self.sign_in_result: Any = None
        self.resolve_calls = 0
        self.sign_in_calls = 0

    async def resolve_identity(self) -> Optional[IdentityCredential]:
        self.resolve_calls += 1
        if isinstance(self.credential, BaseException):
            raise self.credential
        return self.credential

    async def interactive_sign_in(self) -> IdentityCredential:
        self.sign_in_calls += 1
        if isinstance(self.sign_in_result, BaseException):
            raise self.sign_in_result
        if self.sign_in_result is None:
            raise AssertionError("interactive sign-in was not expected")
        return self.sign_in_result


class FakeSourceHost:
    """SourceHost answering from dictionaries and recording every call."""

    def __init__(self):
        self.gists: Dict[str, Answer] = {}
        self.trees: Dict[RepoRef, Answer] = {}
        self.blobs: Dict[Tuple[RepoRef, str], Answer] = {}
        self.gist_reads: List[Tuple[str, Optional[IdentityCredential]]] = []
        self.tree_reads: List[Tuple[RepoRef, Optional[str], Optional[IdentityCredential]]] = []
        self.blob_reads: List[Tuple[RepoRef, str]] = []

    async def read_gist(self, gist_id, credential=None):
        self.gist_reads.append((gist_id, credential))
        result = _answer(self.gists, gist_id)
        if isinstance(result, asyncio.Future):
            return await result
        return result

    async def list_repo_tree(self, repo, ref, credential):
        self.tree_reads.append((repo, ref, credential))
        result = _answer(self.trees, repo)
        if isinstance(result, asyncio.Future):
            return await result
        return result

    async def read_blob(self, repo, blob_id, credential):
        self.blob_reads.append((repo, blob_id))
        result = _answer(self.blobs, (repo, blob_id))
        if isinstance(result, asyncio.Future):
            return await result
        return result

    def load_repo(self, repo: RepoRef, files: List[Tuple[str, str, str]]) -> None:
        """Serve ``repo`` with (filename, blob_id, content) triples."""
        self.trees[repo] = [
            RepoTreeEntry(filename=filename, blob_id=blob_id) for filename, blob_id, _ in files
        ]
        for _, blob_id, content in files:
            self.blobs[(repo, blob_id)] = content


class RecordingProjectStore(InMemoryProjectStore):
    """InMemoryProjectStore that also records which actions ran."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.actions: List[str] = []

    async def create_empty_project(self) -> str:
        self.actions.append("create_empty_project")
        return await super().create_empty_project()

    async def initialize_from_bundle(self, bundle: ImportedSourceBundle) -> str:
        self.actions.append("initialize_from_bundle")
        return await super().initialize_from_bundle(bundle)

    async def initialize_from_repo(self, repo: RepoRef, bundle: ImportedSourceBundle) -> str:
        self.actions.append("initialize_from_repo")
        return await super().initialize_from_repo(repo, bundle)


class RecordingFirstLogin:
    """First login that records its credentials and loads saved projects."""

    def __init__(self, store: InMemoryProjectStore):
        self.store = store
        self.calls: List[IdentityCredential] = []

    async def __call__(self, credential: IdentityCredential) -> None:
        self.calls.append(credential)
        await self.store.load_all_projects()


class Workspace:
    """One page load's worth of collaborators around a real orchestrator."""

    def __init__(self):
        self.identity = FakeIdentity()
        self.host = FakeSourceHost()
        self.store = RecordingProjectStore()
        self.notifications = NotificationQueue()
        self.first_login = RecordingFirstLogin(self.store)
        self.report = MagicMock(name="report_to_telemetry")

    def orchestrator(self, **options) -> BootstrapOrchestrator:
        options.setdefault("retry_policy", FAST_POLICY)
        options.setdefault("report", self.report)
        return BootstrapOrchestrator(
            self.identity,
            self.host,
            self.store,
            self.notifications,
            self.first_login,
            **options,
        )

    async def run(self, **params: str) -> BootstrapResult:
        return await self.orchestrator().run(BootstrapQuery.from_params(params))

    @property
    def current_project(self):
        return self.store.current_project


@pytest.fixture
def workspace() -> Workspace:
    return Workspace()

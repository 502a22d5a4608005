"""Signed-in session state and the "first login" operation.

First login happens whenever a credential becomes known: when bootstrap finds
an existing session, after an interactive sign-in during a repository import,
and from the ambient sign-in listener. All three go through one FirstLogin
instance.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from popcode_bootstrap.models import IdentityCredential

logger = logging.getLogger(__name__)

Hook = Callable[..., Union[Any, Awaitable[Any]]]


async def _call_hook(hook: Hook, *args) -> Any:
    """Call a hook that may be plain or async."""
    result = hook(*args)
    if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
        return await result
    return result


class SessionState:
    """Who is signed in for the current workspace session."""

    def __init__(self):
        self.credential: Optional[IdentityCredential] = None

    @property
    def authenticated(self) -> bool:
        return self.credential is not None

    def user_authenticated(self, credential: IdentityCredential) -> None:
        self.credential = credential
        logger.info(f"User {credential.user_id} authenticated")

    def user_logged_out(self) -> None:
        self.credential = None


class FirstLogin:
    """Announce the user, then load their saved projects."""

    def __init__(
        self,
        announce_authenticated: Hook,
        load_all_saved_projects: Hook,
    ):
        self._announce_authenticated = announce_authenticated
        self._load_all_saved_projects = load_all_saved_projects

    async def __call__(self, credential: IdentityCredential) -> None:
        await _call_hook(self._announce_authenticated, credential)
        await _call_hook(self._load_all_saved_projects)
        logger.debug(f"First login completed for {credential.user_id}")

"""Token-based identity for running the bootstrap outside a browser.

The configured GitHub token stands in for an existing provider session.
Interactive sign-in asks for a token on the terminal; leaving the prompt blank
is the terminal equivalent of closing the sign-in popup.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import Callable, Optional

from rich.console import Console
from rich.prompt import Prompt

from popcode_bootstrap.failures import POPUP_CLOSED_BY_USER, SignInFailure
from popcode_bootstrap.models import GITHUB_PROVIDER, IdentityCredential

logger = logging.getLogger(__name__)


def credential_for_token(token: str) -> IdentityCredential:
    user_id = hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]
    return IdentityCredential(user_id=user_id, access_tokens={GITHUB_PROVIDER: token})


class TokenIdentityProvider:
    """IdentityProvider backed by a GitHub token."""

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        interactive: bool = True,
        console: Optional[Console] = None,
        ask: Optional[Callable[[], str]] = None,
    ):
        self._token = token
        self._interactive = interactive
        self._console = console or Console()
        self._ask = ask or self._prompt_for_token

    def _prompt_for_token(self) -> str:
        return Prompt.ask(
            "GitHub token (leave blank to cancel)",
            console=self._console,
            password=True,
            default="",
            show_default=False,
        )

    async def resolve_identity(self) -> Optional[IdentityCredential]:
        if not self._token:
            return None
        return credential_for_token(self._token)

    async def interactive_sign_in(self) -> IdentityCredential:
        if not self._interactive:
            raise SignInFailure(POPUP_CLOSED_BY_USER)
        answer = (await asyncio.to_thread(self._ask)).strip()
        if not answer:
            raise SignInFailure(POPUP_CLOSED_BY_USER)
        self._token = answer
        return credential_for_token(answer)

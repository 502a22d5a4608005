"""Tagged failure types for the collaborator boundaries.

Raw failures (httpx transport errors, HTTP error statuses, identity-provider
rejections) are converted into these variants where they enter the bootstrap
layer. Retry decisions and outcome classification only ever look at the
variant, never at the shape of the raw error.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class RequestError(Exception):
    """Error status returned by the GitHub API."""

    status: int
    message: str
    documentation_url: Optional[str] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.status}: {self.message}"


class ImportFormatError(ValueError):
    """Imported files were found but could not be understood."""


class EmptyGistError(Exception):
    """A project with no exportable content cannot become a gist."""


# =============================================================================
# Source host failures
# =============================================================================


class SourceFailure(Exception):
    """Base class for a failed gist, tree or blob read.

    ``raw`` keeps the original failure for telemetry.
    """

    def __init__(self, raw: BaseException, message: Optional[str] = None):
        super().__init__(message or str(raw) or type(raw).__name__)
        self.raw = raw


class NotFoundFailure(SourceFailure):
    """The source host answered 404."""


class TransientNetworkFailure(SourceFailure):
    """The request never reached the server."""


class OtherSourceFailure(SourceFailure):
    """Anything else: server errors, bad payloads, bugs."""


# Transport errors raised before any response was received
_UNREACHABLE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


def source_failure_from(error: BaseException) -> SourceFailure:
    """Convert a raw source-host failure into its tagged variant."""
    if isinstance(error, SourceFailure):
        return error
    if isinstance(error, RequestError):
        if error.status == 404:
            return NotFoundFailure(error)
        return OtherSourceFailure(error)
    if isinstance(error, httpx.HTTPStatusError):
        if error.response.status_code == 404:
            return NotFoundFailure(error)
        return OtherSourceFailure(error)
    if isinstance(error, _UNREACHABLE_ERRORS):
        return TransientNetworkFailure(error)
    return OtherSourceFailure(error)


def is_transient_failure(error: BaseException) -> bool:
    return isinstance(error, TransientNetworkFailure)


# =============================================================================
# Identity provider failures
# =============================================================================

POPUP_CLOSED_BY_USER = "popup-closed-by-user"
NETWORK_REQUEST_FAILED = "network-request-failed"


class SignInFailure(Exception):
    """Interactive sign-in was rejected.

    ``raw`` is whatever the provider rejected with. It may be an exception or
    an opaque value (a decoded provider payload, say), and telemetry reports
    the two differently.
    """

    def __init__(self, code: str, raw: Any = None):
        super().__init__(code)
        self.code = code
        self.raw = raw

    @property
    def raw_is_exception(self) -> bool:
        return isinstance(self.raw, BaseException)


def sign_in_failure_from(rejection: Any) -> SignInFailure:
    """Convert whatever interactive sign-in rejected with into a SignInFailure."""
    if isinstance(rejection, SignInFailure):
        return rejection
    if isinstance(rejection, Mapping):
        code = rejection.get("code")
    else:
        code = getattr(rejection, "code", None)
    if not isinstance(code, str) or not code:
        logger.debug(f"Sign-in rejection without a provider code: {rejection!r}")
        code = "unknown"
    return SignInFailure(code, raw=rejection)

"""Map tagged failures to the outcomes a user gets told about.

Expected failure shapes (not found, cancelled, offline) get their own outcome
and stay out of telemetry. Everything else collapses into a generic
``-error`` outcome and is reported with the original failure.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

from popcode_bootstrap.failures import (
    NETWORK_REQUEST_FAILED,
    POPUP_CLOSED_BY_USER,
    NotFoundFailure,
    SignInFailure,
    SourceFailure,
)
from popcode_bootstrap.telemetry import report_to_telemetry

logger = logging.getLogger(__name__)

Reporter = Callable[[Any], None]


class OutcomeTag(str, Enum):
    """Notification types a bootstrap run may end with."""

    URL_QUERY_ERROR = "url-query-error"
    GIST_IMPORT_NOT_FOUND = "gist-import-not-found"
    GIST_IMPORT_ERROR = "gist-import-error"
    REPO_IMPORT_NOT_FOUND = "repo-import-not-found"
    REPO_IMPORT_ERROR = "repo-import-error"
    USER_CANCELLED_REPO_AUTH = "user-cancelled-repo-auth"
    AUTH_NETWORK_ERROR = "auth-network-error"
    AUTH_ERROR = "auth-error"


def _classify_source_failure(
    failure: SourceFailure,
    not_found: OutcomeTag,
    generic: OutcomeTag,
    report: Reporter,
) -> OutcomeTag:
    if isinstance(failure, NotFoundFailure):
        return not_found
    logger.warning(f"{generic.value}: {failure}")
    report(failure.raw)
    return generic


def classify_gist_failure(
    failure: SourceFailure, report: Reporter = report_to_telemetry
) -> OutcomeTag:
    return _classify_source_failure(
        failure,
        OutcomeTag.GIST_IMPORT_NOT_FOUND,
        OutcomeTag.GIST_IMPORT_ERROR,
        report,
    )


def classify_repo_failure(
    failure: SourceFailure, report: Reporter = report_to_telemetry
) -> OutcomeTag:
    """Classify a failed repository listing or blob read."""
    return _classify_source_failure(
        failure,
        OutcomeTag.REPO_IMPORT_NOT_FOUND,
        OutcomeTag.REPO_IMPORT_ERROR,
        report,
    )


def classify_sign_in_failure(
    failure: SignInFailure, report: Reporter = report_to_telemetry
) -> OutcomeTag:
    """Classify a rejected interactive sign-in.

    The raw rejection is reported as-is so telemetry can tell a genuine
    exception from an opaque provider value.
    """
    if failure.code == POPUP_CLOSED_BY_USER:
        return OutcomeTag.USER_CANCELLED_REPO_AUTH
    if failure.code == NETWORK_REQUEST_FAILED:
        return OutcomeTag.AUTH_NETWORK_ERROR
    logger.warning(f"Sign-in failed with code {failure.code!r}")
    report(failure.raw if failure.raw is not None else failure)
    return OutcomeTag.AUTH_ERROR

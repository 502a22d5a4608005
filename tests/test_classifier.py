"""Tests for outcome classification."""

from unittest.mock import MagicMock

import httpx
import pytest

from popcode_bootstrap.classifier import (
    OutcomeTag,
    classify_gist_failure,
    classify_repo_failure,
    classify_sign_in_failure,
)
from popcode_bootstrap.failures import (
    NETWORK_REQUEST_FAILED,
    POPUP_CLOSED_BY_USER,
    NotFoundFailure,
    OtherSourceFailure,
    RequestError,
    SignInFailure,
    TransientNetworkFailure,
)


class TestOutcomeTag:
    def test_wire_values(self):
        assert {tag.value for tag in OutcomeTag} == {
            "url-query-error",
            "gist-import-not-found",
            "gist-import-error",
            "repo-import-not-found",
            "repo-import-error",
            "user-cancelled-repo-auth",
            "auth-network-error",
            "auth-error",
        }

    def test_is_a_string(self):
        assert OutcomeTag.AUTH_ERROR == "auth-error"


class TestSourceFailureClassification:
    """Tests for gist and repository failures."""

    @pytest.mark.parametrize(
        "classify,expected",
        [
            (classify_gist_failure, OutcomeTag.GIST_IMPORT_NOT_FOUND),
            (classify_repo_failure, OutcomeTag.REPO_IMPORT_NOT_FOUND),
        ],
    )
    def test_not_found_is_not_reported(self, classify, expected):
        report = MagicMock()

        assert classify(NotFoundFailure(RequestError(404, "Not Found")), report) == expected
        report.assert_not_called()

    @pytest.mark.parametrize(
        "classify,expected",
        [
            (classify_gist_failure, OutcomeTag.GIST_IMPORT_ERROR),
            (classify_repo_failure, OutcomeTag.REPO_IMPORT_ERROR),
        ],
    )
    @pytest.mark.parametrize(
        "failure",
        [
            OtherSourceFailure(RequestError(500, "Server Error")),
            OtherSourceFailure(ValueError("bad payload")),
            TransientNetworkFailure(httpx.ConnectError("refused")),
        ],
    )
    def test_everything_else_is_reported_with_raw_error(self, classify, expected, failure):
        report = MagicMock()

        assert classify(failure, report) == expected
        report.assert_called_once_with(failure.raw)


class TestSignInClassification:
    """Tests for rejected interactive sign-in."""

    def test_popup_closed(self):
        report = MagicMock()
        tag = classify_sign_in_failure(SignInFailure(POPUP_CLOSED_BY_USER), report)

        assert tag == OutcomeTag.USER_CANCELLED_REPO_AUTH
        report.assert_not_called()

    def test_network_failure(self):
        report = MagicMock()
        tag = classify_sign_in_failure(SignInFailure(NETWORK_REQUEST_FAILED), report)

        assert tag == OutcomeTag.AUTH_NETWORK_ERROR
        report.assert_not_called()

    def test_unknown_code_reports_raw_exception(self):
        raw = RuntimeError("internal")
        report = MagicMock()

        tag = classify_sign_in_failure(SignInFailure("auth/internal-error", raw=raw), report)

        assert tag == OutcomeTag.AUTH_ERROR
        report.assert_called_once_with(raw)

    def test_unknown_code_reports_opaque_value(self):
        raw = {"code": "auth/internal-error"}
        report = MagicMock()

        classify_sign_in_failure(SignInFailure("auth/internal-error", raw=raw), report)

        report.assert_called_once_with(raw)

    def test_without_raw_reports_the_failure_itself(self):
        failure = SignInFailure("auth/weird")
        report = MagicMock()

        classify_sign_in_failure(failure, report)

        report.assert_called_once_with(failure)

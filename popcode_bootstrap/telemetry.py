"""Error telemetry through Logfire.

Unexpected failures (the generic ``-error`` outcomes) are forwarded here so
they are never silently swallowed. Reporting is best effort: a failure while
reporting is logged and dropped, it never breaks a bootstrap run.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import logfire

from popcode_bootstrap.settings import Settings, get_settings

logger = logging.getLogger(__name__)

_configured = False


def configure_telemetry(settings: Optional[Settings] = None) -> None:
    """Configure Logfire once per process.

    Without a token telemetry stays local-only unless explicitly asked to
    send.
    """
    global _configured
    if _configured:
        return

    settings = settings or get_settings()
    telemetry = settings.telemetry
    token = telemetry.logfire_token.get_secret_value() if telemetry.logfire_token else None

    try:
        if token:
            logfire.configure(
                service_name=telemetry.service_name,
                send_to_logfire="if-token-present",
                token=token,
                inspect_arguments=False,
            )
        else:
            logfire.configure(
                service_name=telemetry.service_name,
                send_to_logfire=telemetry.send_to_logfire,
                inspect_arguments=False,
            )
        logfire.instrument_httpx()
    except Exception as e:
        logger.debug(f"Failed to configure logfire: {e}")
        return
    _configured = True


def report_to_telemetry(error: Any) -> None:
    """Report an unexpected failure.

    Exceptions are reported with their traceback. Anything else is an opaque
    value and is reported by its representation.
    """
    try:
        if isinstance(error, BaseException):
            logfire.exception(
                "Unexpected failure: {error_type}",
                error_type=type(error).__name__,
                _exc_info=error,
            )
        else:
            logfire.error(
                "Unexpected failure value: {value}",
                value=repr(error),
            )
    except Exception as e:
        logger.debug(f"Failed to report to telemetry: {e}")

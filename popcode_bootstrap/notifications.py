"""User-facing notifications.

Pydantic models that decouple what happened from how it is shown. The queue
collects them; ``render_notification`` is the rich presentation used by the
CLI.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field
from rich.console import Console
from rich.panel import Panel

from popcode_bootstrap.classifier import OutcomeTag

logger = logging.getLogger(__name__)


class NotificationSeverity(str, Enum):
    """How loudly a notification is shown."""

    NOTICE = "notice"
    ERROR = "error"


class Notification(BaseModel):
    """A notification waiting to be displayed."""

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique identifier for this notification",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When this notification was raised (UTC)",
    )
    type: OutcomeTag = Field(description="What happened")
    severity: NotificationSeverity = NotificationSeverity.ERROR
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Context for the message, e.g. the gist id",
    )

    model_config = {"frozen": True, "extra": "forbid"}


MESSAGES: Dict[OutcomeTag, str] = {
    OutcomeTag.URL_QUERY_ERROR: "A link can import a gist or a repository, not both. Starting a new project instead.",
    OutcomeTag.GIST_IMPORT_NOT_FOUND: "Could not find gist {gist_id}. Starting a new project instead.",
    OutcomeTag.GIST_IMPORT_ERROR: "Something went wrong importing gist {gist_id}. Starting a new project instead.",
    OutcomeTag.REPO_IMPORT_NOT_FOUND: "Could not find repository {owner}/{name}. Starting a new project instead.",
    OutcomeTag.REPO_IMPORT_ERROR: "Something went wrong importing {owner}/{name}. Starting a new project instead.",
    OutcomeTag.USER_CANCELLED_REPO_AUTH: "Importing a repository requires signing in. Starting a new project instead.",
    OutcomeTag.AUTH_NETWORK_ERROR: "Could not reach the sign-in service. Check your connection and try again.",
    OutcomeTag.AUTH_ERROR: "Something went wrong signing in. Starting a new project instead.",
}


class _Context(dict):
    def __missing__(self, key: str) -> str:
        return "?"


def describe(notification: Notification) -> str:
    """Human-readable text for a notification."""
    return MESSAGES[notification.type].format_map(_Context(notification.metadata))


class NotificationQueue:
    """Collects notifications in emission order."""

    def __init__(self):
        self._notifications: List[Notification] = []

    def emit_notification(
        self,
        tag: OutcomeTag,
        severity: Union[str, NotificationSeverity] = NotificationSeverity.ERROR,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Notification:
        notification = Notification(
            type=tag,
            severity=NotificationSeverity(severity),
            metadata=dict(context or {}),
        )
        self._notifications.append(notification)
        logger.debug(f"Notification queued: {tag.value}")
        return notification

    def dismiss(self, notification_id: str) -> None:
        self._notifications = [n for n in self._notifications if n.id != notification_id]

    @property
    def notifications(self) -> List[Notification]:
        return list(self._notifications)

    def types(self) -> List[OutcomeTag]:
        return [notification.type for notification in self._notifications]

    def __len__(self) -> int:
        return len(self._notifications)


def render_notification(console: Console, notification: Notification) -> None:
    style = "red" if notification.severity == NotificationSeverity.ERROR else "yellow"
    console.print(
        Panel(
            describe(notification),
            title=notification.type.value,
            border_style=style,
        )
    )

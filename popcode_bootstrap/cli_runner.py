"""CLI runner for popcode-bootstrap.

Runs a single page-load bootstrap against GitHub from the terminal and shows
what the workspace would open.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from popcode_bootstrap import __version__
from popcode_bootstrap.bootstrap import BootstrapOrchestrator, BootstrapResult, import_retry_policy
from popcode_bootstrap.identity import TokenIdentityProvider
from popcode_bootstrap.models import BootstrapQuery, parse_query_params
from popcode_bootstrap.notifications import NotificationQueue, render_notification
from popcode_bootstrap.projects import InMemoryProjectStore
from popcode_bootstrap.services.github import GitHubSourceHost, client_config_from_settings
from popcode_bootstrap.session import FirstLogin, SessionState
from popcode_bootstrap.settings import get_settings
from popcode_bootstrap.telemetry import configure_telemetry

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="popcode-bootstrap",
        description="Decide which project a workspace page load opens",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"{__version__}",
        help="Show version and exit",
    )
    parser.add_argument(
        "query",
        nargs="?",
        default="",
        help="Page-load query string, e.g. 'gist=abc123' or 'user=octocat&repo=hello'",
    )
    parser.add_argument("--gist", type=str, help="Gist id to import")
    parser.add_argument("--user", type=str, help="Owner of the repository to import")
    parser.add_argument("--repo", type=str, help="Name of the repository to import")
    parser.add_argument(
        "--no-sign-in",
        action="store_true",
        help="Never prompt for a token; sign-in counts as cancelled",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def query_from_args(args: argparse.Namespace) -> BootstrapQuery:
    """Merge the positional query string with explicit flags (flags win)."""
    params = parse_query_params(args.query)
    for key in ("gist", "user", "repo"):
        value = getattr(args, key)
        if value is not None:
            params[key] = value
    return BootstrapQuery.from_params(params)


def render_result(
    console: Console,
    result: BootstrapResult,
    store: InMemoryProjectStore,
    notifications: NotificationQueue,
) -> None:
    for notification in notifications.notifications:
        render_notification(console, notification)

    project = store.get(result.project_key)
    table = Table(title=f"Project {project.project_key}", show_header=False)
    table.add_row("action", result.action.value)
    table.add_row("signed in", "yes" if result.authenticated else "no")
    table.add_row("repository", str(project.repo) if project.repo else "-")
    table.add_row("libraries", ", ".join(project.enabled_libraries) or "-")
    for name in ("html", "css", "javascript"):
        source = getattr(project.sources, name)
        table.add_row(name, f"{len(source.splitlines())} line(s)")
    console.print(table)


async def main(argv: Optional[List[str]] = None) -> int:
    """Main async entry point."""
    args = build_parser().parse_args(argv)

    console = Console()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    settings = get_settings()
    configure_telemetry(settings)

    try:
        query = query_from_args(args)
    except ValueError as e:
        console.print(f"[red]Invalid query:[/red] {e}")
        return 2

    session = SessionState()
    store = InMemoryProjectStore()
    notifications = NotificationQueue()
    orchestrator = BootstrapOrchestrator(
        identity=TokenIdentityProvider(
            settings.github.get_token(),
            interactive=not args.no_sign_in,
            console=console,
        ),
        source_host=GitHubSourceHost(client_config_from_settings(settings.github)),
        project_store=store,
        notifier=notifications,
        first_login=FirstLogin(session.user_authenticated, store.load_all_projects),
        retry_policy=import_retry_policy(settings),
        default_ref=settings.github.default_ref,
    )

    result = await orchestrator.run(query)
    render_result(console, result, store, notifications)
    return 1 if result.notification else 0


def main_entry():
    """Entry point for the installed CLI tool."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)

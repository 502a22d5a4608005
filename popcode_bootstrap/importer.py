"""Extract workspace sources from a gist or a repository root.

Both sources use the same four well-known filenames. Anything else in the
gist or repository is ignored.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

from popcode_bootstrap.failures import ImportFormatError
from popcode_bootstrap.models import ImportedSourceBundle, RepoTreeEntry
from popcode_bootstrap.retry import RetryPolicy, perform_with_retries

logger = logging.getLogger(__name__)

POPCODE_JSON = "popcode.json"

# filename -> bundle field
SOURCE_FILES: Dict[str, str] = {
    "index.html": "html",
    "styles.css": "css",
    "script.js": "javascript",
}

RECOGNIZED_FILES = frozenset([*SOURCE_FILES, POPCODE_JSON])


def parse_popcode_json(text: str) -> tuple[str, ...]:
    """Read the enabled libraries out of a ``popcode.json`` document."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"{POPCODE_JSON} is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise ImportFormatError(f"{POPCODE_JSON} must contain a JSON object")

    libraries = document.get("enabledLibraries", [])
    if not isinstance(libraries, list) or not all(
        isinstance(library, str) for library in libraries
    ):
        raise ImportFormatError("enabledLibraries must be a list of strings")
    return tuple(libraries)


def create_popcode_json(enabled_libraries: Iterable[str]) -> str:
    return json.dumps({"enabledLibraries": list(enabled_libraries)}, indent=2) + "\n"


def _assemble(contents: Mapping[str, str]) -> ImportedSourceBundle:
    """Build a bundle from a filename -> content mapping."""
    fields: Dict[str, Any] = {
        field: contents.get(filename, "") for filename, field in SOURCE_FILES.items()
    }
    popcode_json = contents.get(POPCODE_JSON)
    if popcode_json is not None:
        fields["enabled_libraries"] = parse_popcode_json(popcode_json)
    return ImportedSourceBundle(**fields)


def bundle_from_gist(payload: Mapping[str, Any]) -> ImportedSourceBundle:
    """Build a bundle from a gist as returned by the source host.

    Args:
        payload: Gist document; its ``files`` maps filename to ``{"content": ...}``

    Returns:
        The extracted bundle. Missing files contribute empty sources and no
        enabled libraries.
    """
    files = payload.get("files") or {}
    contents = {}
    for filename, file in files.items():
        if filename not in RECOGNIZED_FILES:
            continue
        content = (file or {}).get("content")
        contents[filename] = content if isinstance(content, str) else ""
    return _assemble(contents)


async def bundle_from_repo_tree(
    entries: Iterable[RepoTreeEntry],
    fetch_blob: Callable[[str], Awaitable[str]],
    policy: Optional[RetryPolicy] = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> ImportedSourceBundle:
    """Fetch the recognized files of a repository root and build a bundle.

    Blobs are fetched concurrently, each with its own retries. The first
    failed fetch cancels the others and propagates; no partial bundle is
    ever returned.
    """
    wanted = [entry for entry in entries if entry.filename in RECOGNIZED_FILES]
    logger.debug(f"Fetching {len(wanted)} recognized blob(s)")

    async def _fetch(entry: RepoTreeEntry) -> tuple[str, str]:
        content = await perform_with_retries(
            lambda: fetch_blob(entry.blob_id), policy, sleep=sleep
        )
        return entry.filename, content

    tasks: List[asyncio.Future] = [asyncio.ensure_future(_fetch(entry)) for entry in wanted]
    try:
        results = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return _assemble(dict(results))

import importlib.metadata

try:
    _detected_version = importlib.metadata.version("popcode-bootstrap")
    __version__ = _detected_version if _detected_version else "0.0.0-dev"
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0-dev"

from popcode_bootstrap.bootstrap import (
    BootstrapAction,
    BootstrapOrchestrator,
    BootstrapResult,
    bootstrap,
)
from popcode_bootstrap.classifier import OutcomeTag
from popcode_bootstrap.models import (
    BootstrapQuery,
    IdentityCredential,
    ImportedSourceBundle,
    RepoRef,
)
from popcode_bootstrap.retry import RetryPolicy, perform_with_retries
from popcode_bootstrap.settings import Settings, clear_settings_cache, get_settings

__all__ = [
    "__version__",
    # Orchestration
    "BootstrapAction",
    "BootstrapOrchestrator",
    "BootstrapResult",
    "bootstrap",
    # Values
    "BootstrapQuery",
    "IdentityCredential",
    "ImportedSourceBundle",
    "OutcomeTag",
    "RepoRef",
    # Retry
    "RetryPolicy",
    "perform_with_retries",
    # Settings
    "Settings",
    "clear_settings_cache",
    "get_settings",
]

"""Source-host API clients."""

from popcode_bootstrap.api.github_client import (
    AuthStrategy,
    ClientConfig,
    GitHubClient,
    RateLimitInfo,
    TokenAuth,
)

__all__ = [
    "AuthStrategy",
    "ClientConfig",
    "GitHubClient",
    "RateLimitInfo",
    "TokenAuth",
]

"""GitHub App provider."""

from dex_operator.providers.github.client import GitHubAppClient
from dex_operator.providers.github.provider import GitHubProvider


__all__ = ["GitHubAppClient", "GitHubProvider"]

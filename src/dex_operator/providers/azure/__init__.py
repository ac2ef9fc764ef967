"""Azure AD provider and its Graph diff engine."""

from dex_operator.providers.azure.graph import Application, GraphClient
from dex_operator.providers.azure.provider import AzureProvider


__all__ = ["Application", "AzureProvider", "GraphClient"]

"""Provider reconciliation and credential lifecycle engine for Dex connectors."""

__version__ = "0.1.0"

__all__ = ["__version__"]

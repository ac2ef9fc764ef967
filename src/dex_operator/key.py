"""Naming conventions and constants used across the operator."""

from __future__ import annotations
from datetime import timedelta


DEX_CONFIG_DATA_KEY = "default"
DEX_RESOURCE_URI = "https://dex.giantswarm.io"

OWNER_GIANTSWARM = "giantswarm"
OWNER_CUSTOMER = "customer"
OWNER_GIANTSWARM_DISPLAY_NAME = "Giant Swarm"
OWNER_CUSTOMER_DISPLAY_NAME = "Customer"
OWNERS = (OWNER_GIANTSWARM, OWNER_CUSTOMER)

BASE_DOMAIN_KEY = "baseDomain"

SECRET_VALIDITY_MONTHS = 3
CREDENTIAL_RENEWAL_THRESHOLD = timedelta(days=30)

CREDENTIALS_DATA_KEY = "credentials"
SELF_RENEWAL_ANNOTATION = "dex-operator.giantswarm.io/self-renewal"


def get_provider_name(owner: str, name: str) -> str:
    """Return the connector ID for a provider owned by ``owner``."""
    return f"{owner}-{name}"


def get_idp_app_name(management_cluster_name: str, namespace: str, name: str) -> str:
    """Return the app registration name used on the identity provider."""
    return f"{management_cluster_name}-{namespace}-{name}"


def get_owner_display_name(owner: str) -> str:
    """Return the human readable name of an owner tier."""
    if owner == OWNER_GIANTSWARM:
        return OWNER_GIANTSWARM_DISPLAY_NAME
    if owner == OWNER_CUSTOMER:
        return OWNER_CUSTOMER_DISPLAY_NAME
    return owner


def get_default_connector_description(connector_display_name: str, owner: str) -> str:
    """Return the connector display name shown on the Dex login page."""
    return f"{connector_display_name} for {get_owner_display_name(owner)}"


def get_redirect_uri(issuer_address: str) -> str:
    """Return the Dex callback URI for an issuer."""
    return f"https://{issuer_address}/callback"


def get_issuer_uri(issuer_address: str) -> str:
    """Return the issuer URI for an issuer address."""
    return f"https://{issuer_address}"


def get_identifier_uri(name: str) -> str:
    """Return the application identifier URI for an app registration."""
    return f"{DEX_RESOURCE_URI}/{name}"


def get_issuer_address(cluster_domain: str) -> str:
    """Return the Dex issuer address for a cluster domain."""
    return f"dex.{cluster_domain}"


def get_vintage_cluster_domain(base_domain: str) -> str:
    """Return the cluster domain used by vintage management clusters."""
    return f"g8s.{base_domain}"


def get_dex_operator_name(management_cluster_name: str) -> str:
    """Return the app registration name of the operator itself."""
    return f"dex-operator-{management_cluster_name}"


__all__ = [
    "BASE_DOMAIN_KEY",
    "CREDENTIALS_DATA_KEY",
    "CREDENTIAL_RENEWAL_THRESHOLD",
    "DEX_CONFIG_DATA_KEY",
    "DEX_RESOURCE_URI",
    "OWNERS",
    "OWNER_CUSTOMER",
    "OWNER_CUSTOMER_DISPLAY_NAME",
    "OWNER_GIANTSWARM",
    "OWNER_GIANTSWARM_DISPLAY_NAME",
    "SECRET_VALIDITY_MONTHS",
    "SELF_RENEWAL_ANNOTATION",
    "get_default_connector_description",
    "get_dex_operator_name",
    "get_identifier_uri",
    "get_idp_app_name",
    "get_issuer_address",
    "get_issuer_uri",
    "get_owner_display_name",
    "get_provider_name",
    "get_redirect_uri",
    "get_vintage_cluster_domain",
]

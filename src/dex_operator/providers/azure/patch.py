"""Diff engine computing minimal Graph patches for tenant applications."""

from __future__ import annotations
from typing import Any
from dex_operator.models import TenantAppConfig
from dex_operator.providers.azure.graph import (
    Application,
    OptionalClaim,
    OptionalClaims,
    RequiredResourceAccess,
    WebApplication,
)


TEMPLATE_APP_NAME = "giantswarm-dex"
CLAIM = "groups"
AUDIENCE = "AzureADMyOrg"


def compute_redirect_uri_patch(
    app: Application, config: TenantAppConfig
) -> tuple[bool, WebApplication | None]:
    """Append the tenant's redirect URI unless it is already registered."""
    current = list(app.web.redirect_uris) if app.web is not None else []
    if config.redirect_uri in current:
        return False, None
    return True, WebApplication(redirect_uris=[*current, config.redirect_uri])


def _with_claim(claims: list[OptionalClaim]) -> tuple[bool, list[OptionalClaim]]:
    if any(claim.name == CLAIM for claim in claims):
        return False, claims
    return True, [*claims, OptionalClaim(name=CLAIM)]


def compute_claims_patch(app: Application) -> tuple[bool, OptionalClaims | None]:
    """Add the groups claim to every token type that lacks it."""
    current = app.optional_claims or OptionalClaims()
    access_missing, access_token = _with_claim(current.access_token)
    id_missing, id_token = _with_claim(current.id_token)
    saml_missing, saml2_token = _with_claim(current.saml2_token)
    if not (access_missing or id_missing or saml_missing):
        return False, None
    return True, OptionalClaims(
        access_token=access_token, id_token=id_token, saml2_token=saml2_token
    )


def _permissions_payload(
    permissions: list[RequiredResourceAccess],
) -> list[dict[str, Any]]:
    return [permission.to_graph() for permission in permissions]


def compute_permissions_patch(
    app: Application, template: Application
) -> tuple[bool, list[RequiredResourceAccess] | None]:
    """Mirror the template application's permissions verbatim."""
    if _permissions_payload(app.required_resource_access) == _permissions_payload(
        template.required_resource_access
    ):
        return False, None
    return True, list(template.required_resource_access)


def compute_app_update_patch(
    config: TenantAppConfig, app: Application, template: Application
) -> tuple[bool, dict[str, Any]]:
    """Combine all diffs into a single Graph PATCH body."""
    patch: dict[str, Any] = {}
    needs_permissions, permissions = compute_permissions_patch(app, template)
    if needs_permissions and permissions is not None:
        patch["requiredResourceAccess"] = _permissions_payload(permissions)
    needs_web, web = compute_redirect_uri_patch(app, config)
    if needs_web and web is not None:
        patch["web"] = web.to_graph()
    needs_claims, claims = compute_claims_patch(app)
    if needs_claims and claims is not None:
        patch["optionalClaims"] = claims.to_graph()
    return bool(patch), patch


def claims_body() -> OptionalClaims:
    """Return optional claims carrying the groups claim in every token type."""
    return OptionalClaims(
        access_token=[OptionalClaim(name=CLAIM)],
        id_token=[OptionalClaim(name=CLAIM)],
        saml2_token=[OptionalClaim(name=CLAIM)],
    )


def app_create_body(config: TenantAppConfig) -> dict[str, Any]:
    """Return the request body creating a tenant application."""
    body: dict[str, Any] = {
        "displayName": config.name,
        "web": WebApplication(redirect_uris=[config.redirect_uri]).to_graph(),
        "optionalClaims": claims_body().to_graph(),
        "signInAudience": AUDIENCE,
    }
    if config.identifier_uri:
        body["identifierUris"] = [config.identifier_uri]
    return body


def permissions_body(template: Application) -> dict[str, Any]:
    """Return the PATCH body copying the template's permissions."""
    return {
        "requiredResourceAccess": _permissions_payload(
            template.required_resource_access
        )
    }


__all__ = [
    "AUDIENCE",
    "CLAIM",
    "TEMPLATE_APP_NAME",
    "app_create_body",
    "claims_body",
    "compute_app_update_patch",
    "compute_claims_patch",
    "compute_permissions_patch",
    "compute_redirect_uri_patch",
    "permissions_body",
]

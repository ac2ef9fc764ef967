"""Tests for the SSO, simple and mock providers."""

import pytest
import yaml
from dex_operator.errors import InvalidConfigError
from dex_operator.models import OIDCConfig, ProviderCredential, TenantAppConfig
from dex_operator.providers import ProviderConfig
from dex_operator.providers.mock import MockProvider
from dex_operator.providers.simple import SimpleProvider, inject_redirect_uri
from dex_operator.providers.sso import SSOProvider, validate_issuer_url


TENANT = TenantAppConfig(name="foo", redirect_uri="https://hello.io/callback")


def _sso_credential(**overrides: str) -> ProviderCredential:
    return ProviderCredential(
        name="giantswarmsso",
        owner="giantswarm",
        credentials={
            "issuer": "https://dex.central.example.io",
            "clientID": "mc-client",
            "clientSecret": "mc-secret",
            "centralClusterName": "central",
            **overrides,
        },
    )


def _simple_credential(connector_type: str, config: str) -> ProviderCredential:
    return ProviderCredential(
        name="simple",
        owner="customer",
        credentials={"connectorType": connector_type, "connectorConfig": config},
    )


@pytest.mark.asyncio
async def test_sso_connector_points_at_central_dex() -> None:
    """Workload clusters get an OIDC connector to the central issuer."""

    provider = SSOProvider(
        ProviderConfig(credential=_sso_credential(), management_cluster_name="mc")
    )

    result = await provider.create_or_update_app(TENANT, None)

    assert result.connector is not None
    assert result.connector.type == "oidc"
    assert result.connector.id == "giantswarm-giantswarmsso"
    assert result.connector.name == "Giant Swarm SSO for Giant Swarm"
    oidc = OIDCConfig.from_yaml(result.connector.config)
    assert oidc.issuer == "https://dex.central.example.io"
    assert oidc.client_id == "mc-client"
    assert oidc.redirect_uri == "https://hello.io/callback"
    assert oidc.insecure_enable_groups
    assert oidc.scopes == ["openid", "profile", "email", "groups"]
    assert result.secret_end_date_time is not None


@pytest.mark.asyncio
async def test_sso_is_skipped_on_central_cluster() -> None:
    """The central cluster does not log into itself."""

    provider = SSOProvider(
        ProviderConfig(credential=_sso_credential(), management_cluster_name="central")
    )

    result = await provider.create_or_update_app(TENANT, None)

    assert provider.is_central_cluster
    assert result.is_empty


@pytest.mark.parametrize(
    ("issuer", "match"),
    [
        ("http://dex.central.example.io", "HTTPS"),
        ("https://", "valid host"),
        ("", "issuer must not be empty"),
    ],
)
def test_sso_rejects_bad_issuer(issuer: str, match: str) -> None:
    """Issuers must be absolute HTTPS URLs."""

    with pytest.raises(InvalidConfigError, match=match):
        SSOProvider(ProviderConfig(credential=_sso_credential(issuer=issuer)))


def test_validate_issuer_url_accepts_https() -> None:
    """A host with the HTTPS scheme is accepted."""

    validate_issuer_url("https://dex.example.io")


@pytest.mark.asyncio
async def test_simple_provider_replaces_redirect_uri() -> None:
    """The configured redirect URI is replaced with the tenant's."""

    body = "clientID: abc\nredirectURI: https://hi.io/callback\nissuer: x\n"
    provider = SimpleProvider(
        ProviderConfig(credential=_simple_credential("oidc", body))
    )

    result = await provider.create_or_update_app(TENANT, None)

    assert result.connector is not None
    assert result.connector.id == "customer-simple-oidc"
    assert result.connector.type == "oidc"
    assert result.connector.name == "Simple Provider for Customer"
    assert result.connector.config == (
        "clientID: abc\nredirectURI: https://hello.io/callback\nissuer: x\n"
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        "{clientID: abc, issuer: x}",
        "{clientID: abc, redirectURI: 'https://hi.io/cb', issuer: x}",
    ],
)
async def test_simple_provider_accepts_flow_style_body(body: str) -> None:
    """Flow style bodies get the redirect URI as a proper mapping key."""

    provider = SimpleProvider(
        ProviderConfig(credential=_simple_credential("oidc", body))
    )

    result = await provider.create_or_update_app(TENANT, None)

    assert result.connector is not None
    assert yaml.safe_load(result.connector.config) == {
        "clientID": "abc",
        "issuer": "x",
        "redirectURI": "https://hello.io/callback",
    }


def test_inject_redirect_uri_appends_missing_key() -> None:
    """A body without a redirect URI gets one appended."""

    assert inject_redirect_uri("github", "clientID: abc\n", "https://r/cb") == (
        "clientID: abc\nredirectURI: https://r/cb"
    )
    assert inject_redirect_uri("github", "", "https://r/cb") == (
        "\nredirectURI: https://r/cb"
    )


def test_inject_redirect_uri_leaves_nested_keys() -> None:
    """Only a top-level redirect URI line is rewritten."""

    body = "nested:\n  redirectURI: keep\n"

    injected = inject_redirect_uri("oauth", body, "https://r/cb")

    assert yaml.safe_load(injected) == {
        "nested": {"redirectURI": "keep"},
        "redirectURI": "https://r/cb",
    }


def test_inject_redirect_uri_skips_types_without_redirect() -> None:
    """Connectors that never redirect are published unchanged."""

    body = "host: ldap.example.io:636\n"

    assert inject_redirect_uri("ldap", body, "https://r/cb") == body


@pytest.mark.parametrize(
    ("connector_type", "config", "match"),
    [
        ("carrier-pigeon", "a: b\n", "Unknown connector type"),
        ("oidc", "- a\n- b\n", "must be a mapping"),
        ("oidc", "a: [\n", "Parse connector config"),
        ("oidc", "", "connectorConfig must not be empty"),
    ],
)
def test_simple_provider_rejects_invalid_config(
    connector_type: str, config: str, match: str
) -> None:
    """Unknown types and non-mapping bodies are rejected up front."""

    with pytest.raises(InvalidConfigError, match=match):
        SimpleProvider(
            ProviderConfig(credential=_simple_credential(connector_type, config))
        )


@pytest.mark.asyncio
async def test_simple_provider_issues_no_setup_credentials() -> None:
    """The simple provider cannot create credentials for the operator."""

    provider = SimpleProvider(
        ProviderConfig(credential=_simple_credential("github", "clientID: a\n"))
    )

    assert await provider.get_credentials_for_authenticated_app(TENANT) == {}
    assert not provider.supports_service_credential_renewal()


@pytest.mark.asyncio
async def test_mock_provider() -> None:
    """The mock provider always returns the same static connector."""

    provider = MockProvider(
        ProviderConfig(credential=ProviderCredential(name="mock", owner="customer"))
    )

    first = await provider.create_or_update_app(TENANT, None)
    second = await provider.create_or_update_app(TENANT, first.connector)

    assert first.connector == second.connector
    assert first.connector is not None
    assert first.connector.type == "mockCallback"
    assert first.connector.id == "customer-mock"
    assert yaml.safe_load(first.connector.config) == {
        "username": "test",
        "password": "test",
    }
    assert await provider.get_credentials_for_authenticated_app(TENANT) == {
        "client-id": "abc",
        "client-secret": "test",
    }
    await provider.delete_app("foo")

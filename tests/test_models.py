"""Tests for connector, credential and Dex config models."""

import pytest
from dex_operator import key
from dex_operator.errors import InvalidConfigError
from dex_operator.models import (
    Connector,
    DexConfig,
    DexOidc,
    DexOidcOwner,
    GitHubConfig,
    GitHubOrg,
    MicrosoftConfig,
    ProviderApp,
    ProviderCredential,
    TenantAppConfig,
    dump_credentials,
    load_credentials,
)


def _connector(connector_id: str) -> Connector:
    return Connector(type="mockCallback", id=connector_id, name="Mock", config="")


def test_microsoft_config_uses_dex_field_names() -> None:
    """Connector payloads use Dex names and omit default fields."""

    payload = MicrosoftConfig(
        client_id="app", client_secret="s3cr3t", redirect_uri="https://r/callback"
    ).to_wire()

    assert payload == {
        "clientID": "app",
        "clientSecret": "s3cr3t",
        "redirectURI": "https://r/callback",
    }


def test_github_config_yaml_round_trip() -> None:
    """GitHub configs survive a YAML round trip with their org filter."""

    config = GitHubConfig(
        client_id="id",
        client_secret="secret",
        redirect_uri="https://r/callback",
        orgs=[GitHubOrg(name="acme", teams=["admins"])],
    )

    document = config.to_yaml()

    assert "redirectURI: https://r/callback" in document
    assert GitHubConfig.from_yaml(document) == config


def test_from_yaml_rejects_non_mapping() -> None:
    """Only mapping documents describe a connector config."""

    with pytest.raises(ValueError, match="must be a mapping"):
        MicrosoftConfig.from_yaml("- a\n- b\n")


def test_connector_accepts_wire_aliases() -> None:
    """Connectors can be validated from the persisted camelCase form."""

    connector = Connector.model_validate(
        {
            "connectorType": "github",
            "connectorName": "GitHub for Customer",
            "id": "customer-github",
            "connectorConfig": "clientID: x\n",
        }
    )

    assert connector.type == "github"
    assert connector.name == "GitHub for Customer"
    assert connector.config == "clientID: x\n"


def test_tenant_app_config_requires_positive_validity() -> None:
    """Secret validity must be at least one month."""

    with pytest.raises(ValueError):
        TenantAppConfig(name="a", redirect_uri="r", secret_validity_months=0)


def test_provider_app_empty() -> None:
    """An empty provider app carries no connector."""

    assert ProviderApp.empty().is_empty
    assert not ProviderApp(connector=_connector("a")).is_empty


def test_dex_config_omits_empty_tiers() -> None:
    """Absent tiers are not serialised and iteration keeps tier order."""

    config = DexConfig(
        oidc=DexOidc(
            customer=DexOidcOwner(connectors=[_connector("c")]),
            giantswarm=DexOidcOwner(connectors=[_connector("g")]),
        )
    )
    only_customer = DexConfig(
        oidc=DexOidc(customer=DexOidcOwner(connectors=[_connector("c")]))
    )

    assert [c.id for _, c in config.iter_connectors()] == ["g", "c"]
    assert "giantswarm" not in only_customer.to_payload()["oidc"]
    assert '"connectorType":"mockCallback"' in only_customer.to_json()


def test_dex_config_secret_data_round_trip() -> None:
    """Secret data written by one pass parses back on the next."""

    config = DexConfig(
        oidc=DexOidc(giantswarm=DexOidcOwner(connectors=[_connector("g")]))
    )

    data = config.to_secret_data()

    assert list(data) == [key.DEX_CONFIG_DATA_KEY]
    assert DexConfig.from_secret_data(data) == config
    assert DexConfig.from_secret_data(None) == DexConfig()
    assert DexConfig.from_secret_data({"other": b"x"}) == DexConfig()


def test_dex_oidc_tier_rejects_unknown_owner() -> None:
    """Only the two owner tiers exist."""

    with pytest.raises(ValueError, match="not known"):
        DexOidc().tier("acme")


def test_load_credentials_coerces_values() -> None:
    """Numeric credential values are read as strings."""

    credentials = load_credentials(
        """
- name: github
  owner: customer
  credentials:
    app-id: 1234
    organization: acme
- name: mock
  owner: giantswarm
  credentials:
"""
    )

    assert [c.name for c in credentials] == ["github", "mock"]
    assert credentials[0].credentials["app-id"] == "1234"
    assert credentials[1].credentials == {}


@pytest.mark.parametrize(
    "document",
    ["name: ad\n", "- [unclosed\n", "- name: ad\n  credentials: nope\n"],
)
def test_load_credentials_rejects_malformed_documents(document: str) -> None:
    """Malformed credential files raise InvalidConfigError."""

    with pytest.raises(InvalidConfigError):
        load_credentials(document)


def test_load_credentials_empty_document() -> None:
    """An empty credential file configures no providers."""

    assert load_credentials("") == []


def test_dump_credentials_keeps_order_and_description() -> None:
    """Dumped credentials reload to the same ordered list."""

    credentials = [
        ProviderCredential(
            name="ad",
            owner="giantswarm",
            credentials={"tenant-id": "t"},
            description="Corporate login",
        ),
        ProviderCredential(name="mock", owner="customer"),
    ]

    document = dump_credentials(credentials)

    assert load_credentials(document) == credentials
    assert "description" not in document.split("- name: mock")[1]


def test_connector_description_defaults_to_owner_display_name() -> None:
    """Without a description the provider display name and owner are used."""

    credential = ProviderCredential(name="ad", owner="customer")

    assert credential.connector_description("Azure AD") == "Azure AD for Customer"

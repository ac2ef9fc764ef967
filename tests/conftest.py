"""Shared fixtures for the dex operator test-suite."""

from __future__ import annotations
from collections.abc import Iterator
import pytest
import respx
from dex_operator.models import ProviderCredential, TenantAppConfig
from dex_operator.providers import ProviderConfig
from tests._azure_test_helpers import CLIENT_ID, CLIENT_SECRET, TENANT_ID, FakeGraph


@pytest.fixture()
def graph() -> Iterator[FakeGraph]:
    with respx.mock(assert_all_called=False) as router:
        yield FakeGraph(router)


@pytest.fixture()
def azure_credential() -> ProviderCredential:
    return ProviderCredential(
        name="ad",
        owner="giantswarm",
        credentials={
            "tenant-id": TENANT_ID,
            "client-id": CLIENT_ID,
            "client-secret": CLIENT_SECRET,
        },
    )


@pytest.fixture()
def azure_config(azure_credential: ProviderCredential) -> ProviderConfig:
    return ProviderConfig(credential=azure_credential, management_cluster_name="mc")


@pytest.fixture()
def tenant_config() -> TenantAppConfig:
    return TenantAppConfig(name="foo", redirect_uri="https://foo/callback")

"""Connector configuration payloads in the field naming Dex expects.

Each model mirrors the configuration struct of a Dex connector type. Fields are
declared with their Python names and aliased to the Dex names, so a dumped
payload can be loaded by Dex without translation. Optional fields left at their
default are omitted from the serialised document.
"""

from __future__ import annotations
from pydantic import Field
from dex_operator.models.base import WireModel


DEX_CONNECTOR_TYPES = frozenset(
    {
        "atlassian-crowd",
        "authproxy",
        "bitbucket-cloud",
        "gitea",
        "github",
        "gitlab",
        "google",
        "keystone",
        "ldap",
        "linkedin",
        "microsoft",
        "mockCallback",
        "mockPassword",
        "oauth",
        "oidc",
        "openshift",
        "saml",
    }
)
"""Connector types understood by Dex."""

CONNECTOR_TYPES_WITHOUT_REDIRECT_URI = frozenset(
    {"ldap", "authproxy", "atlassian-crowd", "keystone"}
)


class MicrosoftConfig(WireModel):
    """Configuration of the Dex Microsoft connector."""

    client_id: str = Field(alias="clientID")
    client_secret: str = Field(alias="clientSecret")
    redirect_uri: str = Field(alias="redirectURI")
    tenant: str = Field(default="", alias="tenant")
    only_security_groups: bool = Field(default=False, alias="onlySecurityGroups")
    groups: list[str] = Field(default_factory=list, alias="groups")
    group_name_format: str = Field(default="", alias="groupNameFormat")
    use_groups_as_whitelist: bool = Field(default=False, alias="useGroupsAsWhitelist")
    email_to_lowercase: bool = Field(default=False, alias="emailToLowercase")
    api_url: str = Field(default="", alias="apiURL")
    graph_url: str = Field(default="", alias="graphURL")
    prompt_type: str = Field(default="", alias="promptType")
    domain_hint: str = Field(default="", alias="domainHint")
    scopes: list[str] = Field(default_factory=list, alias="scopes")


class GitHubOrg(WireModel):
    """Organisation and team filter of the Dex GitHub connector."""

    name: str = Field(alias="name")
    teams: list[str] = Field(default_factory=list, alias="teams")


class GitHubConfig(WireModel):
    """Configuration of the Dex GitHub connector."""

    client_id: str = Field(alias="clientID")
    client_secret: str = Field(alias="clientSecret")
    redirect_uri: str = Field(alias="redirectURI")
    org: str = Field(default="", alias="org")
    orgs: list[GitHubOrg] = Field(default_factory=list, alias="orgs")
    host_name: str = Field(default="", alias="hostName")
    root_ca: str = Field(default="", alias="rootCA")
    team_name_field: str = Field(default="", alias="teamNameField")
    load_all_groups: bool = Field(default=False, alias="loadAllGroups")
    use_login_as_id: bool = Field(default=False, alias="useLoginAsID")
    preferred_email_domain: str = Field(default="", alias="preferredEmailDomain")


class OIDCConfig(WireModel):
    """Configuration of the Dex OpenID Connect connector."""

    issuer: str = Field(alias="issuer")
    client_id: str = Field(alias="clientID")
    client_secret: str = Field(default="", alias="clientSecret")
    redirect_uri: str = Field(alias="redirectURI")
    insecure_enable_groups: bool = Field(default=False, alias="insecureEnableGroups")
    insecure_skip_email_verified: bool = Field(
        default=False, alias="insecureSkipEmailVerified"
    )
    scopes: list[str] = Field(default_factory=list, alias="scopes")
    allowed_groups: list[str] = Field(default_factory=list, alias="allowedGroups")
    get_user_info: bool = Field(default=False, alias="getUserInfo")
    user_id_key: str = Field(default="", alias="userIDKey")
    user_name_key: str = Field(default="", alias="userNameKey")


class MockPasswordConfig(WireModel):
    """Configuration of the Dex mock password connector."""

    username: str = Field(alias="username")
    password: str = Field(alias="password")


__all__ = [
    "CONNECTOR_TYPES_WITHOUT_REDIRECT_URI",
    "DEX_CONNECTOR_TYPES",
    "GitHubConfig",
    "GitHubOrg",
    "MicrosoftConfig",
    "MockPasswordConfig",
    "OIDCConfig",
]

"""Models for kubeconfig contents and resolved credentials."""

from __future__ import annotations

from typing import Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

__all__ = [
    "Cluster",
    "Context",
    "ExecConfig",
    "KubeConfig",
    "KubeModel",
    "NamedCluster",
    "NamedContext",
    "NamedUser",
    "ResolvedCluster",
    "ResolvedKubeConfig",
    "ResolvedUser",
    "User",
]


_EMPTY_VALUES = ({}, "", "null", "~")
"""Parsed forms of a key with no value or an explicit YAML null."""


class KubeModel(BaseModel):
    """Base for models read from kubeconfig files or returned to callers.

    Input may use camel-case keys, as produced by
    `kubecreds.yaml.normalize_keys`, or field names. Output defaults to
    camel case. Unknown keys are ignored, since kubeconfig files routinely
    carry settings this library does not use.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        serialize_by_alias=True,
        extra="ignore",
    )


class ExecConfig(KubeModel):
    """Configuration of an exec credential plugin."""

    command: str = Field(
        ..., title="Command", examples=["aws-iam-authenticator"]
    )

    args: list[str] = Field([], title="Arguments")

    env: dict[str, str] = Field(
        {},
        title="Environment",
        description="Added to, and overriding, the process environment",
    )

    api_version: str | None = Field(
        None,
        title="Credential API version",
        examples=["client.authentication.k8s.io/v1"],
    )

    @field_validator("args", mode="before")
    @classmethod
    def _empty_args(cls, v: Any) -> Any:
        """Treat a null or empty ``args`` as no arguments."""
        return [] if v in _EMPTY_VALUES else v

    @field_validator("env", mode="before")
    @classmethod
    def _convert_env_list(cls, v: Any) -> Any:
        """Accept the kubeconfig form of ``env``, a list of name pairs.

        kubectl and cloud provider tools write ``env: null`` when no
        variables are set.
        """
        if v in _EMPTY_VALUES:
            return {}
        if not isinstance(v, list):
            return v
        env = {}
        for entry in v:
            if not isinstance(entry, dict) or "name" not in entry:
                raise ValueError("Each env entry must have a name")
            env[entry["name"]] = entry.get("value", "")
        return env


class Cluster(KubeModel):
    """Connection details for a cluster."""

    server: str = Field(..., title="API server URL")

    certificate_authority_data: str | None = Field(
        None, title="CA certificate, base64 or PEM"
    )

    certificate_authority: str | None = Field(
        None, title="Path to CA certificate file"
    )

    insecure_skip_tls_verify: bool = Field(
        False, title="Whether to skip TLS verification"
    )


class Context(KubeModel):
    """A pairing of cluster and user."""

    cluster: str = Field(..., title="Cluster name")

    user: str = Field(..., title="User name")

    namespace: str | None = Field(None, title="Default namespace")


class User(KubeModel):
    """Authentication settings for a user."""

    token: str | None = Field(None, title="Bearer token")

    token_file: str | None = Field(None, title="Path to bearer token file")

    client_certificate_data: str | None = Field(
        None, title="Client certificate, base64 or PEM"
    )

    client_key_data: str | None = Field(
        None, title="Client private key, base64 or PEM"
    )

    client_certificate: str | None = Field(
        None, title="Path to client certificate file"
    )

    client_key: str | None = Field(
        None, title="Path to client private key file"
    )

    exec: ExecConfig | None = Field(None, title="Exec credential plugin")


class NamedCluster(KubeModel):
    name: str
    cluster: Cluster


class NamedContext(KubeModel):
    name: str
    context: Context


class NamedUser(KubeModel):
    name: str
    user: User = Field(default_factory=User)


class KubeConfig(KubeModel):
    """Typed view of a parsed kubeconfig file."""

    api_version: str | None = None

    kind: str | None = None

    current_context: str = ""

    clusters: list[NamedCluster] = []

    contexts: list[NamedContext] = []

    users: list[NamedUser] = []

    @field_validator("clusters", "contexts", "users", mode="before")
    @classmethod
    def _empty_as_list(cls, v: Any) -> Any:
        """Treat an empty or null section as an empty list."""
        if v in _EMPTY_VALUES:
            return []
        return v

    @field_validator("current_context", mode="before")
    @classmethod
    def _empty_as_string(cls, v: Any) -> Any:
        """Treat a key with no value as an empty context name."""
        return "" if v in ({}, None) else v


class ResolvedCluster(KubeModel):
    """Cluster connection material ready for use by an HTTP client."""

    name: str = Field(..., title="Cluster name", examples=["in-cluster"])

    server: str = Field(
        ..., title="API server URL", examples=["https://10.96.0.1:443"]
    )

    certificate_authority_data: str | None = Field(
        None, title="CA certificate, base64"
    )

    certificate_authority_pem: str | None = Field(
        None, title="CA certificate, PEM"
    )

    insecure_skip_tls_verify: bool = Field(
        False, title="Whether to skip TLS verification"
    )


class ResolvedUser(KubeModel):
    """Client authentication material.

    At most one of a token or a client certificate and key is set. Neither
    is set if the user has no credentials.
    """

    token: str | None = Field(None, title="Bearer token")

    client_certificate_data: str | None = Field(
        None, title="Client certificate, base64"
    )

    client_key_data: str | None = Field(None, title="Client key, base64")

    client_certificate_pem: str | None = Field(
        None, title="Client certificate, PEM"
    )

    client_key_pem: str | None = Field(None, title="Client key, PEM")

    @model_validator(mode="after")
    def _check_single_method(self) -> Self:
        has_cert = bool(self.client_certificate_pem)
        if has_cert != bool(self.client_key_pem):
            raise ValueError("Client certificate and key must be set together")
        if self.token and has_cert:
            raise ValueError("Only one of token or client certificate allowed")
        return self


class ResolvedKubeConfig(KubeModel):
    """Credentials resolved from a kubeconfig or in-cluster environment."""

    cluster: ResolvedCluster = Field(..., title="Cluster")

    user: ResolvedUser = Field(default_factory=ResolvedUser, title="User")

    namespace: str | None = Field(
        None,
        title="Default namespace",
        description=(
            "Namespace of the current context or of the pod's service account"
        ),
    )

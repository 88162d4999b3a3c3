"""Settings for credential resolution."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .logging import DEFAULT_LOGGER_NAME

__all__ = [
    "DEFAULT_SERVICE_ACCOUNT_PATH",
    "InClusterEnvironment",
    "ResolverSettings",
]

DEFAULT_SERVICE_ACCOUNT_PATH = Path(
    "/var/run/secrets/kubernetes.io/serviceaccount"
)
"""Directory where Kubernetes mounts the pod's service account."""


class ResolverSettings(BaseSettings):
    """Settings for resolving credentials.

    All settings may be overridden with environment variables prefixed with
    ``KUBECREDS_``.
    """

    model_config = SettingsConfigDict(
        env_prefix="KUBECREDS_", case_sensitive=False
    )

    kubeconfig_path: Path | None = Field(
        None,
        title="Path to kubeconfig",
        description=(
            "Used when no path is passed explicitly. Defaults to"
            " $HOME/.kube/config if not set."
        ),
    )

    service_account_path: Path = Field(
        DEFAULT_SERVICE_ACCOUNT_PATH,
        title="Service account directory",
        description=(
            "Directory containing the token, ca.crt, and namespace files"
            " used for in-cluster configuration"
        ),
    )

    exec_timeout: timedelta = Field(
        timedelta(seconds=60),
        title="Exec plugin timeout",
        description="How long to wait for an exec credential plugin",
    )

    logger_name: str = Field(
        DEFAULT_LOGGER_NAME,
        title="Logger name",
        description="Name of the structlog logger used if none is provided",
    )


class InClusterEnvironment(BaseSettings):
    """Environment variables Kubernetes sets inside every pod.

    Read fresh each time it is instantiated so that every resolution sees the
    current process environment.
    """

    model_config = SettingsConfigDict(case_sensitive=False)

    kubernetes_service_host: str = Field(
        "", title="API server host", examples=["10.96.0.1"]
    )

    kubernetes_service_port: str = Field(
        "", title="API server port", examples=["443"]
    )

    @property
    def is_complete(self) -> bool:
        """Whether both the host and port are set and non-empty."""
        return bool(
            self.kubernetes_service_host.strip()
            and self.kubernetes_service_port.strip()
        )

    @property
    def server_url(self) -> str:
        """URL of the API server, bracketing IPv6 addresses."""
        host = self.kubernetes_service_host.strip()
        port = self.kubernetes_service_port.strip()
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"https://{host}:{port}"

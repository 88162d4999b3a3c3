"""Test fixtures."""

from __future__ import annotations

import base64
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
import structlog

from kubecreds.config import ResolverSettings
from kubecreds.pem import buffer_to_pem

_ENVIRONMENT_VARIABLES = [
    "KUBECREDS_EXEC_TIMEOUT",
    "KUBECREDS_KUBECONFIG_PATH",
    "KUBECREDS_LOGGER_NAME",
    "KUBECREDS_SERVICE_ACCOUNT_PATH",
    "KUBERNETES_SERVICE_HOST",
    "KUBERNETES_SERVICE_PORT",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate tests from the environment they happen to run in."""
    for variable in _ENVIRONMENT_VARIABLES:
        monkeypatch.delenv(variable, raising=False)
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings(tmp_path: Path) -> ResolverSettings:
    return ResolverSettings(service_account_path=tmp_path / "serviceaccount")


@pytest.fixture
def write_kubeconfig(tmp_path: Path) -> Callable[[str], Path]:
    """Return a function that writes a kubeconfig and returns its path."""

    def write(content: str) -> Path:
        path = tmp_path / "config"
        path.write_text(content)
        return path

    return write


@pytest.fixture
def ca_pem() -> str:
    return buffer_to_pem(b"some CA certificate", "CERTIFICATE")


@pytest.fixture
def ca_data(ca_pem: str) -> str:
    """CA certificate as kubectl writes it: base64-encoded PEM."""
    return base64.b64encode(ca_pem.encode()).decode()

"""Discover credentials from a pod's service account."""

from __future__ import annotations

import base64
from pathlib import Path

from structlog.stdlib import BoundLogger

from .config import DEFAULT_SERVICE_ACCOUNT_PATH, InClusterEnvironment
from .exceptions import (
    ConfigFileNotFoundError,
    InvalidConfigError,
    KubeConfigError,
    NotInClusterError,
)
from .filesystem import FileSystem, LocalFileSystem
from .logging import get_logger
from .models import ResolvedCluster, ResolvedKubeConfig, ResolvedUser
from .pem import PemType, to_pem

__all__ = ["IN_CLUSTER_NAME", "InClusterDiscovery"]

IN_CLUSTER_NAME = "in-cluster"
"""Cluster name used for in-cluster configuration."""


class InClusterDiscovery:
    """Build credentials from the service account mounted into a pod.

    Parameters
    ----------
    fs
        File system to read from.
    logger
        Logger to use. Defaults to the library logger.
    service_account_path
        Directory holding the ``token``, ``ca.crt``, and ``namespace`` files.
    """

    def __init__(
        self,
        fs: FileSystem | None = None,
        *,
        logger: BoundLogger | None = None,
        service_account_path: Path = DEFAULT_SERVICE_ACCOUNT_PATH,
    ) -> None:
        self._fs = fs or LocalFileSystem()
        self._logger = get_logger(logger)
        self._token_path = service_account_path / "token"
        self._ca_path = service_account_path / "ca.crt"
        self._namespace_path = service_account_path / "namespace"

    async def resolve(self) -> ResolvedKubeConfig:
        """Resolve credentials for the API server of the current cluster.

        Files are checked and read one at a time in a fixed order (token, CA
        certificate, namespace) so that errors are reported deterministically.

        Returns
        -------
        ResolvedKubeConfig
            Credentials using the service account token.

        Raises
        ------
        NotInClusterError
            Raised if ``KUBERNETES_SERVICE_HOST`` or
            ``KUBERNETES_SERVICE_PORT`` is not set.
        ConfigFileNotFoundError
            Raised if the token or CA certificate is missing or unreadable.
        InvalidConfigError
            Raised if the token is blank or the CA certificate is empty.
        PemFormatError
            Raised if the CA certificate cannot be converted to PEM.
        """
        environment = InClusterEnvironment()
        if not environment.is_complete:
            msg = (
                "Not running inside a Kubernetes cluster. Environment"
                " variables KUBERNETES_SERVICE_HOST or KUBERNETES_SERVICE_PORT"
                " are missing."
            )
            self._logger.error(
                msg,
                service_host=environment.kubernetes_service_host or None,
                service_port=environment.kubernetes_service_port or None,
            )
            raise NotInClusterError("Not running inside a Kubernetes cluster.")

        await self._check_mandatory_files()
        has_namespace = await self._fs.access(self._namespace_path)
        if not has_namespace:
            self._logger.warning(
                "Namespace file is missing", path=str(self._namespace_path)
            )

        token = (await self._read_text(self._token_path)).strip()
        ca = await self._read_bytes(self._ca_path)
        if not token:
            msg = "Service account token is missing or invalid."
            self._logger.error(msg, path=str(self._token_path))
            raise InvalidConfigError(msg)
        if not ca:
            msg = "CA certificate is missing or invalid."
            self._logger.error(msg, path=str(self._ca_path))
            raise InvalidConfigError(msg)

        namespace = await self._read_namespace() if has_namespace else None
        ca_data = base64.b64encode(ca).decode("ascii")
        try:
            ca_data, ca_pem = to_pem(
                ca_data, [PemType.CERTIFICATE], field="in-cluster CA"
            )
        except KubeConfigError as e:
            self._logger.error(e.message, path=str(self._ca_path))
            raise

        server = environment.server_url
        self._logger.debug("Resolved in-cluster configuration", server=server)
        return ResolvedKubeConfig(
            cluster=ResolvedCluster(
                name=IN_CLUSTER_NAME,
                server=server,
                certificate_authority_data=ca_data,
                certificate_authority_pem=ca_pem,
            ),
            user=ResolvedUser(token=token),
            namespace=namespace,
        )

    async def _check_mandatory_files(self) -> None:
        """Check the token and CA certificate, reporting every missing one."""
        missing = []
        for description, path in (
            ("Service account token", self._token_path),
            ("CA certificate", self._ca_path),
        ):
            if not await self._fs.access(path):
                self._logger.error(f"{description} is missing", path=str(path))
                missing.append(f"{description} is missing at path: {path}")
        if missing:
            raise ConfigFileNotFoundError("; ".join(missing))

    async def _read_text(self, path: Path) -> str:
        try:
            return await self._fs.read_text(path)
        except OSError as e:
            raise self._read_failed(path, e) from e

    async def _read_bytes(self, path: Path) -> bytes:
        try:
            return await self._fs.read_bytes(path)
        except OSError as e:
            raise self._read_failed(path, e) from e

    def _read_failed(self, path: Path, exc: OSError) -> KubeConfigError:
        msg = f"Failed to read in-cluster file {path}: {exc!s}"
        self._logger.error(msg, path=str(path))
        return ConfigFileNotFoundError(msg, cause=exc)

    async def _read_namespace(self) -> str | None:
        try:
            text = await self._fs.read_text(self._namespace_path)
        except OSError as e:
            self._logger.warning(
                "Cannot read namespace file",
                path=str(self._namespace_path),
                error=str(e),
            )
            return None
        namespace = text.strip()
        if not namespace:
            self._logger.warning(
                "Namespace file is empty", path=str(self._namespace_path)
            )
            return None
        return namespace

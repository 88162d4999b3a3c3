"""Resolve credentials from a kubeconfig file."""

from __future__ import annotations

import base64
import os
from pathlib import Path

from pydantic import ValidationError
from structlog.stdlib import BoundLogger

from .config import InClusterEnvironment, ResolverSettings
from .exceptions import (
    ConfigFileNotFoundError,
    InvalidConfigError,
    KubeConfigError,
    ParsingError,
)
from .execplugin import ExecCredentialPlugin
from .filesystem import FileSystem, LocalFileSystem
from .incluster import InClusterDiscovery
from .logging import get_logger
from .models import (
    Cluster,
    KubeConfig,
    ResolvedCluster,
    ResolvedKubeConfig,
    ResolvedUser,
    User,
)
from .pem import PemType, to_pem
from .yaml import YamlSyntaxError, normalize_keys, parse

__all__ = [
    "KubeConfigReader",
    "default_kubeconfig_path",
    "load_kube_config",
]

_CERTIFICATE_TYPES = (PemType.CERTIFICATE,)
_KEY_TYPES = (
    PemType.PRIVATE_KEY,
    PemType.RSA_PRIVATE_KEY,
    PemType.EC_PRIVATE_KEY,
)


def default_kubeconfig_path() -> Path:
    """Return :file:`$HOME/.kube/config`, using :file:`/root` if unset."""
    return Path(os.environ.get("HOME") or "/root") / ".kube" / "config"


class KubeConfigReader:
    """Resolve credentials from a kubeconfig file or the pod environment.

    A reader holds no state between calls, so a single instance may be used
    for any number of concurrent resolutions.

    Parameters
    ----------
    path
        Path to the kubeconfig file. Defaults to the ``kubeconfig_path``
        setting, then to :file:`$HOME/.kube/config`.
    fs
        File system to read from.
    exec_plugin
        Runner for exec credential plugins.
    logger
        Logger to use. Defaults to the logger named by the ``logger_name``
        setting.
    settings
        Settings. Defaults to settings read from the environment.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        fs: FileSystem | None = None,
        exec_plugin: ExecCredentialPlugin | None = None,
        logger: BoundLogger | None = None,
        settings: ResolverSettings | None = None,
    ) -> None:
        self._settings = settings or ResolverSettings()
        if path is not None:
            self._path = Path(path)
        else:
            self._path = (
                self._settings.kubeconfig_path or default_kubeconfig_path()
            )
        self._fs = fs or LocalFileSystem()
        self._logger = get_logger(logger, self._settings.logger_name)
        self._exec_plugin = exec_plugin or ExecCredentialPlugin(
            timeout=self._settings.exec_timeout, logger=self._logger
        )

    @property
    def path(self) -> Path:
        """Path of the kubeconfig file this reader resolves."""
        return self._path

    async def get_kube_config(self) -> ResolvedKubeConfig:
        """Resolve credentials for the current context of the kubeconfig.

        Returns
        -------
        ResolvedKubeConfig
            Credentials for the cluster and user of the current context.

        Raises
        ------
        KubeConfigError
            Raised on any failure. The subclass identifies the reason.
        """
        logger = self._logger.bind(path=str(self._path))
        try:
            return await self._resolve(logger)
        except KubeConfigError:
            raise
        except Exception as e:
            msg = f"Failed to resolve kubeconfig: {e!s}"
            logger.exception("Unexpected error resolving kubeconfig")
            raise KubeConfigError(msg, cause=e) from e

    async def get_in_cluster_config(self) -> ResolvedKubeConfig:
        """Resolve credentials from the pod's service account.

        Raises
        ------
        KubeConfigError
            Raised on any failure. The subclass identifies the reason.
        """
        discovery = InClusterDiscovery(
            self._fs,
            logger=self._logger,
            service_account_path=self._settings.service_account_path,
        )
        try:
            return await discovery.resolve()
        except KubeConfigError:
            raise
        except Exception as e:
            msg = f"Failed to resolve in-cluster configuration: {e!s}"
            self._logger.exception("Unexpected error resolving in-cluster")
            raise KubeConfigError(msg, cause=e) from e

    async def _resolve(self, logger: BoundLogger) -> ResolvedKubeConfig:
        config = await self._load(logger)

        if not config.current_context:
            msg = "No currentContext is set in kubeconfig."
            logger.error(msg)
            raise InvalidConfigError(msg)
        logger = logger.bind(context=config.current_context)
        logger.debug("Resolving current context")

        context = self._find(
            "context",
            config.current_context,
            {c.name: c.context for c in reversed(config.contexts)},
            logger,
        )
        cluster = self._find(
            "cluster",
            context.cluster,
            {c.name: c.cluster for c in reversed(config.clusters)},
            logger,
        )
        user = self._find(
            "user",
            context.user,
            {u.name: u.user for u in reversed(config.users)},
            logger,
        )

        resolved_cluster = await self._resolve_cluster(
            context.cluster, cluster, logger
        )
        resolved_user = await self._resolve_user(user, logger)
        logger.debug("Resolved kubeconfig", server=resolved_cluster.server)
        return ResolvedKubeConfig(
            cluster=resolved_cluster,
            user=resolved_user,
            namespace=context.namespace,
        )

    async def _load(self, logger: BoundLogger) -> KubeConfig:
        """Read, parse, and validate the kubeconfig file."""
        try:
            text = await self._fs.read_text(self._path)
        except FileNotFoundError as e:
            msg = f"Kubeconfig file not found at path: {self._path}"
            logger.error(msg)
            raise ConfigFileNotFoundError(msg, cause=e) from e
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Failed to read kubeconfig: {e!s}"
            logger.error(msg)
            raise KubeConfigError(msg, cause=e) from e
        logger.debug("Loaded kubeconfig file")

        try:
            document = normalize_keys(parse(text)).to_python()
        except YamlSyntaxError as e:
            msg = f"Failed to parse kubeconfig YAML: {e!s}"
            logger.error(msg, line=e.line_number)
            raise ParsingError(msg, line_number=e.line_number, cause=e) from e
        except Exception as e:
            msg = f"Failed to parse kubeconfig YAML: {e!s}"
            logger.error(msg)
            raise ParsingError(msg, cause=e) from e

        try:
            return KubeConfig.model_validate(document)
        except ValidationError as e:
            msg = f"Parsed kubeconfig is invalid: {_describe(e)}"
            logger.error(msg)
            raise InvalidConfigError(msg, cause=e) from e

    def _find[T](
        self,
        kind: str,
        name: str,
        entries: dict[str, T],
        logger: BoundLogger,
    ) -> T:
        """Look up a named context, cluster, or user.

        ``entries`` must be built so that the first definition of a name wins.
        """
        if name in entries:
            logger.debug(f"Found {kind}", name=name)
            return entries[name]
        available = ", ".join(reversed(entries)) or "none"
        msg = (
            f"{kind} '{name}' not found in kubeconfig."
            f" Available: {available}"
        )
        logger.error(msg)
        raise ConfigFileNotFoundError(msg)

    async def _resolve_cluster(
        self, name: str, cluster: Cluster, logger: BoundLogger
    ) -> ResolvedCluster:
        ca_data = cluster.certificate_authority_data
        field = "certificateAuthorityData"
        if not ca_data and cluster.certificate_authority:
            field = "certificateAuthority"
            ca_data = await self._read_material(
                cluster.certificate_authority, field, logger
            )

        ca_pem = None
        if ca_data:
            ca_data, ca_pem = self._to_pem(
                ca_data, _CERTIFICATE_TYPES, field, logger
            )
        return ResolvedCluster(
            name=name,
            server=cluster.server,
            certificate_authority_data=ca_data,
            certificate_authority_pem=ca_pem,
            insecure_skip_tls_verify=cluster.insecure_skip_tls_verify,
        )

    async def _resolve_user(
        self, user: User, logger: BoundLogger
    ) -> ResolvedUser:
        """Pick the user's authentication method and resolve it.

        Priority is exec plugin, then token, then token file, then client
        certificate and key.
        """
        if user.exec:
            logger.debug("Using exec credential plugin")
            token = await self._exec_plugin.get_token(user.exec)
            return ResolvedUser(token=token)
        if user.token and user.token.strip():
            logger.debug("Using bearer token")
            return ResolvedUser(token=user.token.strip())
        if user.token_file:
            logger.debug("Using bearer token file")
            token = await self._read_token_file(user.token_file, logger)
            return ResolvedUser(token=token)

        cert = user.client_certificate_data
        cert_field = "clientCertificateData"
        if not cert and user.client_certificate:
            cert_field = "clientCertificate"
            cert = await self._read_material(
                user.client_certificate, cert_field, logger
            )
        key = user.client_key_data
        key_field = "clientKeyData"
        if not key and user.client_key:
            key_field = "clientKey"
            key = await self._read_material(user.client_key, key_field, logger)

        if not cert and not key:
            logger.debug("User has no credentials")
            return ResolvedUser()
        if not cert or not key:
            msg = (
                "User has a client certificate but no client key."
                if cert
                else "User has a client key but no client certificate."
            )
            logger.error(msg)
            raise InvalidConfigError(msg)

        logger.debug("Using client certificate")
        cert_data, cert_pem = self._to_pem(
            cert, _CERTIFICATE_TYPES, cert_field, logger
        )
        key_data, key_pem = self._to_pem(key, _KEY_TYPES, key_field, logger)
        return ResolvedUser(
            client_certificate_data=cert_data,
            client_key_data=key_data,
            client_certificate_pem=cert_pem,
            client_key_pem=key_pem,
        )

    async def _read_token_file(
        self, filename: str, logger: BoundLogger
    ) -> str:
        path = self._relative_path(filename)
        try:
            token = (await self._fs.read_text(path)).strip()
        except FileNotFoundError as e:
            msg = f"Token file not found at path: {path}"
            logger.error(msg)
            raise ConfigFileNotFoundError(msg, cause=e) from e
        except OSError as e:
            msg = f"Failed to read token file {path}: {e!s}"
            logger.error(msg)
            raise KubeConfigError(msg, cause=e) from e
        if not token:
            msg = f"Token file {path} is empty."
            logger.error(msg)
            raise InvalidConfigError(msg)
        return token

    async def _read_material(
        self, filename: str, field: str, logger: BoundLogger
    ) -> str:
        """Read a certificate or key file named in the kubeconfig.

        Returns
        -------
        str
            File contents, base64-encoded if they are not PEM text.
        """
        path = self._relative_path(filename)
        try:
            data = await self._fs.read_bytes(path)
        except FileNotFoundError as e:
            msg = f"File for {field} not found at path: {path}"
            logger.error(msg)
            raise ConfigFileNotFoundError(msg, cause=e) from e
        except OSError as e:
            msg = f"Failed to read {field} from {path}: {e!s}"
            logger.error(msg)
            raise KubeConfigError(msg, cause=e) from e
        if not data:
            msg = f"File for {field} at {path} is empty."
            logger.error(msg)
            raise InvalidConfigError(msg)
        return base64.b64encode(data).decode("ascii")

    def _relative_path(self, filename: str) -> Path:
        """Resolve a path relative to the directory of the kubeconfig."""
        path = Path(filename).expanduser()
        if not path.is_absolute():
            path = self._path.parent / path
        return path

    def _to_pem(
        self,
        data: str,
        accepted: tuple[PemType, ...],
        field: str,
        logger: BoundLogger,
    ) -> tuple[str, str]:
        try:
            return to_pem(data, accepted, field=field)
        except KubeConfigError as e:
            logger.error(e.message, field=field)
            raise


async def load_kube_config(
    path: str | Path | None = None,
    *,
    in_cluster: bool | None = None,
    fs: FileSystem | None = None,
    logger: BoundLogger | None = None,
    settings: ResolverSettings | None = None,
) -> ResolvedKubeConfig:
    """Resolve Kubernetes credentials.

    Parameters
    ----------
    path
        Path to a kubeconfig file.
    in_cluster
        Whether to use the pod's service account. If not given, in-cluster
        configuration is used when neither ``path`` nor the
        ``kubeconfig_path`` setting is given and ``KUBERNETES_SERVICE_HOST``
        is set, and the kubeconfig file otherwise.
    fs
        File system to read from.
    logger
        Logger to use.
    settings
        Settings. Defaults to settings read from the environment.

    Returns
    -------
    ResolvedKubeConfig
        Resolved credentials.

    Raises
    ------
    KubeConfigError
        Raised on any failure. The subclass identifies the reason.

    Examples
    --------
    .. code-block:: python

       from kubecreds import load_kube_config


       config = await load_kube_config()
       print(config.cluster.server)
    """
    settings = settings or ResolverSettings()
    reader = KubeConfigReader(path, fs=fs, logger=logger, settings=settings)
    if in_cluster is None:
        environment = InClusterEnvironment()
        in_cluster = (
            path is None
            and settings.kubeconfig_path is None
            and bool(environment.kubernetes_service_host.strip())
        )
    if in_cluster:
        return await reader.get_in_cluster_config()
    return await reader.get_kube_config()


def _describe(error: ValidationError) -> str:
    """Summarize the first Pydantic validation error."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]

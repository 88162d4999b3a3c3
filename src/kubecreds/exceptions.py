"""Exceptions raised while resolving Kubernetes credentials."""

from __future__ import annotations

from enum import StrEnum

__all__ = [
    "ConfigFileNotFoundError",
    "ExecAuthError",
    "InvalidConfigError",
    "KubeConfigError",
    "KubeConfigErrorKind",
    "NotInClusterError",
    "ParsingError",
    "PemConversionError",
    "PemFormatError",
]


class KubeConfigErrorKind(StrEnum):
    """Closed set of reasons why credential resolution can fail.

    Every exception raised by this library carries exactly one of these
    values in its ``kind`` attribute, so callers may either catch the
    specific exception class or dispatch on ``kind``.
    """

    CONFIG_FILE_NOT_FOUND = "config_file_not_found"
    """The kubeconfig, a referenced section, or a mandatory file is missing."""

    INVALID_CONFIG = "invalid_config"
    """Data is present but semantically invalid."""

    PARSING = "parsing"
    """The kubeconfig could not be parsed."""

    PEM_FORMAT = "pem_format"
    """Text claiming to be PEM failed envelope validation."""

    PEM_CONVERSION = "pem_conversion"
    """Binary data could not be converted to PEM."""

    EXEC_AUTH = "exec_auth"
    """The exec credential plugin failed or returned no token."""

    NOT_IN_CLUSTER = "not_in_cluster"
    """In-cluster resolution was requested outside of a cluster."""

    UNKNOWN = "unknown"
    """Any other unexpected failure."""


class KubeConfigError(Exception):
    """Base class for all credential resolution errors.

    Raised directly only for unexpected failures, such as permission errors
    reading the kubeconfig file. The original exception is kept as ``cause``
    and chained with ``raise ... from``.

    Parameters
    ----------
    message
        Human-readable description of the failure.
    cause
        Underlying exception, if any.
    """

    kind = KubeConfigErrorKind.UNKNOWN
    """Kind of error, fixed per subclass."""

    def __init__(
        self, message: str, *, cause: BaseException | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class ConfigFileNotFoundError(KubeConfigError):
    """A kubeconfig file, section, or service account file does not exist."""

    kind = KubeConfigErrorKind.CONFIG_FILE_NOT_FOUND


class InvalidConfigError(KubeConfigError):
    """Configuration data is structurally present but invalid."""

    kind = KubeConfigErrorKind.INVALID_CONFIG


class ParsingError(KubeConfigError):
    """The kubeconfig YAML could not be parsed.

    Parameters
    ----------
    message
        Human-readable description of the failure.
    line_number
        Line of the kubeconfig at which parsing failed, if known.
    cause
        Underlying exception, if any.
    """

    kind = KubeConfigErrorKind.PARSING

    def __init__(
        self,
        message: str,
        *,
        line_number: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.line_number = line_number


class PemFormatError(KubeConfigError):
    """Text is not a valid PEM envelope of the expected type."""

    kind = KubeConfigErrorKind.PEM_FORMAT


class PemConversionError(KubeConfigError):
    """Binary data could not be converted to PEM."""

    kind = KubeConfigErrorKind.PEM_CONVERSION


class ExecAuthError(KubeConfigError):
    """The exec credential plugin failed.

    Parameters
    ----------
    message
        Human-readable description of the failure.
    command
        Command that was run.
    stderr
        Captured standard error of the plugin, if any.
    cause
        Underlying exception, if any.
    """

    kind = KubeConfigErrorKind.EXEC_AUTH

    def __init__(
        self,
        message: str,
        *,
        command: str | None = None,
        stderr: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.command = command
        self.stderr = stderr


class NotInClusterError(KubeConfigError):
    """In-cluster configuration was requested outside of Kubernetes."""

    kind = KubeConfigErrorKind.NOT_IN_CLUSTER

"""Obtain bearer tokens from exec credential plugins.

Exec plugins are external commands configured in the ``exec`` section of a
kubeconfig user. They follow the client-go credential plugin protocol: the
plugin prints an ``ExecCredential`` object as JSON on standard output whose
``status.token`` field holds the bearer token.
"""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import timedelta

from pydantic import BaseModel, ConfigDict, ValidationError
from structlog.stdlib import BoundLogger

from .exceptions import ExecAuthError
from .logging import get_logger
from .models import ExecConfig

__all__ = [
    "DEFAULT_EXEC_API_VERSION",
    "ExecCredentialPlugin",
    "ProcessResult",
    "ProcessRunner",
    "run_process",
]

DEFAULT_EXEC_API_VERSION = "client.authentication.k8s.io/v1"
"""API version sent to plugins whose configuration does not specify one."""


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of running an external process."""

    returncode: int
    """Exit status of the process."""

    stdout: str
    """Decoded standard output."""

    stderr: str
    """Decoded standard error."""


type ProcessRunner = Callable[
    [Sequence[str], Mapping[str, str], float], Awaitable[ProcessResult]
]
"""Callable that runs a command with an environment and a timeout.

It must raise `TimeoutError` if the process does not finish in time and
`OSError` if it cannot be started.
"""


class _ExecCredentialStatus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token: str | None = None


class _ExecCredential(BaseModel):
    """The parts of a plugin's output that carry a token.

    ``status.token`` is the client-go protocol. A bare top-level ``token`` is
    also accepted for simple plugins.
    """

    model_config = ConfigDict(extra="ignore")

    status: _ExecCredentialStatus | None = None

    token: str | None = None

    @property
    def bearer_token(self) -> str | None:
        if self.status and self.status.token and self.status.token.strip():
            return self.status.token.strip()
        if self.token and self.token.strip():
            return self.token.strip()
        return None


async def run_process(
    argv: Sequence[str], env: Mapping[str, str], timeout: float
) -> ProcessResult:
    """Run a command and collect its output.

    The process is killed if it does not finish within ``timeout`` seconds.

    Raises
    ------
    OSError
        Raised if the command cannot be started.
    TimeoutError
        Raised if the command did not finish in time.
    """
    process = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=dict(env),
    )
    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except TimeoutError:
        process.kill()
        await process.wait()
        raise
    return ProcessResult(
        returncode=process.returncode or 0,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


class ExecCredentialPlugin:
    """Run exec credential plugins and extract their tokens.

    Parameters
    ----------
    runner
        Runs the plugin process. Defaults to `run_process`. Tests may
        substitute `kubecreds.testing.MockProcessRunner`.
    timeout
        How long to wait for the plugin before giving up.
    logger
        Logger to use. Defaults to the library logger.
    """

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        *,
        timeout: timedelta = timedelta(seconds=60),
        logger: BoundLogger | None = None,
    ) -> None:
        self._runner = runner or run_process
        self._timeout = timeout
        self._logger = get_logger(logger)

    async def get_token(self, config: ExecConfig) -> str:
        """Run the plugin and return the bearer token it prints.

        Parameters
        ----------
        config
            The ``exec`` section of a kubeconfig user.

        Returns
        -------
        str
            Bearer token.

        Raises
        ------
        ExecAuthError
            Raised if the plugin cannot be run, times out, exits with a
            non-zero status, or does not print a usable token.
        """
        argv = [config.command, *config.args]
        env = {**os.environ, **config.env}
        env["KUBERNETES_EXEC_INFO"] = self._build_exec_info(config)
        timeout = self._timeout.total_seconds()
        logger = self._logger.bind(command=config.command)

        logger.debug("Running exec credential plugin")
        try:
            result = await self._runner(argv, env, timeout)
        except TimeoutError as e:
            msg = f"Exec command {config.command} timed out after {timeout}s"
            raise self._fail(msg, config, cause=e) from e
        except OSError as e:
            msg = f"Failed to execute command {config.command}: {e!s}"
            raise self._fail(msg, config, cause=e) from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            msg = (
                f"Exec command failed with code {result.returncode}: {stderr}"
            )
            raise self._fail(msg, config, stderr=stderr)

        try:
            credential = _ExecCredential.model_validate_json(result.stdout)
        except ValidationError as e:
            detail = e.errors()[0]["msg"]
            msg = f"Failed to parse exec command output: {detail}"
            raise self._fail(msg, config, cause=e) from e
        token = credential.bearer_token
        if not token:
            raise self._fail("Exec command did not return a token.", config)

        logger.debug("Obtained token from exec credential plugin")
        return token

    def _build_exec_info(self, config: ExecConfig) -> str:
        api_version = config.api_version or DEFAULT_EXEC_API_VERSION
        return json.dumps(
            {
                "apiVersion": api_version,
                "kind": "ExecCredential",
                "spec": {"interactive": False},
            }
        )

    def _fail(
        self,
        message: str,
        config: ExecConfig,
        *,
        stderr: str | None = None,
        cause: BaseException | None = None,
    ) -> ExecAuthError:
        error = ExecAuthError(
            message, command=config.command, stderr=stderr, cause=cause
        )
        self._logger.error(message, command=config.command)
        return error

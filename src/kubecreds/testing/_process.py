"""Mock process runner for exec credential plugins."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from ..execplugin import ProcessResult

__all__ = ["MockProcessRunner"]


class MockProcessRunner:
    """Stand-in for `kubecreds.execplugin.run_process`.

    Records every invocation and returns a canned result instead of starting
    a process.

    Parameters
    ----------
    stdout
        Standard output to return. Anything other than a `str` is serialized
        as JSON.
    returncode
        Exit status to return.
    stderr
        Standard error to return.
    error
        If given, raised instead of returning a result. Use `TimeoutError`
        to simulate a plugin that hangs or `FileNotFoundError` for a missing
        command.

    Attributes
    ----------
    calls
        Command line, environment, and timeout of each call, in order.

    Examples
    --------
    .. code-block:: python

       runner = MockProcessRunner({"status": {"token": "some-token"}})
       plugin = ExecCredentialPlugin(runner)
    """

    def __init__(
        self,
        stdout: Any = "",
        *,
        returncode: int = 0,
        stderr: str = "",
        error: Exception | None = None,
    ) -> None:
        if not isinstance(stdout, str):
            stdout = json.dumps(stdout)
        self.result = ProcessResult(
            returncode=returncode, stdout=stdout, stderr=stderr
        )
        self.error = error
        self.calls: list[tuple[list[str], dict[str, str], float]] = []

    async def __call__(
        self, argv: Sequence[str], env: Mapping[str, str], timeout: float
    ) -> ProcessResult:
        self.calls.append((list(argv), dict(env), timeout))
        if self.error:
            raise self.error
        return self.result

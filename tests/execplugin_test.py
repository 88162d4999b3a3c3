"""Tests for exec credential plugins."""

from __future__ import annotations

import json
import sys
from datetime import timedelta

import pytest
from structlog.testing import capture_logs

from kubecreds.exceptions import ExecAuthError, KubeConfigErrorKind
from kubecreds.execplugin import (
    DEFAULT_EXEC_API_VERSION,
    ExecCredentialPlugin,
    run_process,
)
from kubecreds.models import ExecConfig
from kubecreds.testing import MockProcessRunner


def _python_config(script: str) -> ExecConfig:
    return ExecConfig(command=sys.executable, args=["-c", script])


@pytest.mark.asyncio
async def test_get_token() -> None:
    runner = MockProcessRunner(
        {
            "apiVersion": "client.authentication.k8s.io/v1",
            "kind": "ExecCredential",
            "status": {"token": "some-token"},
        }
    )
    plugin = ExecCredentialPlugin(runner, timeout=timedelta(seconds=5))
    config = ExecConfig.model_validate(
        {
            "command": "aws",
            "args": ["eks", "get-token"],
            "env": [{"name": "AWS_PROFILE", "value": "dev"}],
        }
    )

    assert await plugin.get_token(config) == "some-token"

    assert len(runner.calls) == 1
    argv, env, timeout = runner.calls[0]
    assert argv == ["aws", "eks", "get-token"]
    assert env["AWS_PROFILE"] == "dev"
    assert timeout == 5.0
    exec_info = json.loads(env["KUBERNETES_EXEC_INFO"])
    assert exec_info["apiVersion"] == DEFAULT_EXEC_API_VERSION
    assert exec_info["kind"] == "ExecCredential"


@pytest.mark.asyncio
async def test_top_level_token() -> None:
    runner = MockProcessRunner({"token": " tok\n"})
    plugin = ExecCredentialPlugin(runner)
    config = ExecConfig(
        command="echo",
        args=['{"token":"tok"}'],
        api_version="client.authentication.k8s.io/v1beta1",
    )

    assert await plugin.get_token(config) == "tok"
    exec_info = json.loads(runner.calls[0][1]["KUBERNETES_EXEC_INFO"])
    assert exec_info["apiVersion"] == "client.authentication.k8s.io/v1beta1"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("runner", "message"),
    [
        (
            MockProcessRunner(returncode=2, stderr="access denied\n"),
            "Exec command failed with code 2: access denied",
        ),
        (
            MockProcessRunner("not json"),
            "Failed to parse exec command output: ",
        ),
        (
            MockProcessRunner({"status": {}}),
            "Exec command did not return a token.",
        ),
        (
            MockProcessRunner({"status": {"token": "  "}}),
            "Exec command did not return a token.",
        ),
        (
            MockProcessRunner(error=TimeoutError()),
            "Exec command plugin timed out after 60.0s",
        ),
        (
            MockProcessRunner(error=FileNotFoundError("no such file")),
            "Failed to execute command plugin: no such file",
        ),
    ],
)
async def test_errors(runner: MockProcessRunner, message: str) -> None:
    plugin = ExecCredentialPlugin(runner)

    with capture_logs() as logs:
        with pytest.raises(ExecAuthError) as excinfo:
            await plugin.get_token(ExecConfig(command="plugin"))

    assert str(excinfo.value).startswith(message)
    assert excinfo.value.kind == KubeConfigErrorKind.EXEC_AUTH
    assert excinfo.value.command == "plugin"
    errors = [e for e in logs if e["log_level"] == "error"]
    assert len(errors) == 1
    assert errors[0]["command"] == "plugin"


@pytest.mark.asyncio
async def test_failure_stderr() -> None:
    runner = MockProcessRunner(returncode=1, stderr="bad credentials")
    plugin = ExecCredentialPlugin(runner)

    with pytest.raises(ExecAuthError) as excinfo:
        await plugin.get_token(ExecConfig(command="plugin"))
    assert excinfo.value.stderr == "bad credentials"
    assert excinfo.value.cause is None


@pytest.mark.asyncio
async def test_real_process() -> None:
    script = (
        "import json, os\n"
        "info = json.loads(os.environ['KUBERNETES_EXEC_INFO'])\n"
        "token = os.environ['PLUGIN_PREFIX'] + info['kind']\n"
        "print(json.dumps({'status': {'token': token}}))\n"
    )
    config = _python_config(script)
    config.env["PLUGIN_PREFIX"] = "token-for-"
    plugin = ExecCredentialPlugin()

    assert await plugin.get_token(config) == "token-for-ExecCredential"


@pytest.mark.asyncio
async def test_real_process_failure() -> None:
    script = "import sys\nsys.stderr.write('boom')\nsys.exit(3)\n"
    plugin = ExecCredentialPlugin()

    with pytest.raises(ExecAuthError) as excinfo:
        await plugin.get_token(_python_config(script))
    assert str(excinfo.value) == "Exec command failed with code 3: boom"


@pytest.mark.asyncio
async def test_real_process_timeout() -> None:
    plugin = ExecCredentialPlugin(timeout=timedelta(seconds=0.5))

    with pytest.raises(ExecAuthError) as excinfo:
        await plugin.get_token(_python_config("import time; time.sleep(30)"))
    assert "timed out" in str(excinfo.value)
    assert isinstance(excinfo.value.cause, TimeoutError)


@pytest.mark.asyncio
async def test_run_process_missing_command() -> None:
    with pytest.raises(FileNotFoundError):
        await run_process(["/nonexistent/credential-plugin"], {}, 5)

    plugin = ExecCredentialPlugin()
    with pytest.raises(ExecAuthError) as excinfo:
        await plugin.get_token(
            ExecConfig(command="/nonexistent/credential-plugin")
        )
    assert str(excinfo.value).startswith("Failed to execute command")

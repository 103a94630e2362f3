import subprocess

import pytest

from pgsmoke.errors import ProvisioningError, SmokeError, TeardownError
from pgsmoke.models import STATE_REMOVED, STATE_STARTED, STATE_STOPPED, ContainerHandle, HarnessConfig
from pgsmoke.services.docker_runtime import DockerRuntimeService


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


class FakeRunCmd:
    """Records docker invocations and answers them from a table keyed by subcommand."""

    def __init__(self, responses=None, failures=()):
        self.calls = []
        self.responses = responses or {}
        self.failures = set(failures)

    def __call__(self, cmd, check=True, capture_output=True, timeout=None):
        self.calls.append({"cmd": cmd, "check": check, "timeout": timeout})
        subcommand = cmd[1]
        if subcommand in self.failures:
            if check:
                raise SmokeError(f"Command failed (1): {' '.join(cmd)}")
            return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="error")
        return subprocess.CompletedProcess(cmd, 0, stdout=self.responses.get(subcommand, ""), stderr="")

    def subcommands(self):
        return [call["cmd"][1] for call in self.calls]


def _service() -> DockerRuntimeService:
    return DockerRuntimeService(logger=DummyLogger(), console=DummyConsole())


def _config(**kwargs) -> HarnessConfig:
    return HarnessConfig(image="postgres:15", app_name="test-app", **kwargs)


def test_build_create_command_binds_reserved_port_to_5432():
    cmd = _service().build_create_command(_config(), "test-app", 49153)

    assert cmd[:4] == ["docker", "create", "--name", "test-app"]
    assert cmd[-1] == "postgres:15"
    assert "0.0.0.0:49153:5432/tcp" in cmd
    assert cmd[cmd.index("--expose") + 1] == "5432/tcp"
    assert "--platform" not in cmd


def test_build_environment_contains_credentials_and_trust_auth():
    env = _service().build_environment(_config())

    assert "POSTGRES_USER=postgres" in env
    assert "POSTGRES_PASSWORD=postgres" in env
    assert "POSTGRES_DB=postgres" in env
    assert "POSTGRES_HOST_AUTH_METHOD=trust" in env
    assert "POSTGRES_INITDB_ARGS=--encoding=UTF-8" in env
    assert "TZ=UTC" in env


def test_build_create_command_includes_platform_when_set():
    cmd = _service().build_create_command(_config(platform="linux/amd64"), "test-app", 5555)

    assert cmd[cmd.index("--platform") + 1] == "linux/amd64"


def test_build_create_command_brackets_ipv6_bind_host():
    cmd = _service().build_create_command(_config(bind_host="::"), "test-app", 49153)

    assert cmd[cmd.index("--publish") + 1] == "[::]:49153:5432/tcp"


def test_pull_passes_timeout_to_docker_pull():
    run_cmd = FakeRunCmd()

    _service().pull_image("postgres:15", "always", run_cmd, timeout=600)

    assert run_cmd.calls[0]["timeout"] == 600


def test_pull_always_pulls_without_inspecting():
    run_cmd = FakeRunCmd()

    _service().pull_image("postgres:15", "always", run_cmd)

    assert run_cmd.subcommands() == ["pull"]


def test_pull_missing_skips_pull_when_image_present():
    run_cmd = FakeRunCmd()

    _service().pull_image("postgres:15", "missing", run_cmd)

    assert run_cmd.subcommands() == ["image"]


def test_pull_never_raises_when_image_absent():
    run_cmd = FakeRunCmd(failures={"image"})

    with pytest.raises(ProvisioningError, match="pull policy is `never`"):
        _service().pull_image("postgres:15", "never", run_cmd)

    assert "pull" not in run_cmd.subcommands()


def test_pull_failure_is_provisioning_error():
    run_cmd = FakeRunCmd(failures={"pull"})

    with pytest.raises(ProvisioningError, match="Could not pull image postgres:15"):
        _service().pull_image("postgres:15", "always", run_cmd)


def test_create_container_returns_handle_with_container_id():
    run_cmd = FakeRunCmd(responses={"create": "abc123def456\n"})

    handle = _service().create_container(_config(), "test-app", 49153, run_cmd)

    assert handle.container_id == "abc123def456"
    assert handle.host_port == 49153
    assert handle.state == "created"


def test_create_container_without_id_raises():
    run_cmd = FakeRunCmd(responses={"create": ""})

    with pytest.raises(ProvisioningError, match="no container id"):
        _service().create_container(_config(), "test-app", 49153, run_cmd)


def test_start_failure_reports_reserved_port():
    handle = ContainerHandle(container_id="abc", name="test-app", host_port=49153)
    run_cmd = FakeRunCmd(failures={"start"})

    with pytest.raises(ProvisioningError, match="49153") as excinfo:
        _service().start_container(handle, run_cmd)

    assert excinfo.value.handle is handle
    assert handle.state == "created"


def test_verify_port_binding_accepts_matching_port():
    handle = ContainerHandle(container_id="abc", name="test-app", host_port=49153, state=STATE_STARTED)
    run_cmd = FakeRunCmd(responses={"port": "0.0.0.0:49153\n[::]:49153\n"})

    _service().verify_port_binding(handle, run_cmd)


def test_verify_port_binding_rejects_other_port():
    handle = ContainerHandle(container_id="abc", name="test-app", host_port=49153, state=STATE_STARTED)
    run_cmd = FakeRunCmd(responses={"port": "0.0.0.0:50000\n"})

    with pytest.raises(ProvisioningError, match="published port 50000"):
        _service().verify_port_binding(handle, run_cmd)


def test_stop_and_remove_walk_the_lifecycle():
    handle = ContainerHandle(container_id="abc", name="test-app", host_port=1, state=STATE_STARTED)
    run_cmd = FakeRunCmd()
    service = _service()

    service.stop_container(handle, timeout=1, run_cmd=run_cmd)
    assert handle.state == STATE_STOPPED
    assert run_cmd.calls[0]["cmd"] == ["docker", "stop", "--time", "1", "abc"]
    assert run_cmd.calls[0]["timeout"] == 11

    service.remove_container(handle, run_cmd)
    assert handle.state == STATE_REMOVED
    assert run_cmd.calls[1]["cmd"] == ["docker", "rm", "abc"]


def test_removed_handle_cannot_be_stopped_or_removed_again():
    handle = ContainerHandle(container_id="abc", name="test-app", host_port=1, state=STATE_REMOVED)
    run_cmd = FakeRunCmd()
    service = _service()

    with pytest.raises(TeardownError, match="already removed"):
        service.stop_container(handle, timeout=1, run_cmd=run_cmd)
    with pytest.raises(TeardownError, match="already removed"):
        service.remove_container(handle, run_cmd)

    assert run_cmd.calls == []


def test_validate_environment_wraps_missing_daemon():
    run_cmd = FakeRunCmd(failures={"version"})

    with pytest.raises(ProvisioningError, match="Docker is not reachable"):
        _service().validate_environment(run_cmd)

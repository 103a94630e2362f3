"""Docker runtime services for pgsmoke."""

from typing import Callable, List, Optional

from pgsmoke.constants import (
    CONTAINER_PORT,
    HOST_AUTH_METHOD,
    INITDB_ARGS,
    PULL_ALWAYS,
    PULL_MISSING,
    PULL_NEVER,
    STOP_COMMAND_GRACE_SECONDS,
)
from pgsmoke.errors import ProvisioningError, SmokeError, TeardownError
from pgsmoke.errors_catalog import actionable_error
from pgsmoke.models import (
    STATE_REMOVED,
    STATE_STARTED,
    STATE_STOPPED,
    ContainerHandle,
    HarnessConfig,
    format_host,
)


class DockerRuntimeService:
    """Drives the container lifecycle through the docker CLI."""

    def __init__(self, logger, console):
        self.logger = logger
        self.console = console

    def validate_environment(self, run_cmd: Callable):
        self.console.print("[blue]Validating Docker environment...[/blue]")
        try:
            result = run_cmd(["docker", "version", "--format", "{{.Server.Version}}"])
        except SmokeError as exc:
            raise ProvisioningError(actionable_error("docker_unavailable", error=exc)) from exc
        self.logger.debug("Docker server version: %s", (result.stdout or "").strip())

    def image_present(self, image: str, run_cmd: Callable) -> bool:
        result = run_cmd(["docker", "image", "inspect", image], check=False)
        return result.returncode == 0

    def pull_image(
        self, image: str, pull_policy: str, run_cmd: Callable, timeout: Optional[float] = None
    ):
        if pull_policy != PULL_ALWAYS and self.image_present(image, run_cmd):
            self.logger.info("Image %s already present locally, not pulling.", image)
            return

        if pull_policy == PULL_NEVER:
            raise ProvisioningError(actionable_error("image_not_present", image=image))

        if pull_policy not in (PULL_ALWAYS, PULL_MISSING):
            raise ProvisioningError(f"Unknown pull policy: {pull_policy}")

        self.console.print(f"[blue]Pulling image {image}...[/blue]")
        self.logger.info("Pulling image %s", image)
        try:
            run_cmd(["docker", "pull", image], timeout=timeout)
        except SmokeError as exc:
            raise ProvisioningError(
                actionable_error("image_pull_failed", image=image, error=exc)
            ) from exc

    def build_environment(self, config: HarnessConfig) -> List[str]:
        return [
            f"TZ={config.timezone}",
            f"LANG={config.lang}",
            f"POSTGRES_DB={config.postgres_db}",
            f"POSTGRES_USER={config.postgres_user}",
            f"POSTGRES_PASSWORD={config.postgres_password}",
            f"POSTGRES_INITDB_ARGS={INITDB_ARGS}",
            f"POSTGRES_HOST_AUTH_METHOD={HOST_AUTH_METHOD}",
        ]

    def build_create_command(self, config: HarnessConfig, name: str, host_port: int) -> List[str]:
        cmd = ["docker", "create", "--name", name]
        for entry in self.build_environment(config):
            cmd += ["--env", entry]
        cmd += [
            "--expose",
            CONTAINER_PORT,
            "--publish",
            f"{format_host(config.bind_host)}:{host_port}:{CONTAINER_PORT}",
        ]
        if config.platform:
            cmd += ["--platform", config.platform]
        cmd.append(config.image)
        return cmd

    def create_container(
        self, config: HarnessConfig, name: str, host_port: int, run_cmd: Callable
    ) -> ContainerHandle:
        self.console.print(f"[blue]Creating container {name}...[/blue]")
        try:
            result = run_cmd(self.build_create_command(config, name, host_port))
        except SmokeError as exc:
            raise ProvisioningError(
                actionable_error("container_create_failed", name=name, error=exc)
            ) from exc

        lines = (result.stdout or "").strip().splitlines()
        container_id = lines[-1].strip() if lines else ""
        if not container_id:
            raise ProvisioningError(
                actionable_error(
                    "container_create_failed", name=name, error="docker returned no container id"
                )
            )

        handle = ContainerHandle(container_id=container_id, name=name, host_port=host_port)
        self.logger.info("Created container %s (%s)", name, handle.container_id[:12])
        return handle

    def start_container(self, handle: ContainerHandle, run_cmd: Callable):
        self._ensure_usable(handle)
        try:
            run_cmd(["docker", "start", handle.container_id])
        except SmokeError as exc:
            raise ProvisioningError(
                actionable_error(
                    "container_start_failed", name=handle.name, port=handle.host_port, error=exc
                ),
                handle=handle,
            ) from exc
        handle.state = STATE_STARTED
        self.console.print(f"[green]Container {handle.name} started.[/green]")

    def published_port(self, handle: ContainerHandle, run_cmd: Callable) -> Optional[int]:
        self._ensure_usable(handle)
        result = run_cmd(["docker", "port", handle.container_id, CONTAINER_PORT], check=False)
        if result.returncode != 0:
            return None

        for line in (result.stdout or "").splitlines():
            _, _, port = line.strip().rpartition(":")
            if port.isdigit():
                return int(port)
        return None

    def verify_port_binding(self, handle: ContainerHandle, run_cmd: Callable):
        actual = self.published_port(handle, run_cmd)
        if actual != handle.host_port:
            raise ProvisioningError(
                actionable_error(
                    "port_binding_mismatch",
                    name=handle.name,
                    actual=actual,
                    expected=handle.host_port,
                ),
                handle=handle,
            )

    def stop_container(self, handle: ContainerHandle, timeout: int, run_cmd: Callable):
        self._ensure_usable(handle)
        self.logger.info("Stopping container %s", handle.name)
        try:
            run_cmd(
                ["docker", "stop", "--time", str(timeout), handle.container_id],
                timeout=timeout + STOP_COMMAND_GRACE_SECONDS,
            )
        except SmokeError as exc:
            raise TeardownError(f"Could not stop container {handle.name}: {exc}") from exc
        handle.state = STATE_STOPPED

    def remove_container(self, handle: ContainerHandle, run_cmd: Callable, force: bool = False):
        self._ensure_usable(handle)
        self.logger.info("Removing container %s", handle.name)
        cmd = ["docker", "rm"]
        if force:
            cmd.append("--force")
        cmd.append(handle.container_id)
        try:
            run_cmd(cmd)
        except SmokeError as exc:
            raise TeardownError(f"Could not remove container {handle.name}: {exc}") from exc
        handle.state = STATE_REMOVED

    @staticmethod
    def _ensure_usable(handle: ContainerHandle):
        if handle.removed:
            raise TeardownError(actionable_error("container_already_removed", name=handle.name))

import logging
import socket
import uuid
from typing import List, Optional

import psycopg
from rich.console import Console

from .constants import (
    CONTAINER_NAME_PREFIX,
    EXIT_FAILED,
    EXIT_OK,
    EXIT_TEARDOWN_FAILED,
)
from .errors import ProbeError, ProvisioningError, SmokeError, TeardownError
from .models import (
    STATE_STOPPED,
    ConnectionDescriptor,
    ContainerHandle,
    HarnessConfig,
    ProvisionedDatabase,
    TeardownReport,
)
from .services.command_runner import CommandRunner
from .services.docker_runtime import DockerRuntimeService
from .services.ports import PortReservationService
from .services.probe import ProbeService
from .services.readiness import ReadinessService
from .services.report import RunReportService

console = Console()
logger = logging.getLogger("pgsmoke")


class PostgresHarness:
    """Owns one disposable PostgreSQL container for the duration of a test run."""

    def __init__(
        self,
        config: HarnessConfig,
        command_runner: Optional[CommandRunner] = None,
        psycopg_module=psycopg,
        socket_module=socket,
    ):
        self.config = config
        self.run_id = uuid.uuid4().hex[:10]
        self.container_name = config.app_name or f"{CONTAINER_NAME_PREFIX}_{self.run_id}"

        self.command_runner = command_runner or CommandRunner(
            logger=logger, default_timeout=config.command_timeout
        )
        self.port_service = PortReservationService(logger=logger, socket_module=socket_module)
        self.docker_runtime_service = DockerRuntimeService(logger=logger, console=console)
        self.probe_service = ProbeService(
            logger=logger,
            psycopg_module=psycopg_module,
            connect_timeout=config.connect_timeout,
        )
        self.readiness_service = ReadinessService(
            logger=logger,
            console=console,
            probe_service=self.probe_service,
        )
        self.report_service = RunReportService(report_file=config.report_file, logger=logger)

        self.database: Optional[ProvisionedDatabase] = None
        self._report_started = False

    def _run_cmd(self, cmd: List[str], check: bool = True, capture_output: bool = True, timeout=None):
        if timeout is None:
            timeout = self.config.command_timeout
        return self.command_runner.run(
            cmd, check=check, capture_output=capture_output, timeout=timeout
        )

    def _start_report(self):
        if self._report_started:
            return
        self.report_service.start_run(
            run_id=self.run_id,
            metadata={
                "image": self.config.image,
                "container_name": self.container_name,
                "pull_policy": self.config.pull_policy,
            },
        )
        self._report_started = True

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.report_service.step_started(name)

        try:
            result = callback(*args, **kwargs)
        except Exception as exc:
            self.report_service.step_finished(name, "failed", error=str(exc))
            raise

        self.report_service.step_finished(name, "success")
        return result

    def _record_state(self, handle: ContainerHandle):
        self.report_service.container_state(handle.container_id, handle.state)

    def build_descriptor(self, port: int) -> ConnectionDescriptor:
        return ConnectionDescriptor(
            user=self.config.postgres_user,
            password=self.config.postgres_password,
            host=self.config.host,
            port=port,
            database=self.config.postgres_db,
        )

    def validate_docker_environment(self):
        self.docker_runtime_service.validate_environment(self._run_cmd)

    def reserve_port(self) -> int:
        return self.port_service.find_free_port()

    def pull_image(self):
        self.docker_runtime_service.pull_image(
            self.config.image,
            self.config.pull_policy,
            self._run_cmd,
            timeout=self.config.pull_timeout,
        )

    def create_container(self, port: int) -> ContainerHandle:
        return self.docker_runtime_service.create_container(
            self.config, self.container_name, port, self._run_cmd
        )

    def start_container(self, handle: ContainerHandle):
        self.docker_runtime_service.start_container(handle, self._run_cmd)
        self.docker_runtime_service.verify_port_binding(handle, self._run_cmd)

    def wait_for_db(self, descriptor: ConnectionDescriptor) -> str:
        return self.readiness_service.wait_until_ready(
            descriptor,
            name=self.container_name,
            max_attempts=self.config.ready_attempts,
            initial_backoff=self.config.ready_backoff,
            max_backoff=self.config.ready_max_backoff,
        )

    def provision(self) -> ProvisionedDatabase:
        """Creates and starts the container, then waits until it accepts queries.

        Raises ProvisioningError on any failure. If the container was already
        created it is stopped and removed before the error propagates.
        """
        if self.database is not None:
            raise ProvisioningError(f"Container {self.container_name} is already provisioned.")

        self._start_report()
        logger.info("Provisioning PostgreSQL container from %s", self.config.image)

        try:
            self._run_step("validate_docker_environment", self.validate_docker_environment)
            port = self._run_step("reserve_port", self.reserve_port)
            self._run_step("pull_image", self.pull_image)
            handle = self._run_step("create_container", self.create_container, port)
            self._record_state(handle)
        except ProvisioningError:
            raise
        except SmokeError as exc:
            raise ProvisioningError(str(exc)) from exc

        descriptor = self.build_descriptor(port)
        self.report_service.add_metadata("host_port", port)

        try:
            self._run_step("start_container", self.start_container, handle)
            self._record_state(handle)
            server_version = self._run_step("wait_for_db", self.wait_for_db, descriptor)
        except SmokeError as exc:
            logger.error("Provisioning failed after container creation: %s", exc)
            self.teardown(handle)
            if isinstance(exc, ProvisioningError):
                exc.handle = handle
                raise
            raise ProvisioningError(str(exc), handle=handle) from exc

        self.database = ProvisionedDatabase(
            handle=handle,
            descriptor=descriptor,
            server_version=server_version,
        )
        console.print(f"[bold green]PostgreSQL available at {descriptor.dsn}[/bold green]")
        logger.info("Provisioned %s at %s", self.container_name, descriptor.dsn)
        return self.database

    def probe(self, database: Optional[ProvisionedDatabase] = None) -> int:
        database = database or self.database
        if database is None:
            raise ProbeError("No provisioned database to probe. Call provision() first.")
        return self._run_step("probe", self.probe_service.check, database.descriptor)

    def teardown(self, handle: ContainerHandle) -> TeardownReport:
        """Stops and removes the container, collecting errors instead of raising them."""
        report = TeardownReport(container_id=handle.container_id)
        console.print(f"[dim]Removing container {handle.name}...[/dim]")

        try:
            self._run_step(
                "stop_container",
                self.docker_runtime_service.stop_container,
                handle,
                self.config.stop_timeout,
                self._run_cmd,
            )
        except TeardownError as exc:
            report.errors.append(str(exc))
            logger.warning(str(exc))
        else:
            self._record_state(handle)

        if not handle.removed:
            try:
                self._run_step(
                    "remove_container",
                    self.docker_runtime_service.remove_container,
                    handle,
                    self._run_cmd,
                    force=handle.state != STATE_STOPPED,
                )
            except TeardownError as exc:
                report.errors.append(str(exc))
                logger.warning(str(exc))
            else:
                self._record_state(handle)

        self.report_service.record_teardown(report.errors)
        if report.ok:
            logger.info("Container %s removed", handle.name)
        return report

    def decommission(self) -> TeardownReport:
        if self.database is None:
            raise TeardownError("No provisioned database to decommission.")
        return self.teardown(self.database.handle)

    def __enter__(self) -> ProvisionedDatabase:
        return self.provision()

    def __exit__(self, exc_type, exc, tb):
        if self.database is not None:
            self.decommission()
        return False

    def run(self) -> int:
        exit_code = EXIT_FAILED
        report_status = "failed"
        report_error: Optional[str] = None

        try:
            self.provision()
        except SmokeError as exc:
            console.print(f"[bold red]Provisioning failed:[/bold red] {exc}")
            logger.error(str(exc))
            self.report_service.finalize("failed", error=str(exc))
            return EXIT_FAILED

        try:
            value = self.probe()
            console.print(f"[green]SELECT 1 returned {value}.[/green]")
            exit_code = EXIT_OK
            report_status = "success"
        except SmokeError as exc:
            console.print(f"[bold red]Probe failed:[/bold red] {exc}")
            logger.error(str(exc))
            report_error = str(exc)
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            report_error = str(exc)
        finally:
            teardown_report = self.decommission()

        if not teardown_report.ok:
            console.print(
                f"[bold yellow]Teardown reported {len(teardown_report.errors)} error(s).[/bold yellow]"
            )
            if exit_code == EXIT_OK and self.config.strict_teardown:
                exit_code = EXIT_TEARDOWN_FAILED
                report_status = "teardown_failed"

        self.report_service.finalize(report_status, error=report_error)
        return exit_code

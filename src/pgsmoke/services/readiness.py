"""Readiness polling for freshly started database containers."""

import time
from typing import Optional

from pgsmoke.errors import ProbeError, ProvisioningError
from pgsmoke.errors_catalog import actionable_error
from pgsmoke.models import ConnectionDescriptor


class ReadinessService:
    """Polls the liveness check with exponential backoff until it succeeds."""

    def __init__(self, logger, console, probe_service):
        self.logger = logger
        self.console = console
        self.probe_service = probe_service

    def wait_until_ready(
        self,
        descriptor: ConnectionDescriptor,
        name: str,
        max_attempts: int = 10,
        initial_backoff: float = 0.25,
        max_backoff: float = 4.0,
    ) -> str:
        self.console.print("[yellow]Waiting for database to be ready...[/yellow]")

        delay = initial_backoff
        last_error: Optional[ProbeError] = None

        for attempt in range(1, max(1, max_attempts) + 1):
            try:
                server_version = self.probe_service.ping(descriptor)
            except ProbeError as exc:
                last_error = exc
                if attempt >= max_attempts:
                    break
                self.logger.debug(
                    "Database not ready on attempt %s/%s, retrying in %.2fs: %s",
                    attempt,
                    max_attempts,
                    delay,
                    exc,
                )
                time.sleep(delay)
                delay = min(delay * 2, max_backoff)
                continue

            self.console.print(f"[green]Database is ready (PostgreSQL {server_version}).[/green]")
            self.logger.info("Database ready after %s attempt(s)", attempt)
            return server_version

        raise ProvisioningError(
            actionable_error(
                "database_not_ready",
                attempts=max(1, max_attempts),
                error=last_error,
                name=name,
            )
        )

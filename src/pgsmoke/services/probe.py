"""Connectivity probe against the provisioned PostgreSQL instance."""

import psycopg

from pgsmoke.errors import ProbeError
from pgsmoke.errors_catalog import actionable_error
from pgsmoke.models import ConnectionDescriptor

PING_QUERY = "SHOW server_version"
PROBE_QUERY = "SELECT 1"


class ProbeService:
    """Opens a connection, pings the server and validates `SELECT 1`."""

    def __init__(self, logger, psycopg_module=psycopg, connect_timeout: int = 2):
        self.logger = logger
        self.psycopg = psycopg_module
        self.connect_timeout = connect_timeout

    def connect(self, descriptor: ConnectionDescriptor):
        try:
            return self.psycopg.connect(
                descriptor.dsn,
                connect_timeout=self.connect_timeout,
                autocommit=True,
            )
        except self.psycopg.Error as exc:
            raise ProbeError(
                actionable_error(
                    "probe_connect_failed",
                    host=descriptor.host,
                    port=descriptor.port,
                    error=str(exc).strip(),
                )
            ) from exc

    def _fetch(self, conn, query: str):
        try:
            return conn.execute(query).fetchall()
        except self.psycopg.Error as exc:
            raise ProbeError(
                actionable_error("probe_query_failed", query=query, error=str(exc).strip())
            ) from exc

    def ping(self, descriptor: ConnectionDescriptor) -> str:
        with self.connect(descriptor) as conn:
            return self._ping(conn)

    def _ping(self, conn) -> str:
        rows = self._fetch(conn, PING_QUERY)
        if not rows or not rows[0]:
            raise ProbeError("Liveness check returned no server version.")
        return str(rows[0][0])

    def check(self, descriptor: ConnectionDescriptor) -> int:
        """Connects, pings and runs `SELECT 1`; returns the scanned value."""
        with self.connect(descriptor) as conn:
            server_version = self._ping(conn)
            self.logger.debug("Connected to PostgreSQL %s", server_version)
            rows = self._fetch(conn, PROBE_QUERY)

        if len(rows) != 1 or len(rows[0]) != 1 or rows[0][0] != 1:
            raise ProbeError(actionable_error("probe_value_mismatch", rows=rows))

        self.logger.info("Probe `%s` returned %s", PROBE_QUERY, rows[0][0])
        return rows[0][0]

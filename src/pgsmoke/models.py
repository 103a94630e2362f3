"""Shared domain models for pgsmoke."""

from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote

from .constants import (
    DEFAULT_BIND_HOST,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_HOST,
    DEFAULT_LANG,
    DEFAULT_POSTGRES_DB,
    DEFAULT_POSTGRES_PASSWORD,
    DEFAULT_POSTGRES_USER,
    DEFAULT_PULL_TIMEOUT,
    DEFAULT_READY_ATTEMPTS,
    DEFAULT_READY_BACKOFF,
    DEFAULT_READY_MAX_BACKOFF,
    DEFAULT_STOP_TIMEOUT,
    DEFAULT_TIMEZONE,
    PULL_ALWAYS,
)

STATE_CREATED = "created"
STATE_STARTED = "started"
STATE_STOPPED = "stopped"
STATE_REMOVED = "removed"


def format_host(host: str) -> str:
    """Brackets IPv6 literals so they can be followed by `:port`."""
    if ":" in host and not host.startswith("["):
        return f"[{host}]"
    return host


@dataclass(frozen=True)
class HarnessConfig:
    """Settings for one provision/probe/teardown run."""

    image: str
    app_name: Optional[str] = None
    pull_policy: str = PULL_ALWAYS
    host: str = DEFAULT_HOST
    bind_host: str = DEFAULT_BIND_HOST
    platform: Optional[str] = None
    postgres_user: str = DEFAULT_POSTGRES_USER
    postgres_password: str = DEFAULT_POSTGRES_PASSWORD
    postgres_db: str = DEFAULT_POSTGRES_DB
    timezone: str = DEFAULT_TIMEZONE
    lang: str = DEFAULT_LANG
    stop_timeout: int = DEFAULT_STOP_TIMEOUT
    ready_attempts: int = DEFAULT_READY_ATTEMPTS
    ready_backoff: float = DEFAULT_READY_BACKOFF
    ready_max_backoff: float = DEFAULT_READY_MAX_BACKOFF
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    pull_timeout: float = DEFAULT_PULL_TIMEOUT
    strict_teardown: bool = False
    report_file: Optional[str] = None


@dataclass(frozen=True)
class ConnectionDescriptor:
    user: str
    password: str
    host: str
    port: int
    database: str
    sslmode: str = "disable"

    @property
    def dsn(self) -> str:
        credentials = f"{quote(self.user, safe='')}:{quote(self.password, safe='')}"
        return (
            f"postgres://{credentials}@{format_host(self.host)}:{self.port}/"
            f"{quote(self.database, safe='')}?sslmode={self.sslmode}"
        )

    def __str__(self) -> str:
        return self.dsn


@dataclass
class ContainerHandle:
    """Identifier of a container owned by this process, with its lifecycle state."""

    container_id: str
    name: str
    host_port: int
    state: str = STATE_CREATED

    @property
    def removed(self) -> bool:
        return self.state == STATE_REMOVED


@dataclass(frozen=True)
class ProvisionedDatabase:
    handle: ContainerHandle
    descriptor: ConnectionDescriptor
    server_version: Optional[str] = None

    @property
    def dsn(self) -> str:
        return self.descriptor.dsn


@dataclass
class TeardownReport:
    container_id: str
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

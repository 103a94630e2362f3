"""pytest plugin providing one disposable PostgreSQL container per test session.

Enable it from a conftest with ``pytest_plugins = ["pgsmoke.pytest_plugin"]``.
Tests marked ``pgsmoke`` are skipped unless ``--pgsmoke`` is given or
``PGSMOKE_INTEGRATION`` is truthy, so a plain ``pytest`` run never touches Docker.
"""

import logging
import os
from typing import List, Mapping

import pytest

from .constants import INTEGRATION_ENV
from .core import PostgresHarness
from .errors import SmokeError
from .models import TeardownReport
from .services.config_loader import ConfigLoader, parse_bool

logger = logging.getLogger("pgsmoke")

MARKER = "pgsmoke"
TEARDOWN_REPORTS = pytest.StashKey[List[TeardownReport]]()


def pytest_addoption(parser):
    group = parser.getgroup("pgsmoke")
    group.addoption(
        "--pgsmoke",
        action="store_true",
        default=False,
        help="run tests marked 'pgsmoke' against a disposable PostgreSQL container",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", f"{MARKER}: test needs the disposable PostgreSQL container"
    )
    config.stash[TEARDOWN_REPORTS] = []


def integration_enabled(config, environ: Mapping[str, str] = os.environ) -> bool:
    if config.getoption("--pgsmoke"):
        return True
    try:
        return parse_bool(environ.get(INTEGRATION_ENV, ""))
    except ValueError:
        return False


def pytest_collection_modifyitems(config, items):
    if integration_enabled(config):
        return

    skip = pytest.mark.skip(reason=f"needs --pgsmoke or {INTEGRATION_ENV}=1")
    for item in items:
        if MARKER in item.keywords:
            item.add_marker(skip)


def provision_or_exit(environ: Mapping[str, str], harness_factory=PostgresHarness) -> PostgresHarness:
    """Provisions the session container or aborts the whole pytest run."""
    try:
        harness = harness_factory(ConfigLoader().load(environ))
        harness.provision()
    except SmokeError as exc:
        logger.critical("pgsmoke setup failed: %s", exc)
        pytest.exit(f"pgsmoke setup failed: {exc}", returncode=pytest.ExitCode.INTERNAL_ERROR)
    return harness


def record_teardown(config, report: TeardownReport):
    if report.ok:
        return
    for error in report.errors:
        logger.warning("pgsmoke teardown error: %s", error)
    config.stash[TEARDOWN_REPORTS].append(report)


@pytest.fixture(scope="session")
def pgsmoke_harness(request):
    harness = provision_or_exit(os.environ)
    yield harness
    record_teardown(request.config, harness.decommission())


@pytest.fixture(scope="session")
def pgsmoke_database(pgsmoke_harness):
    return pgsmoke_harness.database


@pytest.fixture(scope="session")
def pgsmoke_dsn(pgsmoke_database):
    return pgsmoke_database.dsn


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    reports = config.stash.get(TEARDOWN_REPORTS, [])
    if not reports:
        return

    terminalreporter.section("pgsmoke teardown errors", yellow=True)
    for report in reports:
        for error in report.errors:
            terminalreporter.write_line(f"{report.container_id[:12]}: {error}", yellow=True)

import logging
import os

import click
from rich.logging import RichHandler

from .constants import PULL_POLICIES
from .core import PostgresHarness
from .errors import SmokeError
from .services.config_loader import ConfigLoader

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option("--image", required=False, help="PostgreSQL image to run (env: POSTGRES_IMAGE)")
@click.option("--app-name", required=False, help="Container name to assign (env: APP_NAME)")
@click.option(
    "--pull-policy",
    required=False,
    type=click.Choice(PULL_POLICIES),
    help="When to pull the image: always (default), missing, or never.",
)
@click.option("--host", required=False, help="Host used in the connection string (default: localhost)")
@click.option("--platform", required=False, help="Container platform, e.g. linux/amd64")
@click.option(
    "--ready-attempts",
    required=False,
    type=int,
    default=None,
    help="Number of readiness checks before giving up (default: 10).",
)
@click.option(
    "--stop-timeout",
    required=False,
    type=int,
    default=None,
    help="Seconds docker waits for the container to stop (default: 1).",
)
@click.option(
    "--command-timeout",
    required=False,
    type=float,
    default=None,
    help="Seconds any single docker command may run (default: 60).",
)
@click.option(
    "--strict-teardown/--no-strict-teardown",
    default=None,
    help="Exit with code 2 when the probe passed but teardown failed (env: PGSMOKE_STRICT_TEARDOWN).",
)
@click.option("--report-file", type=click.Path(), help="Write a JSON run report to this path")
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
def main(
    image,
    app_name,
    pull_policy,
    host,
    platform,
    ready_attempts,
    stop_timeout,
    command_timeout,
    strict_teardown,
    report_file,
    verbose,
    log_file,
):
    """Provision a disposable PostgreSQL container, run SELECT 1, and remove it."""
    logger = logging.getLogger("pgsmoke")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    overrides = {
        "image": image,
        "app_name": app_name,
        "pull_policy": pull_policy,
        "host": host,
        "platform": platform,
        "ready_attempts": ready_attempts,
        "stop_timeout": stop_timeout,
        "command_timeout": command_timeout,
        "strict_teardown": strict_teardown,
        "report_file": report_file,
    }

    try:
        config = ConfigLoader().load(os.environ, overrides=overrides)
        harness = PostgresHarness(config)
    except SmokeError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(harness.run())


if __name__ == "__main__":
    main()

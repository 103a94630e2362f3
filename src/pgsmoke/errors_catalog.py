"""Actionable error catalog for pgsmoke."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "missing_image": {
        "what": "No PostgreSQL image configured.",
        "next": "Set `POSTGRES_IMAGE` (for example `postgres:15`) or pass `--image`.",
    },
    "docker_unavailable": {
        "what": "Docker is not reachable: {error}",
        "next": "Start the Docker daemon and check that the current user may use it.",
    },
    "image_not_present": {
        "what": "Image {image} is not present locally and the pull policy is `never`.",
        "next": "Pull the image manually or set `PGSMOKE_PULL_POLICY=missing`.",
    },
    "image_pull_failed": {
        "what": "Could not pull image {image}: {error}",
        "next": "Check the image reference and registry access, then retry.",
    },
    "port_reservation_failed": {
        "what": "Could not reserve a free port on {host}: {error}",
        "next": "Check local network permissions and available ephemeral ports.",
    },
    "container_create_failed": {
        "what": "Could not create container {name}: {error}",
        "next": "Remove any stale container with the same name (`docker rm -f {name}`).",
    },
    "container_start_failed": {
        "what": "Could not start container {name}: {error}",
        "next": "Another process may have taken port {port}; rerun to pick a new port.",
    },
    "port_binding_mismatch": {
        "what": "Container {name} published port {actual} but {expected} was reserved.",
        "next": "Inspect `docker port {name}` and check for conflicting port bindings.",
    },
    "database_not_ready": {
        "what": "Database did not accept connections after {attempts} attempt(s): {error}",
        "next": "Raise `PGSMOKE_READY_ATTEMPTS` or inspect `docker logs {name}`.",
    },
    "probe_connect_failed": {
        "what": "Could not connect to {host}:{port}: {error}",
        "next": "Check that the container is running and the port is reachable.",
    },
    "probe_query_failed": {
        "what": "Query `{query}` failed: {error}",
        "next": "Inspect the container logs for server errors.",
    },
    "probe_value_mismatch": {
        "what": "`SELECT 1` returned {rows} instead of a single row containing 1.",
        "next": "Check that the descriptor points at the provisioned container.",
    },
    "container_already_removed": {
        "what": "Container {name} was already removed.",
        "next": "Provision a new container; handles cannot be reused after removal.",
    },
}


def actionable_error(code: str, **kwargs: object) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"

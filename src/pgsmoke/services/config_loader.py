"""Environment configuration loader for pgsmoke."""

from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from pgsmoke.constants import (
    APP_NAME_ENV,
    ENV_PREFIX,
    INTEGRATION_ENV,
    POSTGRES_IMAGE_ENV,
    PULL_POLICIES,
)
from pgsmoke.errors import SmokeError
from pgsmoke.errors_catalog import actionable_error
from pgsmoke.models import HarnessConfig

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"expected a boolean, got '{raw}'")


def resolve_option(cli_value, config: Mapping[str, Any], key: str, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


class ConfigLoader:
    """Builds a HarnessConfig from environment variables and explicit overrides."""

    ENVIRONMENT_KEYS: Dict[str, Tuple[str, Callable[[str], Any]]] = {
        POSTGRES_IMAGE_ENV: ("image", str.strip),
        APP_NAME_ENV: ("app_name", str.strip),
        "PGSMOKE_PULL_POLICY": ("pull_policy", lambda raw: raw.strip().lower()),
        "PGSMOKE_HOST": ("host", str.strip),
        "PGSMOKE_BIND_HOST": ("bind_host", str.strip),
        "PGSMOKE_PLATFORM": ("platform", str.strip),
        "PGSMOKE_LANG": ("lang", str.strip),
        "PGSMOKE_READY_ATTEMPTS": ("ready_attempts", int),
        "PGSMOKE_READY_BACKOFF": ("ready_backoff", float),
        "PGSMOKE_READY_MAX_BACKOFF": ("ready_max_backoff", float),
        "PGSMOKE_CONNECT_TIMEOUT": ("connect_timeout", int),
        "PGSMOKE_STOP_TIMEOUT": ("stop_timeout", int),
        "PGSMOKE_COMMAND_TIMEOUT": ("command_timeout", float),
        "PGSMOKE_PULL_TIMEOUT": ("pull_timeout", float),
        "PGSMOKE_STRICT_TEARDOWN": ("strict_teardown", parse_bool),
        "PGSMOKE_REPORT_FILE": ("report_file", str.strip),
    }

    # Read by the pytest plugin rather than by the harness itself.
    PASSTHROUGH_KEYS = {INTEGRATION_ENV}

    def read(self, environ: Mapping[str, str]) -> Dict[str, Any]:
        unknown = sorted(
            key
            for key in environ
            if key.startswith(ENV_PREFIX)
            and key not in self.ENVIRONMENT_KEYS
            and key not in self.PASSTHROUGH_KEYS
        )
        if unknown:
            raise SmokeError(f"Unknown configuration keys: {', '.join(unknown)}")

        values: Dict[str, Any] = {}
        for env_key, (field_name, parser) in self.ENVIRONMENT_KEYS.items():
            raw = environ.get(env_key)
            if raw is None:
                continue
            try:
                parsed = parser(raw)
            except ValueError as exc:
                raise SmokeError(f"Invalid value for {env_key}: {exc}") from exc
            if parsed == "":
                continue
            values[field_name] = parsed
        return values

    def build(
        self, values: Mapping[str, Any], overrides: Optional[Mapping[str, Any]] = None
    ) -> HarnessConfig:
        overrides = overrides or {}
        merged = {
            key: resolve_option(overrides.get(key), values, key)
            for key in set(values) | set(overrides)
        }
        merged = {key: value for key, value in merged.items() if value is not None}

        if not merged.get("image"):
            raise SmokeError(actionable_error("missing_image"))

        pull_policy = merged.get("pull_policy")
        if pull_policy is not None and pull_policy not in PULL_POLICIES:
            raise SmokeError(
                f"Invalid pull policy '{pull_policy}'. Supported: {', '.join(PULL_POLICIES)}"
            )

        for key in ("ready_attempts", "connect_timeout"):
            if key in merged and merged[key] < 1:
                raise SmokeError(f"{key} must be at least 1.")
        for key in ("ready_backoff", "ready_max_backoff", "stop_timeout"):
            if key in merged and merged[key] < 0:
                raise SmokeError(f"{key} must not be negative.")
        for key in ("command_timeout", "pull_timeout"):
            if key in merged and merged[key] <= 0:
                raise SmokeError(f"{key} must be greater than 0.")

        try:
            return HarnessConfig(**merged)
        except TypeError as exc:
            raise SmokeError(f"Invalid configuration: {exc}") from exc

    def load(
        self, environ: Mapping[str, str], overrides: Optional[Mapping[str, Any]] = None
    ) -> HarnessConfig:
        return self.build(self.read(environ), overrides)

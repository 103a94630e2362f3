"""Fixed values shared across pgsmoke."""

POSTGRES_IMAGE_ENV = "POSTGRES_IMAGE"
APP_NAME_ENV = "APP_NAME"
ENV_PREFIX = "PGSMOKE_"
INTEGRATION_ENV = "PGSMOKE_INTEGRATION"

CONTAINER_PORT = "5432/tcp"
CONTAINER_NAME_PREFIX = "pgsmoke"

PULL_ALWAYS = "always"
PULL_MISSING = "missing"
PULL_NEVER = "never"
PULL_POLICIES = (PULL_ALWAYS, PULL_MISSING, PULL_NEVER)

DEFAULT_HOST = "localhost"
DEFAULT_BIND_HOST = "0.0.0.0"
RESERVATION_HOST = "127.0.0.1"

DEFAULT_POSTGRES_USER = "postgres"
DEFAULT_POSTGRES_PASSWORD = "postgres"
DEFAULT_POSTGRES_DB = "postgres"
DEFAULT_TIMEZONE = "UTC"
DEFAULT_LANG = "en_US.utf8"
INITDB_ARGS = "--encoding=UTF-8"
HOST_AUTH_METHOD = "trust"

DEFAULT_STOP_TIMEOUT = 1
DEFAULT_READY_ATTEMPTS = 10
DEFAULT_READY_BACKOFF = 0.25
DEFAULT_READY_MAX_BACKOFF = 4.0
DEFAULT_CONNECT_TIMEOUT = 2
DEFAULT_COMMAND_TIMEOUT = 60
DEFAULT_PULL_TIMEOUT = 600

# Extra wall-clock allowance for the docker CLI on top of `docker stop -t`.
STOP_COMMAND_GRACE_SECONDS = 10

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_TEARDOWN_FAILED = 2

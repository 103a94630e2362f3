import pytest

from pgsmoke.errors import SmokeError
from pgsmoke.services.config_loader import ConfigLoader


def test_config_loader_reads_image_and_app_name():
    config = ConfigLoader().load({"POSTGRES_IMAGE": "postgres:15", "APP_NAME": "test-app"})

    assert config.image == "postgres:15"
    assert config.app_name == "test-app"
    assert config.pull_policy == "always"
    assert config.host == "localhost"
    assert config.stop_timeout == 1


def test_config_loader_parses_typed_values():
    config = ConfigLoader().load(
        {
            "POSTGRES_IMAGE": "postgres:15",
            "PGSMOKE_PULL_POLICY": "Missing",
            "PGSMOKE_READY_ATTEMPTS": "4",
            "PGSMOKE_READY_BACKOFF": "0.5",
            "PGSMOKE_STRICT_TEARDOWN": "yes",
        }
    )

    assert config.pull_policy == "missing"
    assert config.ready_attempts == 4
    assert config.ready_backoff == 0.5
    assert config.strict_teardown is True


def test_config_loader_requires_image():
    with pytest.raises(SmokeError, match="POSTGRES_IMAGE"):
        ConfigLoader().load({"APP_NAME": "test-app"})


def test_config_loader_treats_empty_app_name_as_unset():
    config = ConfigLoader().load({"POSTGRES_IMAGE": "postgres:15", "APP_NAME": ""})

    assert config.app_name is None


def test_config_loader_rejects_unknown_keys():
    with pytest.raises(SmokeError, match="Unknown configuration keys: PGSMOKE_TYPO"):
        ConfigLoader().load({"POSTGRES_IMAGE": "postgres:15", "PGSMOKE_TYPO": "1"})


def test_config_loader_ignores_integration_switch():
    config = ConfigLoader().load({"POSTGRES_IMAGE": "postgres:15", "PGSMOKE_INTEGRATION": "1"})

    assert config.image == "postgres:15"


def test_config_loader_rejects_bad_numbers_and_policies():
    loader = ConfigLoader()

    with pytest.raises(SmokeError, match="PGSMOKE_READY_ATTEMPTS"):
        loader.load({"POSTGRES_IMAGE": "postgres:15", "PGSMOKE_READY_ATTEMPTS": "many"})
    with pytest.raises(SmokeError, match="Invalid pull policy"):
        loader.load({"POSTGRES_IMAGE": "postgres:15", "PGSMOKE_PULL_POLICY": "sometimes"})
    with pytest.raises(SmokeError, match="ready_attempts must be at least 1"):
        loader.load({"POSTGRES_IMAGE": "postgres:15", "PGSMOKE_READY_ATTEMPTS": "0"})


def test_overrides_take_precedence_over_environment():
    config = ConfigLoader().load(
        {"POSTGRES_IMAGE": "postgres:15", "APP_NAME": "from-env"},
        overrides={"image": "postgres:16", "app_name": None, "stop_timeout": 5},
    )

    assert config.image == "postgres:16"
    assert config.app_name == "from-env"
    assert config.stop_timeout == 5


def test_config_loader_has_command_timeouts_by_default():
    config = ConfigLoader().load({"POSTGRES_IMAGE": "postgres:15"})

    assert config.command_timeout == 60
    assert config.pull_timeout == 600


def test_config_loader_reads_and_validates_command_timeouts():
    loader = ConfigLoader()

    config = loader.load(
        {
            "POSTGRES_IMAGE": "postgres:15",
            "PGSMOKE_COMMAND_TIMEOUT": "15",
            "PGSMOKE_PULL_TIMEOUT": "120.5",
        }
    )

    assert config.command_timeout == 15.0
    assert config.pull_timeout == 120.5
    with pytest.raises(SmokeError, match="command_timeout must be greater than 0"):
        loader.load({"POSTGRES_IMAGE": "postgres:15", "PGSMOKE_COMMAND_TIMEOUT": "0"})
    with pytest.raises(SmokeError, match="pull_timeout must be greater than 0"):
        loader.load({"POSTGRES_IMAGE": "postgres:15", "PGSMOKE_PULL_TIMEOUT": "-1"})

import pytest
from sanic.log import logger

from ci_plumber.config import Config


@pytest.fixture
def config():
    config = Config(
        OVERRIDE_LOGGING="DEBUG",
        DECORATION_VALIDATOR="permissive",
        DEFAULT_TIMEOUT="2h",
        DEFAULT_GRACE_PERIOD="15s",
        DEFAULT_GCS_CREDENTIALS_SECRET="default-gcs-credentials",
        DEFAULT_SSH_KEY_SECRETS=["default-ssh-secret"],
        DEFAULT_SKIP_CLONING=None,
        DEFAULT_COOKIEFILE_SECRET="",
    )

    logger.setLevel(config.OVERRIDE_LOGGING)

    return config


@pytest.fixture
def strict_config(config):
    return config.model_copy(update={"DECORATION_VALIDATOR": "strict"})

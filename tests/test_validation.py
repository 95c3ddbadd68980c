import pytest

from ci_plumber.exceptions import InvalidDecorationConfig
from ci_plumber.models import DecorationConfig
from ci_plumber.validation import (
    get_validator,
    permissive_validator,
    strict_validator,
    validate_decoration,
)


def test_empty_config_is_valid():
    assert validate_decoration(DecorationConfig()) is None


def test_permissive_is_the_default():
    config = DecorationConfig(
        timeout="1m",
        grace_period="1h",
        ssh_key_secrets=[""],
        ssh_host_fingerprints=["  "],
    )

    validate_decoration(config)
    validate_decoration(config, permissive_validator)


def test_strict_accepts_sensible_config():
    config = DecorationConfig(
        timeout="2h",
        grace_period="15s",
        gcs_credentials_secret="gcs",
        ssh_key_secrets=["ssh-secret"],
        ssh_host_fingerprints=["github.com ssh-rsa AAAAB3NzaC1yc2E"],
    )

    validate_decoration(config, strict_validator)


def test_strict_accepts_empty_config():
    validate_decoration(DecorationConfig(), strict_validator)


@pytest.mark.parametrize(
    "fields, message",
    [
        ({"timeout": "-1m"}, "timeout must not be negative"),
        ({"grace_period": "-1s"}, "grace_period must not be negative"),
        ({"timeout": "1m", "grace_period": "1h"}, "must be shorter than timeout"),
        ({"timeout": "1m", "grace_period": "1m"}, "must be shorter than timeout"),
        ({"ssh_key_secrets": ["ok", " "]}, "blank secret name"),
        ({"ssh_host_fingerprints": [""]}, "blank entry"),
    ],
)
def test_strict_rejects(fields, message):
    with pytest.raises(InvalidDecorationConfig, match=message):
        validate_decoration(DecorationConfig(**fields), strict_validator)


def test_custom_validator_hook():
    seen = []

    def record(config):
        seen.append(config)

    config = DecorationConfig(timeout="1h")
    validate_decoration(config, record)

    assert seen == [config]


def test_get_validator():
    assert get_validator("permissive") is permissive_validator
    assert get_validator("strict") is strict_validator

    with pytest.raises(ValueError):
        get_validator("paranoid")  # type: ignore

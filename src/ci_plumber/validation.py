"""
Validation hooks for DecorationConfig.

``validate_decoration`` runs a validator against a config and raises on the
first problem found. The default validator is deliberately permissive: it
accepts every config, including an entirely empty one, and leaves checking of
secret names, fingerprints and timeouts to the consumers that use them.
Stricter checks are opt-in through ``strict_validator`` or any callable
matching ``DecorationValidator``.
"""

from typing import Callable, Literal

from sanic.log import logger

from ci_plumber.exceptions import InvalidDecorationConfig
from ci_plumber.models import DecorationConfig

DecorationValidator = Callable[[DecorationConfig], None]


def permissive_validator(config: DecorationConfig) -> None:
    pass


def strict_validator(config: DecorationConfig) -> None:
    if config.timeout is not None and config.timeout.nanoseconds < 0:
        raise InvalidDecorationConfig(f"timeout must not be negative, got {config.timeout}")

    if config.grace_period is not None and config.grace_period.nanoseconds < 0:
        raise InvalidDecorationConfig(
            f"grace_period must not be negative, got {config.grace_period}"
        )

    if (
        config.timeout is not None
        and config.grace_period is not None
        and config.grace_period >= config.timeout
    ):
        raise InvalidDecorationConfig(
            f"grace_period {config.grace_period} must be shorter than timeout {config.timeout}"
        )

    for secret in config.ssh_key_secrets:
        if not secret.strip():
            raise InvalidDecorationConfig("ssh_key_secrets contains a blank secret name")

    for fingerprint in config.ssh_host_fingerprints:
        if not fingerprint.strip():
            raise InvalidDecorationConfig("ssh_host_fingerprints contains a blank entry")


VALIDATORS: dict[str, DecorationValidator] = {
    "permissive": permissive_validator,
    "strict": strict_validator,
}


def get_validator(name: Literal["permissive", "strict"]) -> DecorationValidator:
    try:
        return VALIDATORS[name]
    except KeyError:
        raise ValueError(f"Unknown decoration validator {name}")


def validate_decoration(
    config: DecorationConfig, validator: DecorationValidator | None = None
) -> None:
    """
    Check that a decoration config is usable.

    Args:
        config: The config to check
        validator: The check to run, ``permissive_validator`` if not given

    Raises:
        InvalidDecorationConfig: If the validator rejects the config
    """
    if validator is None:
        validator = permissive_validator

    logger.debug(
        "Validating decoration config with %s",
        getattr(validator, "__name__", type(validator).__name__),
    )
    validator(config)

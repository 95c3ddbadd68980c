import re
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings
from sanic.log import logger

from ci_plumber.duration import Duration
from ci_plumber.exceptions import MalformedDuration
from ci_plumber.models import DecorationConfig

_INTEGER = re.compile(r"[-+]?[0-9]+")


class Config(BaseSettings):
    OVERRIDE_LOGGING: Literal[
        "CRITICAL",
        "FATAL",
        "ERROR",
        "WARNING",
        "WARN",
        "INFO",
        "DEBUG",
        "NOTSET",
    ] = "INFO"

    DECORATION_VALIDATOR: Literal["permissive", "strict"] = "permissive"

    DEFAULT_TIMEOUT: Duration | None = None
    DEFAULT_GRACE_PERIOD: Duration | None = None
    DEFAULT_GCS_CREDENTIALS_SECRET: str = ""
    DEFAULT_SSH_KEY_SECRETS: list[str] = []
    DEFAULT_SSH_HOST_FINGERPRINTS: list[str] = []
    DEFAULT_SKIP_CLONING: bool | None = None
    DEFAULT_COOKIEFILE_SECRET: str = ""

    @field_validator("DEFAULT_TIMEOUT", "DEFAULT_GRACE_PERIOD", mode="before")
    @classmethod
    def integer_nanoseconds(cls, value):
        """Environment values are strings; read digit-only ones as nanoseconds."""
        if isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
            text = value.strip()
            digits = text.lstrip("+-").lstrip("0")
            if len(digits) > 19:
                raise MalformedDuration(value, "integer nanoseconds out of range")
            return -int(digits or "0") if text.startswith("-") else int(digits or "0")
        return value

    def default_decoration(self) -> DecorationConfig:
        """Decoration applied to fields a pipeline leaves unset."""
        return DecorationConfig(
            timeout=self.DEFAULT_TIMEOUT,
            grace_period=self.DEFAULT_GRACE_PERIOD,
            gcs_credentials_secret=self.DEFAULT_GCS_CREDENTIALS_SECRET,
            ssh_key_secrets=tuple(self.DEFAULT_SSH_KEY_SECRETS),
            ssh_host_fingerprints=tuple(self.DEFAULT_SSH_HOST_FINGERPRINTS),
            skip_cloning=self.DEFAULT_SKIP_CLONING,
            cookiefile_secret=self.DEFAULT_COOKIEFILE_SECRET,
        )

    def print_config(self):
        """Print configuration values"""
        logger.info("=== Pipeline Options Configuration ===")
        for field_name, field_value in self.model_dump(mode="json").items():
            logger.info(f"{field_name}: {field_value}")
        logger.info("======================================")


def load_config(**overrides) -> Config:
    config = Config(**overrides)
    logger.setLevel(config.OVERRIDE_LOGGING)
    return config

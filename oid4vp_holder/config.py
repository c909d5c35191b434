"""Retrieve configuration values."""

from dataclasses import dataclass
from os import getenv

from acapy_agent.config.base import BaseSettings
from acapy_agent.config.settings import Settings

DEFAULT_RECORD_TYPE = "oid4vp_held_credential"


class ConfigError(ValueError):
    """Base class for configuration errors."""

    def __init__(self, var: str, env: str):
        """Initialize a ConfigError."""
        super().__init__(
            f"Invalid {var} specified for OID4VP holder; use either "
            f"oid4vp_holder.{var} plugin config value or environment variable {env}"
        )


@dataclass
class Config:
    """Configuration for the OID4VP holder plugin."""

    record_type: str = DEFAULT_RECORD_TYPE

    @classmethod
    def from_settings(cls, settings: BaseSettings) -> "Config":
        """Retrieve configuration from context."""
        assert isinstance(settings, Settings)
        plugin_settings = settings.for_plugin("oid4vp_holder")
        record_type = plugin_settings.get("record_type")
        if record_type is None:
            record_type = getenv("OID4VP_HOLDER_RECORD_TYPE", DEFAULT_RECORD_TYPE)

        if not isinstance(record_type, str) or not record_type.strip():
            raise ConfigError("record_type", "OID4VP_HOLDER_RECORD_TYPE")

        return cls(record_type=record_type.strip())

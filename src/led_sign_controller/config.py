"""Configuration management using pydantic-settings."""

from pathlib import Path

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from led_sign_controller.exceptions import ConfigurationError
from led_sign_controller.models import DeviceConnection


class SignConfig(BaseSettings):
    """Connection settings for the sign."""

    address: str = Field(default="", description="Host name or IP address of the sign")
    id: str | None = Field(default=None, description="Logical sign identifier for logs (defaults to address)")
    timeout_ms: int = Field(default=5000, gt=0, description="Timeout for every remote call phase, in milliseconds")

    def to_connection(self) -> DeviceConnection:
        """Build the connection descriptor for this sign.

        Raises:
            ConfigurationError: If the address is missing or invalid.
        """
        try:
            return DeviceConnection(address=self.address, id=self.id or "", timeout_ms=self.timeout_ms)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid sign configuration: {e}") from e


class LayoutConfig(BaseSettings):
    """Names of the layouts provisioned on the sign."""

    two_departures: str = Field(default="TwoLineDepartures", description="Layout showing two departures")
    one_message: str = Field(default="OneLineMessage", description="Layout showing a message and a departure")
    two_messages: str = Field(default="TwoLineMessage", description="Layout showing two message lines")


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        extra="ignore",
    )

    sign: SignConfig = Field(default_factory=SignConfig)
    layouts: LayoutConfig = Field(default_factory=LayoutConfig)
    # No network access when set, calls are answered by an in-memory sign
    mock: bool = Field(default=False, description="Use a mock sign instead of the SOAP interface")

    config_file: Path | None = Field(default=None, description="Path to YAML configuration file")

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "Settings":
        """Load settings from a YAML configuration file.

        Args:
            yaml_path: Path to the YAML configuration file.

        Returns:
            Settings instance with values from YAML merged with env vars.
        """
        with yaml_path.open() as f:
            yaml_config = yaml.safe_load(f) or {}

        sign_config = SignConfig(**yaml_config.get("sign", {}))
        layout_config = LayoutConfig(**yaml_config.get("layouts", {}))

        return cls(
            sign=sign_config,
            layouts=layout_config,
            mock=yaml_config.get("mock", False),
            config_file=yaml_path,
        )


def load_settings(config_path: Path | None = None) -> Settings:
    """Load application settings from config file and environment variables.

    Args:
        config_path: Optional path to YAML configuration file.

    Returns:
        Settings instance with merged configuration.
    """
    if config_path and config_path.exists():
        return Settings.from_yaml(config_path)
    return Settings()

"""Pydantic models for sign content and device state."""

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class Departure(BaseModel):
    """A scheduled departure shown in one half of a two-field layout."""

    model_config = ConfigDict(frozen=True)

    route: str = Field(description="Route label, e.g. '22 Illini'")
    time: str = Field(description="Departure time as displayed, e.g. '5 min'")

    def __str__(self) -> str:
        return f"{self.route} in {self.time}"


class DataItem(BaseModel):
    """A named content slot on the sign."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Pre-provisioned data item name")
    value: str = Field(default="", description="Value to display")


class Layout(BaseModel):
    """A device-resident layout and whether it is currently shown."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Layout name as provisioned on the sign")
    enabled: bool = Field(default=False, description="Whether the layout is enabled")


class DeviceConnection(BaseModel):
    """Connection descriptor for a single sign.

    Constant for the lifetime of a DeviceClient.
    """

    model_config = ConfigDict(frozen=True)

    address: str = Field(description="Host name or IP address of the sign")
    id: str = Field(default="", validate_default=True, description="Logical identifier used in logs (defaults to address)")
    timeout_ms: int = Field(default=5000, gt=0, description="Timeout applied to every remote call phase")

    @field_validator("address")
    @classmethod
    def _address_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("address must not be blank")
        return value

    @field_validator("id")
    @classmethod
    def _default_id(cls, value: str, info: ValidationInfo) -> str:
        return value.strip() or info.data.get("address", "")

    @property
    def base_url(self) -> str:
        """Root URL of the sign's web server."""
        return f"http://{self.address}"

    @property
    def endpoint(self) -> str:
        """SOAP endpoint of the sign."""
        return f"{self.base_url}/soap1.wsdl"

    @property
    def timeout_seconds(self) -> float:
        """Timeout in seconds, as expected by aiohttp."""
        return self.timeout_ms / 1000

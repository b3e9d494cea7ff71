from pathlib import Path
from typing import Optional, Tuple, Type

import platformdirs
from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from netclock.clock.clock_adjuster import AdjustmentMode
from netclock.constants import DEFAULT_TIMEOUT_S
from netclock.time.rfc868_client import Transport
from netclock.time.time_sources import TimeProtocol

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def default_config_path() -> Path:
    """Location of the optional JSON defaults file (``~/.config/netclock/config.json`` on Linux)."""
    return Path(platformdirs.user_config_dir("netclock", appauthor=False)) / "config.json"


class NetClockSettings(BaseSettings):
    """Resolved configuration for one invocation.

    Precedence: constructor arguments (the CLI), ``NETCLOCK_*`` environment
    variables, the JSON config file, then these defaults.
    """

    model_config = SettingsConfigDict(env_prefix="NETCLOCK_")

    host: str
    port: Optional[int] = Field(default=None, ge=1, le=65535)  # None = protocol default
    timeout: float = Field(default=DEFAULT_TIMEOUT_S, gt=0)

    protocol: TimeProtocol = TimeProtocol.SNTP
    transport: Transport = Transport.TCP  # RFC 868 only, SNTP is always UDP
    mode: AdjustmentMode = AdjustmentMode.STEP

    verbose: int = Field(default=0, ge=0)
    silent: bool = False
    log_level: str = "WARNING"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            JsonConfigSettingsSource(settings_cls, json_file=default_config_path()),
        )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return value

    @model_validator(mode="after")
    def _check_print_and_silent(self) -> "NetClockSettings":
        if self.silent and self.mode is AdjustmentMode.PRINT_ONLY:
            raise ValueError("print-only mode and silent mode are mutually exclusive")
        return self

    @property
    def effective_port(self) -> int:
        return self.port if self.port is not None else self.protocol.default_port

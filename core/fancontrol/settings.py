"""
Fan Control Configuration Settings

Timing windows, fan speeds and device addresses are plain dataclasses handed
to each controller at construction. User-facing settings are loaded from the
add-on options.json, a config.yaml or the environment.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import timedelta

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .models import BlowerMode

logger = logging.getLogger(__name__)

OPTIONS_PATH = "/data/options.json"
DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "..", "..", "config.yaml")


def _camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def _convert_keys(data: dict) -> dict:
    return {_camel_to_snake(k): v for k, v in data.items()}


def _build(cls, data: dict):
    try:
        return cls(**_convert_keys(data))
    except TypeError as e:
        raise ConfigurationError(f"Invalid {cls.__name__} configuration: {e}")


def _require_url(owner: str, url: str):
    if not url or not url.startswith(("http://", "https://")):
        raise ConfigurationError(f"{owner}: invalid url {url!r}")


@dataclass
class DeviceSettings:
    """Address of a single device API endpoint."""

    name: str
    url: str
    timeout: float = 10.0  # seconds; requests has no timeout by default

    def __post_init__(self):
        _require_url(self.name, self.url)
        if self.timeout <= 0:
            raise ConfigurationError(f"{self.name}: timeout must be positive")

    @classmethod
    def from_dict(cls, data: dict) -> "DeviceSettings":
        """Create from dictionary."""
        return _build(cls, data)


@dataclass
class BlowerSettings:
    """Post-heat furnace blower hold."""

    enabled: bool = True
    hold_window_seconds: float = 360
    forced_mode: int = BlowerMode.ON

    def __post_init__(self):
        if self.hold_window_seconds <= 0:
            raise ConfigurationError("blower: hold_window_seconds must be positive")
        if isinstance(self.forced_mode, bool):
            # YAML 1.1 reads an unquoted ON as true
            raise ConfigurationError(f"blower: forced_mode must be a mode name or number, got {self.forced_mode!r}")
        try:
            if isinstance(self.forced_mode, str):
                self.forced_mode = BlowerMode[self.forced_mode.upper()]
            else:
                self.forced_mode = BlowerMode(self.forced_mode)
        except (KeyError, ValueError):
            raise ConfigurationError(f"blower: invalid forced_mode {self.forced_mode!r}")

    @property
    def hold_window(self) -> timedelta:
        return timedelta(seconds=self.hold_window_seconds)

    @classmethod
    def from_dict(cls, data: dict) -> "BlowerSettings":
        """Create from dictionary."""
        return _build(cls, data)


@dataclass
class CeilingFanSettings:
    """A ceiling fan and its debounce windows and target speeds."""

    name: str
    url: str
    on_delay_seconds: float = 60  # warm air takes a while to arrive after the call for heat
    off_delay_seconds: float = 180  # keep circulating while the ducts are still warm
    heat_on_speed: int = 2
    heat_off_speed: int = 1
    timeout: float = 10.0

    def __post_init__(self):
        _require_url(self.name, self.url)
        if self.on_delay_seconds < 0 or self.off_delay_seconds < 0:
            raise ConfigurationError(f"{self.name}: delays cannot be negative")
        if self.heat_on_speed < 0 or self.heat_off_speed < 0:
            raise ConfigurationError(f"{self.name}: fan speeds cannot be negative")
        if self.timeout <= 0:
            raise ConfigurationError(f"{self.name}: timeout must be positive")

    @property
    def on_delay(self) -> timedelta:
        return timedelta(seconds=self.on_delay_seconds)

    @property
    def off_delay(self) -> timedelta:
        return timedelta(seconds=self.off_delay_seconds)

    @classmethod
    def from_dict(cls, data: dict) -> "CeilingFanSettings":
        """Create from dictionary."""
        return _build(cls, data)


@dataclass
class FanControlSettings:
    """Top-level configuration for the control loop."""

    thermostat: DeviceSettings
    ceiling_fans: list[CeilingFanSettings] = field(default_factory=list)
    blower: BlowerSettings = field(default_factory=BlowerSettings)
    poll_interval_seconds: float = 15
    failure_log_interval: int = 6  # only report every Nth consecutive poll failure

    def __post_init__(self):
        if self.poll_interval_seconds <= 0:
            raise ConfigurationError("poll_interval_seconds must be positive")
        if self.failure_log_interval < 1:
            raise ConfigurationError("failure_log_interval must be at least 1")
        names = [fan.name for fan in self.ceiling_fans]
        if len(names) != len(set(names)) or "blower" in names:
            raise ConfigurationError(f"Ceiling fan names must be unique and not 'blower': {names}")

    @property
    def poll_interval(self) -> timedelta:
        return timedelta(seconds=self.poll_interval_seconds)

    @classmethod
    def from_dict(cls, data: dict) -> "FanControlSettings":
        """Create from dictionary.

        Accepts either a thermostat mapping or a bare thermostat URL string.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings must be a mapping, got {data!r}")
        converted = _convert_keys(data)

        thermostat = converted.pop("thermostat", None)
        if thermostat is None:
            raise ConfigurationError("No thermostat configured")
        if isinstance(thermostat, str):
            thermostat = {"name": "thermostat", "url": thermostat}
        elif isinstance(thermostat, dict):
            thermostat = {"name": "thermostat", **thermostat}
        else:
            raise ConfigurationError(
                f"thermostat: expected a URL or a mapping, got {thermostat!r}"
            )
        converted["thermostat"] = DeviceSettings.from_dict(thermostat)

        fans = converted.pop("ceiling_fans", None) or []
        if not isinstance(fans, list):
            raise ConfigurationError(f"ceiling_fans: expected a list, got {fans!r}")
        for i, fan in enumerate(fans):
            if not isinstance(fan, dict):
                raise ConfigurationError(
                    f"ceiling_fans[{i}]: expected a mapping with a url, got {fan!r}"
                )
        converted["ceiling_fans"] = [
            CeilingFanSettings.from_dict({"name": f"ceiling_fan_{i + 1}", **fan})
            for i, fan in enumerate(fans)
        ]

        if "blower" in converted:
            blower = converted["blower"] or {}
            if not isinstance(blower, dict):
                raise ConfigurationError(f"blower: expected a mapping, got {blower!r}")
            converted["blower"] = BlowerSettings.from_dict(blower)

        try:
            return cls(**converted)
        except TypeError as e:
            raise ConfigurationError(f"Invalid FanControlSettings configuration: {e}")


def _settings_from_env() -> dict | None:
    """Build a settings dict from environment variables (.env is honoured)."""
    load_dotenv()

    thermostat_url = os.getenv("THERMOSTAT_URL", "")
    if not thermostat_url:
        return None

    fan_urls = [u.strip() for u in os.getenv("CEILING_FAN_URLS", "").split(",") if u.strip()]
    data = {
        "thermostat": thermostat_url,
        "ceiling_fans": [{"url": url} for url in fan_urls],
    }
    if os.getenv("POLL_INTERVAL"):
        try:
            data["poll_interval_seconds"] = float(os.environ["POLL_INTERVAL"])
        except ValueError:
            raise ConfigurationError(f"Invalid POLL_INTERVAL: {os.environ['POLL_INTERVAL']!r}")
    return data


def load_settings(config_path: str | None = None) -> FanControlSettings:
    """Load settings from the first available source.

    Order: explicit config_path, add-on options.json, config.yaml next to the
    project, then THERMOSTAT_URL / CEILING_FAN_URLS environment variables.

    Raises:
        ConfigurationError: If no source is found or the settings are invalid
    """
    if config_path:
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Config file not found: {config_path}")
        return _load_file(config_path)

    if os.path.exists(OPTIONS_PATH):
        return _load_file(OPTIONS_PATH)

    if os.path.exists(DEFAULT_CONFIG_PATH):
        return _load_file(DEFAULT_CONFIG_PATH)

    data = _settings_from_env()
    if data is None:
        raise ConfigurationError(
            "No configuration found: provide --config, config.yaml or THERMOSTAT_URL"
        )
    logger.info("Loaded settings from environment")
    return FanControlSettings.from_dict(data)


def _load_file(path: str) -> FanControlSettings:
    with open(path) as f:
        if path.endswith(".json"):
            raw = json.load(f)
        else:
            raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path}: expected a mapping at top level")

    # Add-on style files nest everything under "options"
    options = raw.get("options")
    if options is None:
        options = {k: v for k, v in raw.items() if k != "options"}
    settings = FanControlSettings.from_dict(options)
    logger.info(
        f"Loaded settings from {path}: thermostat {settings.thermostat.url}, "
        f"{len(settings.ceiling_fans)} ceiling fan(s)"
    )
    return settings

"""Furnace blower and ceiling fan control package."""

# Define public API
__all__ = [
    "BlowerController",
    "BlowerMode",
    "CeilingFanController",
    "DeviceClient",
    "FanControlService",
    "FanControlSettings",
    "ThermostatMonitor",
    "ThermostatReading",
    "build_service",
    "load_settings",
]

# Import settings
from .settings import FanControlSettings, load_settings

# Import models
from .models import BlowerMode, ThermostatReading

# Import device client
from .device_client import DeviceClient

# Import control loop components
from .blower import BlowerController
from .ceiling_fan import CeilingFanController
from .control_service import FanControlService, build_service
from .thermostat_monitor import ThermostatMonitor

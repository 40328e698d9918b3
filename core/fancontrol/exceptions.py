"""
Fan Control Custom Exceptions

Simple exception hierarchy for error handling.
"""


class FanControlError(Exception):
    """Base exception for fan control."""

    pass


class ConfigurationError(FanControlError):
    """Configuration is invalid."""

    pass


class DeviceConnectionError(FanControlError):
    """Cannot reach a device (connection refused, timeout, DNS failure)."""

    pass


class ThermostatParseError(FanControlError):
    """Thermostat answered but the payload is missing fields or malformed."""

    pass

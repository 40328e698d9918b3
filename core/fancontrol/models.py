"""
Fan Control Data Models

Value objects exchanged between the device client, the thermostat monitor
and the actuator controllers.
"""

import json
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional

from .exceptions import ThermostatParseError

HTTP_OK = 200


class BlowerMode(IntEnum):
    """Furnace blower mode as reported in the thermostat's `fmode` field."""

    AUTO = 0
    CIRCULATE = 1
    ON = 2


@dataclass(frozen=True)
class DeviceResponse:
    """Raw result of one request to a device."""

    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return self.status_code == HTTP_OK

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON
        """
        return json.loads(self.body)


@dataclass(frozen=True)
class DebugResult:
    """Outcome of a diagnostic read against one actuator's device."""

    name: str
    url: str
    status_code: Optional[int] = None
    body: str = ""
    error: Optional[str] = None


def _number(payload: dict, key: str) -> float:
    value = payload.get(key)
    # bool is an int subclass; a boolean here means the payload is not what we expect
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ThermostatParseError(f"Missing or non-numeric field '{key}': {value!r}")
    return value


def _integer(payload: dict, key: str) -> int:
    value = _number(payload, key)
    # State codes are integers on the wire; 1.7 is not a mode
    if not isinstance(value, int):
        raise ThermostatParseError(f"Non-integer field '{key}': {value!r}")
    return value


@dataclass(frozen=True)
class ThermostatReading:
    """Current state of data from the thermostat that we care about."""

    temperature: float
    target_temperature: float
    heat_active: bool
    blower_mode: BlowerMode

    @classmethod
    def from_payload(cls, body: str) -> "ThermostatReading":
        """Parse a thermostat JSON body.

        Args:
            body: Raw response body, e.g. '{"temp": 68.5, "t_heat": 70.0, "tstate": 1, "fmode": 0}'

        Returns:
            Parsed reading

        Raises:
            ThermostatParseError: If the body is empty, not a JSON object, or
                any of temp/t_heat/tstate/fmode is missing or malformed
        """
        if not body:
            raise ThermostatParseError("Empty thermostat data returned")

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise ThermostatParseError(f"Error parsing thermostat data: {e}")

        if not isinstance(payload, dict):
            raise ThermostatParseError(f"Thermostat data is not an object: {body}")

        temperature = _number(payload, "temp")
        target_temperature = _number(payload, "t_heat")
        tstate = _integer(payload, "tstate")
        fmode = _integer(payload, "fmode")

        try:
            blower_mode = BlowerMode(fmode)
        except ValueError:
            raise ThermostatParseError(f"Unknown blower mode 'fmode': {fmode!r}")

        return cls(
            temperature=float(temperature),
            target_temperature=float(target_temperature),
            heat_active=tstate == 1,
            blower_mode=blower_mode,
        )

    def __str__(self) -> str:
        return (
            f"Temp: {self.temperature} Target: {self.target_temperature} "
            f"Heat On: {self.heat_active} Blower: {self.blower_mode.name}"
        )

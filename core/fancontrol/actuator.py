"""
Actuator Interface

The control loop drives every actuator through the same small capability
set. There are exactly two implementations: BlowerController and
CeilingFanController.
"""

import logging
import time
from typing import TYPE_CHECKING, Any, Protocol

from .device_client import DeviceClient
from .exceptions import DeviceConnectionError
from .history import HistoryTracker
from .models import DebugResult

if TYPE_CHECKING:
    from .thermostat_monitor import ThermostatMonitor

logger = logging.getLogger(__name__)


class Actuator(Protocol):
    """What the control service needs from an actuator."""

    name: str

    def update(self, monitor: "ThermostatMonitor") -> None:
        """React to the monitor's post-poll state. Never raises on command failure."""
        ...

    def debug(self) -> DebugResult:
        """One raw read of the actuator's device."""
        ...

    def close(self) -> None:
        """Release the device client."""
        ...

    def status(self) -> dict:
        ...


def send_command(
    client: DeviceClient,
    device: str,
    action: str,
    payload: dict[str, Any],
    value: int,
    history: HistoryTracker,
) -> bool:
    """POST a command and report whether the device accepted it.

    Transport errors are logged and reported as a failed command, so the
    caller's state machine simply retries on a later cycle.
    """
    start = time.monotonic()
    try:
        response = client.write(payload)
        success = response.ok
        details = f"{response.status_code} : {'' if success else response.body}"
    except DeviceConnectionError as e:
        success = False
        details = str(e)
    duration_ms = int((time.monotonic() - start) * 1000)

    message = f"{action} {device} ({client.url}) to {value}. {details} ({duration_ms} ms)"
    if success:
        logger.info(message)
    else:
        logger.error(message)

    history.add_control_event(
        device=device,
        action=action,
        details=details,
        value=value,
        success=success,
        duration_ms=duration_ms,
    )
    return success


def debug_read(client: DeviceClient, name: str) -> DebugResult:
    """Read a device once and capture whatever came back."""
    try:
        response = client.read()
    except DeviceConnectionError as e:
        return DebugResult(name=name, url=client.url, error=str(e))
    return DebugResult(
        name=name, url=client.url, status_code=response.status_code, body=response.body
    )

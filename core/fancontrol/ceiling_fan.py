"""
Ceiling Fan Controller

Turns ceiling fans up while the furnace is heating, to push the warm air
down from high ceilings, and back down afterwards. Each change waits out a
debounce delay: warm air takes a while to arrive after the call for heat, and
the ducts stay warm for a while after it ends.
"""

import logging
import threading
from datetime import timedelta
from typing import Optional

from .actuator import debug_read, send_command
from .device_client import DeviceClient
from .exceptions import DeviceConnectionError
from .history import HistoryTracker, history_tracker
from .models import DebugResult
from .thermostat_monitor import ThermostatMonitor

logger = logging.getLogger(__name__)

ARMED = "ARMED"
CONVERGED = "CONVERGED"

# Status query understood by the fan's /mf endpoint
STATUS_QUERY = {"queryDynamicShadowData": 1}


class CeilingFanController:
    """Debounced two-speed control of one ceiling fan."""

    def __init__(
        self,
        client: DeviceClient,
        name: str,
        on_delay: timedelta = timedelta(seconds=60),
        off_delay: timedelta = timedelta(seconds=180),
        heat_on_speed: int = 2,
        heat_off_speed: int = 1,
        history: Optional[HistoryTracker] = None,
    ):
        self.client = client
        self.name = name
        self.on_delay = on_delay
        self.off_delay = off_delay
        self.heat_on_speed = heat_on_speed
        self.heat_off_speed = heat_off_speed
        self.history = history if history is not None else history_tracker

        self.converged = False

        # The web API calls in from its own threads; this keeps every device
        # exchange and state change serialized with the control loop
        self.lock = threading.RLock()

    @property
    def state(self) -> str:
        return CONVERGED if self.converged else ARMED

    def update(self, monitor: ThermostatMonitor) -> None:
        with self.lock:
            if monitor.transitioned:
                # Only arm here; the debounce delay starts now
                self.converged = False
                return

            if self.converged:
                return

            heat_active = monitor.heat_active
            delay = self.on_delay if heat_active else self.off_delay
            if monitor.time_since_transition() > delay:
                speed = self.heat_on_speed if heat_active else self.heat_off_speed
                # A failed command leaves us armed, so it is retried next cycle
                self.converged = self.set_fan_speed(speed)

    def set_fan_speed(self, speed: int) -> bool:
        """Command the fan speed.

        Returns:
            True if the fan accepted the command
        """
        with self.lock:
            return send_command(
                self.client,
                self.name,
                "set_fan_speed",
                {"fanSpeed": speed},
                speed,
                self.history,
            )

    def get_fan_speed(self) -> Optional[int]:
        """Query the fan's current speed.

        Returns:
            Current speed, or None if the fan could not be read
        """
        try:
            with self.lock:
                response = self.client.read()
        except DeviceConnectionError as e:
            logger.warning(f"Failed to query {self.name}: {e}")
            return None

        if not response.ok:
            logger.warning(f"Failed to query {self.name}: {response.status_code}")
            return None

        try:
            speed = response.json()["fanSpeed"]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Cannot read fanSpeed from {self.name}: {e}")
            return None

        if isinstance(speed, bool) or not isinstance(speed, int):
            logger.warning(f"Unexpected fanSpeed from {self.name}: {speed!r}")
            return None
        return speed

    def reboot(self) -> None:
        """Ask the fan to reboot.

        The fan restarts without answering, so the request normally ends in a
        timeout. That is not treated as a failure.
        """
        logger.info(f"Rebooting {self.name}")
        with self.lock:
            try:
                response = self.client.write({"reboot": 1})
            except DeviceConnectionError as e:
                logger.debug(f"No reply from {self.name} after reboot request: {e}")
                details = "no reply"
            else:
                details = f"{response.status_code} : {response.body}"
            self.history.add_control_event(self.name, "reboot", details)
            # Whatever speed the fan comes back with, push ours again
            self.converged = False

    def debug(self) -> DebugResult:
        with self.lock:
            return debug_read(self.client, self.name)

    def close(self):
        with self.lock:
            self.client.close()

    def status(self) -> dict:
        return {
            "name": self.name,
            "type": "ceiling_fan",
            "url": self.client.url,
            "state": self.state,
            "heat_on_speed": self.heat_on_speed,
            "heat_off_speed": self.heat_off_speed,
            "on_delay_seconds": self.on_delay.total_seconds(),
            "off_delay_seconds": self.off_delay.total_seconds(),
        }

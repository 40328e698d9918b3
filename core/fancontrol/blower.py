"""
Furnace Blower Controller

Keeps the furnace blower running for a while after the heat turns off. The
furnace board only allows a short fan overrun, but the heat exchanger still
holds useful heat well past that.

Two states: NORMAL (nothing latched) and OVERRIDE (the pre-override mode is
latched). The latch is captured once on entry and only cleared after the
thermostat confirms the latched mode is back, so a nested override never
loses the original mode.
"""

import logging
import threading
from datetime import timedelta
from typing import Optional

from .actuator import debug_read, send_command
from .device_client import DeviceClient
from .history import HistoryTracker, history_tracker
from .models import BlowerMode, DebugResult
from .thermostat_monitor import ThermostatMonitor

logger = logging.getLogger(__name__)

NORMAL = "NORMAL"
OVERRIDE = "OVERRIDE"


class BlowerController:
    """Forces the blower on for the hold window after a heating cycle."""

    def __init__(
        self,
        client: DeviceClient,
        hold_window: timedelta = timedelta(minutes=6),
        forced_mode: BlowerMode = BlowerMode.ON,
        name: str = "blower",
        history: Optional[HistoryTracker] = None,
    ):
        """Initialize blower controller.

        Args:
            client: Client for the thermostat endpoint that accepts {"fmode": n}
            hold_window: How long to keep the blower running after heat off
            forced_mode: Mode meaning "blower running"
            name: Name used in logs and control events
            history: Where to record commands (defaults to the global tracker)
        """
        self.client = client
        self.hold_window = hold_window
        self.forced_mode = forced_mode
        self.name = name
        self.history = history if history is not None else history_tracker

        self.latched_mode: Optional[BlowerMode] = None
        # Serializes the loop with debug reads made from web API threads
        self.lock = threading.RLock()

    @property
    def state(self) -> str:
        return OVERRIDE if self.latched_mode is not None else NORMAL

    def update(self, monitor: ThermostatMonitor) -> None:
        with self.lock:
            self._update(monitor)

    def _update(self, monitor: ThermostatMonitor) -> None:
        current_mode = monitor.blower_mode

        # A fresh transition forces this branch even if heat came back on and
        # went off again within one hold window
        hold = not monitor.heat_active and (
            monitor.transitioned or monitor.time_since_transition() < self.hold_window
        )

        if hold:
            if self.latched_mode is None and current_mode is not None:
                self.latched_mode = current_mode
                logger.info(f"Latched blower mode {current_mode.name}")
            if current_mode != self.forced_mode:
                self.set_blower_mode(self.forced_mode)
        elif self.latched_mode is not None:
            if current_mode == self.latched_mode:
                logger.info(f"Blower restored to {self.latched_mode.name}")
                self.latched_mode = None
            else:
                # Retried every cycle until the thermostat reports it
                self.set_blower_mode(self.latched_mode)

    def set_blower_mode(self, mode: BlowerMode) -> bool:
        """Command the blower mode.

        Returns:
            True if the thermostat accepted the command
        """
        with self.lock:
            return send_command(
                self.client,
                self.name,
                "set_blower_mode",
                {"fmode": int(mode)},
                int(mode),
                self.history,
            )

    def debug(self) -> DebugResult:
        with self.lock:
            return debug_read(self.client, self.name)

    def close(self):
        with self.lock:
            self.client.close()

    def status(self) -> dict:
        return {
            "name": self.name,
            "type": "blower",
            "state": self.state,
            "latched_mode": self.latched_mode.name if self.latched_mode is not None else None,
            "hold_window_seconds": self.hold_window.total_seconds(),
            "forced_mode": self.forced_mode.name,
        }

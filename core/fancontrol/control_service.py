"""
Fan Control Service

The control loop: poll the thermostat, and only when that succeeds let each
actuator react, once per poll interval, forever. Everything runs in one
sequential flow, so actuators always see a consistent post-poll snapshot.
"""

import logging
import threading
import time
from datetime import timedelta
from typing import Callable, Optional

from .actuator import Actuator
from .blower import BlowerController
from .ceiling_fan import STATUS_QUERY, CeilingFanController
from .device_client import DeviceClient
from .history import HistoryTracker, history_tracker
from .models import DebugResult
from .settings import FanControlSettings
from .thermostat_monitor import ThermostatMonitor

logger = logging.getLogger(__name__)


class FanControlService:
    """Runs the poll/update cycle on a fixed cadence."""

    def __init__(
        self,
        monitor: ThermostatMonitor,
        actuators: list[Actuator],
        poll_interval: timedelta = timedelta(seconds=15),
        clock: Callable[[], float] = time.monotonic,
        history: Optional[HistoryTracker] = None,
    ):
        self.monitor = monitor
        self.actuators = actuators
        self.poll_interval = poll_interval
        self._clock = clock
        self.history = history if history is not None else history_tracker

        self.cycles = 0
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def get_actuator(self, name: str) -> Optional[Actuator]:
        for actuator in self.actuators:
            if actuator.name == name:
                return actuator
        return None

    def run_cycle(self) -> bool:
        """Poll once and, on success, update every actuator once.

        Returns:
            Whether the poll succeeded
        """
        self.cycles += 1
        if not self.monitor.poll():
            return False

        for actuator in self.actuators:
            actuator.update(self.monitor)

        self._record_snapshot()
        logger.debug(str(self.monitor))
        return True

    def _record_snapshot(self):
        reading = self.monitor.reading
        self.history.add_snapshot(
            temperature=reading.temperature,
            target_temperature=reading.target_temperature,
            heat_active=reading.heat_active,
            blower_mode=reading.blower_mode.name,
            transitioned=self.monitor.transitioned,
            seconds_since_transition=round(
                self.monitor.time_since_transition().total_seconds(), 1
            ),
        )

    def sleep_duration(self, elapsed: float) -> float:
        """Time to wait before the next cycle; an overrun starts it immediately."""
        return max(0.0, self.poll_interval.total_seconds() - elapsed)

    def run_forever(self):
        """Run cycles until stop() is called."""
        logger.info(
            f"🌀 Fan control loop starting: {len(self.actuators)} actuator(s), "
            f"every {self.poll_interval.total_seconds():g}s"
        )

        while not self._stop_event.is_set():
            start = self._clock()
            try:
                self.run_cycle()
            except Exception as e:
                logger.error(f"Error in fan control loop: {e}", exc_info=True)

            self._stop_event.wait(self.sleep_duration(self._clock() - start))

        logger.info("🌀 Fan control loop stopped")

    def start(self):
        """Run the loop on a background thread."""
        if self.running:
            logger.warning("Fan control service already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name="fan-control", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None):
        """Stop after the cycle in progress, if any, and close device sessions."""
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
            self._thread = None
        self.close()

    def close(self):
        """Release every device session."""
        self.monitor.close()
        for actuator in self.actuators:
            actuator.close()

    def debug(self) -> list[DebugResult]:
        """One raw read per actuator."""
        return [actuator.debug() for actuator in self.actuators]

    def status(self) -> dict:
        return {
            "running": self.running,
            "cycles": self.cycles,
            "poll_interval_seconds": self.poll_interval.total_seconds(),
            "thermostat": self.monitor.status(),
            "actuators": [actuator.status() for actuator in self.actuators],
        }


def build_service(
    settings: FanControlSettings,
    clock: Callable[[], float] = time.monotonic,
    history: Optional[HistoryTracker] = None,
) -> FanControlService:
    """Wire clients, monitor and controllers from settings.

    Every actuator gets its own client, including the blower, which talks to
    the same thermostat URL as the monitor.
    """
    thermostat = settings.thermostat
    blower = settings.blower

    monitor = ThermostatMonitor(
        DeviceClient(thermostat.url, timeout=thermostat.timeout),
        hold_window=blower.hold_window,
        failure_log_interval=settings.failure_log_interval,
        clock=clock,
    )

    actuators: list[Actuator] = []
    for fan in settings.ceiling_fans:
        actuators.append(CeilingFanController(
            DeviceClient(fan.url, timeout=fan.timeout, read_payload=STATUS_QUERY),
            name=fan.name,
            on_delay=fan.on_delay,
            off_delay=fan.off_delay,
            heat_on_speed=fan.heat_on_speed,
            heat_off_speed=fan.heat_off_speed,
            history=history,
        ))

    if blower.enabled:
        actuators.append(BlowerController(
            DeviceClient(thermostat.url, timeout=thermostat.timeout),
            hold_window=blower.hold_window,
            forced_mode=blower.forced_mode,
            history=history,
        ))

    return FanControlService(
        monitor,
        actuators,
        poll_interval=settings.poll_interval,
        clock=clock,
        history=history,
    )

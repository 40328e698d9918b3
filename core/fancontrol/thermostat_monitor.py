"""
Thermostat Monitor

Polls the thermostat and derives the facts the actuator controllers act on:
the latest reading, whether the heating flag flipped on this poll, and how
long ago it last flipped.
"""

import logging
import time
from datetime import timedelta
from typing import Callable, Optional

from .device_client import DeviceClient
from .exceptions import DeviceConnectionError, ThermostatParseError
from .models import BlowerMode, ThermostatReading

logger = logging.getLogger(__name__)


class ThermostatMonitor:
    """Tracks thermostat state across polls."""

    def __init__(
        self,
        client: DeviceClient,
        hold_window: timedelta = timedelta(minutes=6),
        failure_log_interval: int = 6,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize monitor.

        Args:
            client: Client for the thermostat's state endpoint
            hold_window: Blower hold window. The last transition is backdated
                by this much so the blower starts out quiescent.
            failure_log_interval: Report every Nth consecutive poll failure
            clock: Monotonic time source in seconds
        """
        self.client = client
        self.failure_log_interval = failure_log_interval
        self._clock = clock

        self.previous_reading: Optional[ThermostatReading] = None
        self.last_transition_time: float = clock() - hold_window.total_seconds()
        self.transition_observed = False
        self.consecutive_failures = 0
        self._transitioned = False

    def poll(self) -> bool:
        """Fetch and parse new thermostat state.

        Returns:
            True iff new state was retrieved and parsed. On failure only the
            failure counter changes.
        """
        self._transitioned = False

        try:
            response = self.client.read()
        except DeviceConnectionError as e:
            return self._record_failure("failed to get data", str(e))

        if not response.ok:
            return self._record_failure(
                "failed to get data",
                f"Returned code: {response.status_code}, response: {response.body}",
            )

        try:
            reading = ThermostatReading.from_payload(response.body)
        except ThermostatParseError as e:
            return self._record_failure("failed to parse data", f"{e}, response: {response.body}")

        self.consecutive_failures = 0

        self._transitioned = (
            self.previous_reading is not None
            and reading.heat_active != self.previous_reading.heat_active
        )
        if self._transitioned:
            self.last_transition_time = self._clock()
            self.transition_observed = True
            logger.info(f"Heat turned {'on' if reading.heat_active else 'off'}")

        self.previous_reading = reading
        return True

    def _record_failure(self, what: str, details: str) -> bool:
        self.consecutive_failures += 1
        logger.debug(f"Thermostat {self.client.url} {what}: {details}")

        if self.consecutive_failures % self.failure_log_interval == 0:
            logger.error(
                f"Thermostat {self.client.url} {what} {self.consecutive_failures} attempts. "
                f"{details}"
            )
        return False

    @property
    def reading(self) -> Optional[ThermostatReading]:
        return self.previous_reading

    @property
    def heat_active(self) -> bool:
        return self.previous_reading is not None and self.previous_reading.heat_active

    @property
    def blower_mode(self) -> Optional[BlowerMode]:
        """Last known blower mode, or None if we haven't fetched thermostat data yet."""
        if self.previous_reading is None:
            return None
        return self.previous_reading.blower_mode

    @property
    def transitioned(self) -> bool:
        """True if the heating flag changed on the most recent poll."""
        return self._transitioned

    def time_since_transition(self) -> timedelta:
        # Before the first transition this counts from the backdated startup time
        return timedelta(seconds=self._clock() - self.last_transition_time)

    def close(self):
        self.client.close()

    def status(self) -> dict:
        """Snapshot of monitor state for inspection."""
        reading = self.previous_reading
        return {
            "url": self.client.url,
            "reading": None if reading is None else {
                "temperature": reading.temperature,
                "target_temperature": reading.target_temperature,
                "heat_active": reading.heat_active,
                "blower_mode": reading.blower_mode.name,
            },
            "transitioned": self._transitioned,
            "transition_observed": self.transition_observed,
            "seconds_since_transition": round(self.time_since_transition().total_seconds(), 1),
            "consecutive_failures": self.consecutive_failures,
        }

    def __str__(self) -> str:
        state = f"State: {self.previous_reading} " if self.previous_reading else ""
        return f"{state}  Time since transition: {int(self.time_since_transition().total_seconds())}"

"""
Control History Tracking

Simple in-memory history of thermostat snapshots and issued commands.
Nothing is persisted across restarts.
"""

import threading
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone


@dataclass
class ThermostatSnapshot:
    """Thermostat state after one successful poll."""

    timestamp: str  # ISO format
    temperature: float
    target_temperature: float
    heat_active: bool
    blower_mode: str
    transitioned: bool
    seconds_since_transition: float


@dataclass
class ControlEvent:
    """A command sent to an actuator."""

    timestamp: str  # ISO format
    device: str
    action: str  # "set_blower_mode", "set_fan_speed"
    details: str
    value: int | None = None
    success: bool = True
    duration_ms: int | None = None


class HistoryTracker:
    """Tracks thermostat snapshots and control events."""

    def __init__(self, max_hours: int = 24):
        """Initialize history tracker.

        Args:
            max_hours: How many hours of history to keep
        """
        self.max_hours = max_hours
        self.max_age = timedelta(hours=max_hours)

        # 24h of 15s polls is 5760 snapshots
        self.snapshots: deque[ThermostatSnapshot] = deque(maxlen=10000)
        self.control_events: deque[ControlEvent] = deque(maxlen=1000)

        self.lock = threading.Lock()

    def add_snapshot(
        self,
        temperature: float,
        target_temperature: float,
        heat_active: bool,
        blower_mode: str,
        transitioned: bool,
        seconds_since_transition: float,
        timestamp: datetime | None = None
    ):
        """Add a thermostat snapshot.

        Args:
            temperature: Current temperature
            target_temperature: Heat setpoint
            heat_active: Whether the furnace is calling for heat
            blower_mode: Blower mode name (AUTO, CIRCULATE, ON)
            transitioned: Whether heat flipped on this poll
            seconds_since_transition: Time since the heat flag last flipped
            timestamp: Optional timestamp (defaults to now)
        """
        ts = timestamp.isoformat() if timestamp else datetime.now(timezone.utc).isoformat()

        snapshot = ThermostatSnapshot(
            timestamp=ts,
            temperature=temperature,
            target_temperature=target_temperature,
            heat_active=heat_active,
            blower_mode=blower_mode,
            transitioned=transitioned,
            seconds_since_transition=seconds_since_transition
        )

        with self.lock:
            self.snapshots.append(snapshot)
            self._cleanup_old_data()

    def add_control_event(
        self,
        device: str,
        action: str,
        details: str,
        value: int | None = None,
        success: bool = True,
        duration_ms: int | None = None
    ):
        """Log a command sent to a device.

        Args:
            device: Actuator name
            action: Action type
            details: Human-readable description
            value: Value sent (mode or speed)
            success: Whether the device acknowledged the command
            duration_ms: Round-trip time of the request
        """
        event = ControlEvent(
            timestamp=datetime.now(timezone.utc).isoformat(),
            device=device,
            action=action,
            details=details,
            value=value,
            success=success,
            duration_ms=duration_ms
        )

        with self.lock:
            self.control_events.append(event)
            self._cleanup_old_data()

    def get_snapshots(self, hours: int | None = None) -> list[dict]:
        """Get thermostat snapshots.

        Args:
            hours: How many hours back (None = all available)

        Returns:
            List of snapshots as dicts
        """
        with self.lock:
            snapshots = list(self.snapshots)

        if hours:
            cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
            snapshots = [
                s for s in snapshots
                if datetime.fromisoformat(s.timestamp) > cutoff
            ]

        return [asdict(s) for s in snapshots]

    def get_control_events(
        self,
        device: str | None = None,
        hours: int | None = None
    ) -> list[dict]:
        """Get control events.

        Args:
            device: Filter by actuator name (None = all devices)
            hours: How many hours back (None = all available)

        Returns:
            List of control events as dicts
        """
        with self.lock:
            events = list(self.control_events)

        # Filter by device
        if device:
            events = [e for e in events if e.device == device]

        # Filter by time
        if hours:
            cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
            events = [
                e for e in events
                if datetime.fromisoformat(e.timestamp) > cutoff
            ]

        return [asdict(e) for e in events]

    def clear(self):
        with self.lock:
            self.snapshots.clear()
            self.control_events.clear()

    def _cleanup_old_data(self):
        """Remove data older than max_hours."""
        cutoff = datetime.now(timezone.utc) - self.max_age

        while (self.snapshots and
               datetime.fromisoformat(self.snapshots[0].timestamp) < cutoff):
            self.snapshots.popleft()

        while (self.control_events and
               datetime.fromisoformat(self.control_events[0].timestamp) < cutoff):
            self.control_events.popleft()


# Global instance
history_tracker = HistoryTracker(max_hours=24)

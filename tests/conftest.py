"""Fixtures and fakes for fan control tests."""

import json

import pytest

from core.fancontrol.blower import BlowerController
from core.fancontrol.ceiling_fan import CeilingFanController
from core.fancontrol.history import HistoryTracker
from core.fancontrol.models import BlowerMode, DeviceResponse
from core.fancontrol.thermostat_monitor import ThermostatMonitor


class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 10_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDevice:
    """Scripted stand-in for DeviceClient.

    Reads return the JSON encoding of `state` with `status_code`, unless
    `read_error` is set. Accepted writes are merged into `state`, so a fake
    thermostat reports the blower mode it was last told to use.
    """

    def __init__(self, url: str = "http://fake.local/tstat", state: dict | None = None) -> None:
        self.url = url
        self.state = dict(state or {})
        self.status_code = 200
        self.body: str | None = None  # overrides the JSON body when set
        self.read_error: Exception | None = None
        self.write_status = 200
        self.write_error: Exception | None = None
        self.apply_writes = True
        self.reads = 0
        self.writes: list[dict] = []
        self.closed = False

    def read(self) -> DeviceResponse:
        self.reads += 1
        if self.read_error is not None:
            raise self.read_error
        body = self.body if self.body is not None else json.dumps(self.state)
        return DeviceResponse(status_code=self.status_code, body=body)

    def write(self, payload: dict) -> DeviceResponse:
        self.writes.append(payload)
        if self.write_error is not None:
            raise self.write_error
        if self.write_status == 200 and self.apply_writes:
            self.state.update(payload)
        return DeviceResponse(status_code=self.write_status, body="")

    def close(self) -> None:
        self.closed = True


def thermostat_state(
    heat_active: bool = False,
    blower_mode: BlowerMode = BlowerMode.AUTO,
    temp: float = 68.5,
    t_heat: float = 70.0,
) -> dict:
    """Thermostat payload in the device's own field names."""
    return {
        "temp": temp,
        "t_heat": t_heat,
        "tstate": 1 if heat_active else 0,
        "fmode": int(blower_mode),
    }


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def history() -> HistoryTracker:
    return HistoryTracker(max_hours=24)


@pytest.fixture
def thermostat() -> FakeDevice:
    return FakeDevice(state=thermostat_state())


@pytest.fixture
def fan_device() -> FakeDevice:
    return FakeDevice(url="http://fake.local/mf", state={"fanSpeed": 1})


@pytest.fixture
def monitor(thermostat: FakeDevice, clock: ManualClock) -> ThermostatMonitor:
    return ThermostatMonitor(thermostat, clock=clock)


@pytest.fixture
def blower(thermostat: FakeDevice, history: HistoryTracker) -> BlowerController:
    # The blower shares the fake thermostat so its writes show up in later reads
    return BlowerController(thermostat, history=history)


@pytest.fixture
def ceiling_fan(fan_device: FakeDevice, history: HistoryTracker) -> CeilingFanController:
    return CeilingFanController(fan_device, name="living_room", history=history)

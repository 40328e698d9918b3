"""Tests for ThermostatMonitor polling and transition detection."""

import logging
from datetime import timedelta

import pytest

from core.fancontrol.exceptions import DeviceConnectionError
from core.fancontrol.models import BlowerMode
from core.fancontrol.thermostat_monitor import ThermostatMonitor

from conftest import FakeDevice, ManualClock, thermostat_state


class TestPoll:
    """Test successful and failed polls."""

    def test_first_poll_sets_reading_without_transition(
        self, monitor: ThermostatMonitor, thermostat: FakeDevice
    ) -> None:
        """The first successful poll is a baseline, never a transition."""
        thermostat.state = thermostat_state(heat_active=True, blower_mode=BlowerMode.CIRCULATE)

        assert monitor.poll() is True
        assert monitor.transitioned is False
        assert monitor.transition_observed is False
        assert monitor.heat_active is True
        assert monitor.blower_mode == BlowerMode.CIRCULATE
        assert monitor.reading.temperature == pytest.approx(68.5)
        assert monitor.reading.target_temperature == pytest.approx(70.0)

    def test_transition_detected_when_heat_flips(
        self, monitor: ThermostatMonitor, thermostat: FakeDevice, clock: ManualClock
    ) -> None:
        """Heat flag change between two successful polls is a transition."""
        monitor.poll()
        clock.advance(15)
        thermostat.state = thermostat_state(heat_active=True)

        assert monitor.poll() is True
        assert monitor.transitioned is True
        assert monitor.last_transition_time == clock.now
        assert monitor.time_since_transition() == timedelta(0)

    def test_transition_flag_only_lasts_one_poll(
        self, monitor: ThermostatMonitor, thermostat: FakeDevice, clock: ManualClock
    ) -> None:
        """An unchanged heat flag on the next poll clears the transition flag."""
        monitor.poll()
        thermostat.state = thermostat_state(heat_active=True)
        monitor.poll()
        clock.advance(15)

        assert monitor.poll() is True
        assert monitor.transitioned is False
        assert monitor.time_since_transition() == timedelta(seconds=15)

    def test_blower_mode_change_is_not_a_transition(
        self, monitor: ThermostatMonitor, thermostat: FakeDevice
    ) -> None:
        """Only the heating flag counts as a transition."""
        monitor.poll()
        thermostat.state = thermostat_state(blower_mode=BlowerMode.ON, temp=71.0)

        monitor.poll()

        assert monitor.transitioned is False
        assert monitor.blower_mode == BlowerMode.ON

    def test_transition_sequence(
        self, monitor: ThermostatMonitor, thermostat: FakeDevice
    ) -> None:
        """Transitioned is true exactly when the flag differs from the previous success."""
        sequence = [False, False, True, True, False, True, True]
        observed = []
        for heat in sequence:
            thermostat.state = thermostat_state(heat_active=heat)
            monitor.poll()
            observed.append(monitor.transitioned)

        assert observed == [False, False, True, False, True, True, False]


class TestStartupSentinel:
    """Test the backdated transition time used before any transition."""

    def test_time_since_transition_starts_at_hold_window(self, thermostat: FakeDevice) -> None:
        """Before any transition the monitor looks a full hold window old."""
        clock = ManualClock()
        monitor = ThermostatMonitor(thermostat, hold_window=timedelta(minutes=6), clock=clock)

        assert monitor.time_since_transition() == timedelta(minutes=6)
        clock.advance(30)
        assert monitor.time_since_transition() == timedelta(minutes=6, seconds=30)

    def test_queries_before_first_poll(self, monitor: ThermostatMonitor) -> None:
        """No reading yet: heat off, unknown blower mode, no transition."""
        assert monitor.reading is None
        assert monitor.heat_active is False
        assert monitor.blower_mode is None
        assert monitor.transitioned is False


class TestPollFailures:
    """Test that failed polls only touch the failure counter."""

    def _assert_unchanged(self, monitor: ThermostatMonitor, before: tuple) -> None:
        assert (monitor.previous_reading, monitor.last_transition_time) == before

    @pytest.mark.parametrize(
        "breakage",
        [
            "transport",
            "status",
            "empty",
            "not_json",
            "not_object",
            "missing_field",
            "bad_type",
            "bool_field",
            "unknown_fmode",
        ],
    )
    def test_failed_poll_leaves_state_untouched(
        self,
        monitor: ThermostatMonitor,
        thermostat: FakeDevice,
        clock: ManualClock,
        breakage: str,
    ) -> None:
        """Transport and parse failures have the same effect."""
        monitor.poll()
        before = (monitor.previous_reading, monitor.last_transition_time)
        clock.advance(15)

        # Heat would flip if this poll succeeded
        thermostat.state = thermostat_state(heat_active=True)
        if breakage == "transport":
            thermostat.read_error = DeviceConnectionError("timed out")
        elif breakage == "status":
            thermostat.status_code = 500
        elif breakage == "empty":
            thermostat.body = ""
        elif breakage == "not_json":
            thermostat.body = "<html>busy</html>"
        elif breakage == "not_object":
            thermostat.body = "[1, 2, 3]"
        elif breakage == "missing_field":
            del thermostat.state["t_heat"]
        elif breakage == "bad_type":
            thermostat.state["temp"] = "warm"
        elif breakage == "bool_field":
            thermostat.state["tstate"] = True
        elif breakage == "unknown_fmode":
            thermostat.state["fmode"] = 7

        assert monitor.poll() is False
        assert monitor.consecutive_failures == 1
        assert monitor.transitioned is False
        self._assert_unchanged(monitor, before)

    def test_failure_clears_transition_flag(
        self, monitor: ThermostatMonitor, thermostat: FakeDevice
    ) -> None:
        """A failed poll right after a transition does not report it again."""
        monitor.poll()
        thermostat.state = thermostat_state(heat_active=True)
        monitor.poll()
        assert monitor.transitioned is True

        thermostat.status_code = 503
        monitor.poll()

        assert monitor.transitioned is False

    def test_success_resets_failure_counter(
        self, monitor: ThermostatMonitor, thermostat: FakeDevice
    ) -> None:
        """Transport and parse failures share one counter, reset on success."""
        thermostat.status_code = 500
        monitor.poll()
        thermostat.status_code = 200
        thermostat.body = "garbage"
        monitor.poll()
        assert monitor.consecutive_failures == 2

        thermostat.body = None
        assert monitor.poll() is True
        assert monitor.consecutive_failures == 0

    def test_transition_compares_against_last_success(
        self, monitor: ThermostatMonitor, thermostat: FakeDevice
    ) -> None:
        """Failed polls in between do not reset the baseline."""
        monitor.poll()
        thermostat.status_code = 500
        monitor.poll()
        monitor.poll()

        thermostat.status_code = 200
        thermostat.state = thermostat_state(heat_active=True)
        monitor.poll()

        assert monitor.transitioned is True

    def test_only_every_sixth_failure_logged_as_error(
        self,
        monitor: ThermostatMonitor,
        thermostat: FakeDevice,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Sustained outages do not flood the log."""
        thermostat.read_error = DeviceConnectionError("connection refused")

        with caplog.at_level(logging.DEBUG, logger="core.fancontrol.thermostat_monitor"):
            for _ in range(13):
                monitor.poll()

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 2
        assert "6 attempts" in errors[0].getMessage()
        assert "12 attempts" in errors[1].getMessage()
        assert monitor.consecutive_failures == 13


class TestStatus:
    """Test the inspection snapshot."""

    def test_status_after_poll(self, monitor: ThermostatMonitor) -> None:
        monitor.poll()

        status = monitor.status()

        assert status["reading"]["blower_mode"] == "AUTO"
        assert status["reading"]["heat_active"] is False
        assert status["consecutive_failures"] == 0
        assert status["seconds_since_transition"] == pytest.approx(360.0)
        assert "Time since transition: 360" in str(monitor)

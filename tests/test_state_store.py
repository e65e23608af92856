"""
Unit tests for the autopilot state store.

Tests defaults, broadcast payload contents, angle normalization and
event application.
"""

import math
import pytest
import numpy as np
from unittest.mock import Mock

from navpilot.control.state_store import StateStore, AutopilotState, normalize_angle, TWO_PI
from navpilot.control.modes import OperatingState
from navpilot.n2k.classifier import (
    Alarm, AlarmsObserved, HeadingObserved, RudderObserved, XTEObserved
)


class TestAutopilotState:
    """Tests for AutopilotState defaults."""

    def test_default_state(self):
        """Default state should be disabled standby."""
        state = AutopilotState()

        assert state.state == OperatingState.DISABLED
        assert state.mode == "standby"
        assert state.target == 0.0
        assert state.engaged is False
        assert state.heading is None
        assert state.rudder_angle is None
        assert state.alarms == ()


class TestSnapshot:
    """Tests for the broadcast payload."""

    def test_minimal_snapshot(self, store):
        """Before any observation only the core fields are present."""
        assert store.snapshot() == {
            "state": "disabled",
            "mode": "standby",
            "target": 0.0,
            "engaged": False,
        }

    def test_snapshot_includes_observations(self, store):
        """Heading and rudder appear once observed."""
        store.apply(HeadingObserved(heading=1.0))
        store.apply(RudderObserved(rudder_angle=-0.1))

        snapshot = store.snapshot()
        assert snapshot["heading"] == 1.0
        assert snapshot["rudderAngle"] == -0.1

    def test_xte_not_in_snapshot(self, store):
        """XTE is tracked but not part of the broadcast."""
        store.apply(XTEObserved(xte=5.0))

        assert "xte" not in store.snapshot()
        assert store.get_state().xte == 5.0

    def test_alarms_only_when_active(self, store):
        """Alarms key appears only for a non-empty alarm set."""
        alarm = Alarm("warn", "Autopilot override active", ("visual",))
        store.apply(AlarmsObserved(alarms=(alarm,)))

        assert store.snapshot()["alarms"] == [alarm.to_dict()]

        store.apply(AlarmsObserved(alarms=()))
        assert "alarms" not in store.snapshot()


class TestBroadcast:
    """Tests for publication."""

    def test_broadcast_publishes_full_snapshot(self, store, publish):
        """Test that broadcast publishes the complete state."""
        store.broadcast()

        publish.assert_called_once_with("711c", store.snapshot())

    def test_observation_always_broadcasts(self, store, publish):
        """Each observation triggers a broadcast even if unchanged."""
        store.apply(HeadingObserved(heading=1.0))
        store.apply(HeadingObserved(heading=1.0))

        assert publish.call_count == 2

    def test_alarm_set_broadcasts_only_on_change(self, store, publish):
        """Identical alarm sets should not rebroadcast."""
        alarm = Alarm("alarm", "Rudder limit exceeded", ("visual", "sound"))

        assert store.apply(AlarmsObserved(alarms=(alarm,))) is True
        assert store.apply(AlarmsObserved(alarms=(alarm,))) is False
        assert store.apply(AlarmsObserved(alarms=())) is True

        assert publish.call_count == 2

    def test_alarm_set_replaced_wholesale(self, store):
        """A new alarm set replaces the old one, not merged."""
        a = Alarm("alarm", "Rudder limit exceeded", ("visual", "sound"))
        b = Alarm("warn", "Autopilot override active", ("visual",))
        store.apply(AlarmsObserved(alarms=(a,)))
        store.apply(AlarmsObserved(alarms=(b,)))

        assert store.get_state().alarms == (b,)

    def test_publish_failure_does_not_raise(self):
        """Test that a failing publish is logged, not raised."""
        store = StateStore("711c", publish=Mock(side_effect=RuntimeError("down")))

        store.broadcast()

        assert store.stats["broadcast_count"] == 1

    def test_no_publisher(self):
        """A store without a publisher still works."""
        store = StateStore("711c")

        store.apply(HeadingObserved(heading=0.5))

        assert store.get_state().heading == 0.5

    def test_unknown_event_ignored(self, store, publish):
        """Test that unknown events do not broadcast."""
        assert store.apply(object()) is False
        publish.assert_not_called()


class TestNormalizeAngle:
    """Tests for wrapping into [0, 2π)."""

    def test_within_range_unchanged(self):
        """Test that in-range angles are unchanged."""
        assert normalize_angle(1.0) == pytest.approx(1.0)
        assert normalize_angle(0.0) == 0.0

    def test_negative_wraps(self):
        """Test that negative angles wrap upward."""
        assert normalize_angle(-math.pi / 2) == pytest.approx(3 * math.pi / 2)

    def test_two_pi_wraps_to_zero(self):
        """Test that 2π wraps to zero."""
        assert normalize_angle(TWO_PI) == pytest.approx(0.0)

    def test_tiny_negative_stays_in_range(self):
        """Rounding must never produce exactly 2π."""
        value = normalize_angle(-1e-17)

        assert 0.0 <= value < TWO_PI


class TestMutations:
    """Tests for store mutators."""

    def test_adjust_target_wraps(self, store):
        """Test that adjust_target wraps the result."""
        store.set_target(6.0)

        new_target = store.adjust_target(1.0)

        assert new_target == pytest.approx(7.0 - TWO_PI)

    def test_disable_forces_standby(self, store):
        """Test that disable sets standby and disengages."""
        store.set_operating_state(OperatingState.ENABLED)
        store.set_mode("auto", engaged=True)

        store.disable()

        state = store.get_state()
        assert state.state == OperatingState.DISABLED
        assert state.mode == "standby"
        assert state.engaged is False

    def test_repeated_adjustments_stay_in_range(self, store):
        """Arbitrary adjustment sequences never leave [0, 2π)."""
        rng = np.random.default_rng(42)
        for delta in rng.uniform(-20.0, 20.0, size=500):
            target = store.adjust_target(float(delta))
            assert 0.0 <= target < TWO_PI

    def test_get_state_is_copy(self, store):
        """Test that get_state returns a detached copy."""
        state = store.get_state()
        state.mode = "auto"

        assert store.mode == "standby"

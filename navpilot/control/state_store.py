"""
Autopilot State Store
=====================

Authoritative in-memory record of the autopilot state.

Every change to an externally visible field ends with a broadcast of
the complete state (never a delta) through the injected publish
function. Mutators are for the provider facade and the inbound event
handlers only; they do not enforce the engaged/standby invariants
themselves, callers set both fields together.
"""

import math
import threading
import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple

from ..n2k.classifier import (
    Alarm, AlarmsObserved, HeadingObserved, RudderObserved, XTEObserved, SemanticEvent
)
from .modes import OperatingState, STANDBY

logger = logging.getLogger(__name__)

TWO_PI = 2 * math.pi


@dataclass
class AutopilotState:
    """Current autopilot state."""
    state: OperatingState = OperatingState.DISABLED
    mode: str = STANDBY
    target: float = 0.0                  # radians, heading or wind angle
    engaged: bool = False

    # Last observed values from the bus (None until first seen)
    heading: Optional[float] = None      # radians
    rudder_angle: Optional[float] = None # radians
    xte: Optional[float] = None          # metres

    alarms: Tuple[Alarm, ...] = ()


def normalize_angle(value: float) -> float:
    """Wrap an angle into [0, 2π)."""
    value = value % TWO_PI
    # Float modulo of a tiny negative value can round up to 2π
    if value >= TWO_PI:
        value = 0.0
    return value


class StateStore:
    """
    Owns the AutopilotState for one device.

    Args:
        device_id: Identifier passed to publish()
        publish: ``publish(device_id, snapshot)`` collaborator
        lock: Lock shared with the detection tracker
    """

    def __init__(self, device_id: str,
                 publish: Optional[Callable[[str, dict], None]] = None,
                 lock: Optional[threading.RLock] = None):
        self.device_id = device_id
        self._publish = publish
        self.lock = lock or threading.RLock()
        self._state = AutopilotState()
        self._broadcast_count = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_state(self) -> AutopilotState:
        """Get a copy of the current state."""
        with self.lock:
            return replace(self._state)

    @property
    def state(self) -> OperatingState:
        return self._state.state

    @property
    def mode(self) -> str:
        return self._state.mode

    @property
    def target(self) -> float:
        return self._state.target

    @property
    def engaged(self) -> bool:
        return self._state.engaged

    def snapshot(self) -> dict:
        """Build the broadcast payload for the current state."""
        with self.lock:
            s = self._state
            update = {
                "state": s.state.value,
                "mode": s.mode,
                "target": s.target,
                "engaged": s.engaged,
            }
            if s.heading is not None:
                update["heading"] = s.heading
            if s.rudder_angle is not None:
                update["rudderAngle"] = s.rudder_angle
            if s.alarms:
                update["alarms"] = [alarm.to_dict() for alarm in s.alarms]
            return update

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_operating_state(self, state: OperatingState):
        with self.lock:
            logger.debug(f"State: {self._state.state.value} -> {state.value}")
            self._state.state = state

    def set_mode(self, mode: str, engaged: bool):
        with self.lock:
            logger.info(f"Mode change: {self._state.mode} → {mode}, engaged={engaged}")
            self._state.mode = mode
            self._state.engaged = engaged

    def set_engaged(self, engaged: bool):
        with self.lock:
            self._state.engaged = engaged

    def set_target(self, target: float):
        with self.lock:
            self._state.target = target

    def adjust_target(self, delta: float) -> float:
        """Add delta to the target and wrap into [0, 2π). Returns the new target."""
        with self.lock:
            self._state.target = normalize_angle(self._state.target + delta)
            return self._state.target

    def disable(self):
        """Disable the device: standby, not engaged."""
        with self.lock:
            self._state.state = OperatingState.DISABLED
            self._state.mode = STANDBY
            self._state.engaged = False

    def apply(self, event: SemanticEvent) -> bool:
        """
        Apply an inbound observation event.

        Observations always broadcast. An alarm set replaces the current
        one wholesale and broadcasts only if it differs.

        Returns:
            True if a broadcast was made
        """
        with self.lock:
            if isinstance(event, HeadingObserved):
                self._state.heading = event.heading
            elif isinstance(event, RudderObserved):
                self._state.rudder_angle = event.rudder_angle
            elif isinstance(event, XTEObserved):
                self._state.xte = event.xte
            elif isinstance(event, AlarmsObserved):
                if event.alarms == self._state.alarms:
                    return False
                self._state.alarms = event.alarms
                logger.info(f"Active alarms: {[a.message for a in event.alarms] or 'none'}")
            else:
                return False

            self.broadcast()
            return True

    def broadcast(self):
        """Publish the full current state."""
        with self.lock:
            update = self.snapshot()
            self._broadcast_count += 1
            logger.debug(
                f"Broadcasting autopilot state: state={update['state']}, "
                f"mode={update['mode']}, engaged={update['engaged']}"
            )
            if self._publish is None:
                return
            try:
                self._publish(self.device_id, update)
            except Exception as e:
                logger.error(f"Autopilot update publish failed: {e}")

    @property
    def stats(self) -> dict:
        return {"broadcast_count": self._broadcast_count}

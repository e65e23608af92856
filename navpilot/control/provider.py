"""
Autopilot Provider
==================

Request/response surface of the NavPilot-711C autopilot provider.

Each operation validates the device identifier, checks its
preconditions, mutates the state store, issues the matching Furuno
command and broadcasts the resulting state. Reads never broadcast.

Command mapping:
    set_state(disabled)   SetMode(standby)
    set_mode(m)           SetMode(m)
    set_target(v)         SetHeading (auto) / SetWindAngle (wind)
    adjust_target(d)      SetHeading (auto)
    engage                SetMode(auto) if previously standby
    disengage             SetMode(standby)
    tack / gybe           Tack / Gybe
    dodge                 Dodge
"""

import math
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..exceptions import (
    UnknownDeviceError, InvalidArgumentError, PreconditionFailedError, UnsupportedError
)
from ..n2k.commands import N2KCommands, DIRECTION_CODES
from .modes import (
    OperatingState, TackPolicy, MODE_SETS, DEFAULT_MODE_SET, ROUTE_MODES,
    STANDBY, AUTO, WIND,
)
from .state_store import StateStore

logger = logging.getLogger(__name__)


DEFAULT_DEVICE = "_default"


@dataclass
class ProviderConfig:
    """Provider configuration."""
    device_id: str = "711c"
    modes: Tuple[str, ...] = field(default_factory=lambda: MODE_SETS[DEFAULT_MODE_SET])
    tack_policy: TackPolicy = TackPolicy.MODE_GATED


def _deg(value: float) -> str:
    return f"{math.degrees(value):.1f}°"


def _check_angle(name: str, value):
    """Reject anything but a finite number of radians."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        logger.error(f"Invalid {name}: {value!r}")
        raise InvalidArgumentError(f"Invalid {name}: expected a finite number, got {value!r}")


class AutopilotProvider:
    """
    Provider facade for a single NavPilot device.

    Args:
        store: State store for this device
        commands: Outbound Furuno command sender
        config: Device identity, mode vocabulary and tack policy
    """

    def __init__(self, store: StateStore, commands: N2KCommands,
                 config: Optional[ProviderConfig] = None):
        self.config = config or ProviderConfig(device_id=store.device_id)
        self.store = store
        self.commands = commands

    @property
    def device_id(self) -> str:
        return self.config.device_id

    def validate_device_id(self, device_id: str):
        """Accept the configured id or the default-device sentinel."""
        if device_id != self.config.device_id and device_id != DEFAULT_DEVICE:
            logger.error(
                f"Unknown device {device_id} (expected: {self.config.device_id} or {DEFAULT_DEVICE})"
            )
            raise UnknownDeviceError(device_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_data(self, device_id: str = DEFAULT_DEVICE) -> dict:
        """Return the current state with available options and actions."""
        self.validate_device_id(device_id)
        with self.store.lock:
            mode = self.store.mode
            data = {
                "options": {
                    "states": [s.value for s in OperatingState],
                    "modes": list(self.config.modes),
                    "actions": self._actions(mode),
                },
            }
            data.update(self.store.snapshot())
        return data

    def _actions(self, mode: str) -> list:
        actions = []
        if WIND in self.config.modes:
            actions.append({
                "id": "tack",
                "name": "Tack",
                "available": mode == WIND and self.config.tack_policy == TackPolicy.MODE_GATED,
            })
        actions.append({"id": "adjustHeading", "name": "Adjust Heading", "available": mode == AUTO})
        actions.append({
            "id": "advanceWaypoint",
            "name": "Advance Waypoint",
            "available": mode in ROUTE_MODES,
        })
        return actions

    def get_state(self, device_id: str = DEFAULT_DEVICE) -> str:
        self.validate_device_id(device_id)
        return self.store.state.value

    def get_mode(self, device_id: str = DEFAULT_DEVICE) -> str:
        self.validate_device_id(device_id)
        return self.store.mode

    def get_target(self, device_id: str = DEFAULT_DEVICE) -> float:
        self.validate_device_id(device_id)
        return self.store.target

    # ------------------------------------------------------------------
    # State and mode
    # ------------------------------------------------------------------

    def set_state(self, state: str, device_id: str = DEFAULT_DEVICE):
        """Enable or disable the autopilot. Disabling forces standby."""
        self.validate_device_id(device_id)
        try:
            new_state = OperatingState(state)
        except ValueError:
            logger.error(f"setState failed: Invalid state {state}")
            raise InvalidArgumentError(f"Invalid state: {state}")

        with self.store.lock:
            if new_state == OperatingState.DISABLED:
                logger.debug("State disabled - setting mode to standby")
                self.store.disable()
                self.commands.set_mode(STANDBY)
            else:
                self.store.set_operating_state(new_state)
            self.store.broadcast()

    def set_mode(self, mode: str, device_id: str = DEFAULT_DEVICE):
        """Change mode. Any mode other than standby engages and enables."""
        self.validate_device_id(device_id)
        if mode not in self.config.modes:
            logger.error(f"setMode failed: Invalid mode {mode}")
            raise InvalidArgumentError(
                f"Invalid mode: {mode}. Valid modes: {', '.join(self.config.modes)}"
            )

        with self.store.lock:
            self.store.set_mode(mode, engaged=mode != STANDBY)
            if mode != STANDBY:
                self.store.set_operating_state(OperatingState.ENABLED)
            self.commands.set_mode(mode)
            self.store.broadcast()

    # ------------------------------------------------------------------
    # Target
    # ------------------------------------------------------------------

    def set_target(self, value: float, device_id: str = DEFAULT_DEVICE):
        """Set the target heading (auto) or wind angle (wind), in radians."""
        self.validate_device_id(device_id)
        _check_angle("target", value)
        with self.store.lock:
            logger.debug(f"Changing target from {_deg(self.store.target)} to {_deg(value)}")
            self.store.set_target(value)

            mode = self.store.mode
            if mode == AUTO:
                self.commands.set_heading(value)
            elif mode == WIND:
                self.commands.set_wind_angle(value)
            else:
                logger.debug(f"Mode is {mode} - no N2K command sent")
            self.store.broadcast()

    def adjust_target(self, adjustment: float, device_id: str = DEFAULT_DEVICE):
        """Adjust the target by a relative amount, wrapping into [0, 2π)."""
        self.validate_device_id(device_id)
        _check_angle("adjustment", adjustment)
        with self.store.lock:
            old_target = self.store.target
            new_target = self.store.adjust_target(adjustment)
            logger.debug(
                f"Adjusted target from {_deg(old_target)} to {_deg(new_target)} "
                f"(change: {_deg(adjustment)})"
            )

            if self.store.mode == AUTO:
                self.commands.set_heading(new_target)
            else:
                logger.debug(f"Mode is {self.store.mode} - no heading adjustment sent")
            self.store.broadcast()

    # ------------------------------------------------------------------
    # Engage / disengage
    # ------------------------------------------------------------------

    def engage(self, device_id: str = DEFAULT_DEVICE):
        """Engage steering. From standby this switches to auto."""
        self.validate_device_id(device_id)
        with self.store.lock:
            logger.info(f"Engaging autopilot - current mode: {self.store.mode}")
            self.store.set_engaged(True)
            self.store.set_operating_state(OperatingState.ENABLED)

            if self.store.mode == STANDBY:
                self.store.set_mode(AUTO, engaged=True)
                self.commands.set_mode(AUTO)
            self.store.broadcast()

    def disengage(self, device_id: str = DEFAULT_DEVICE):
        """Disengage steering and return to standby."""
        self.validate_device_id(device_id)
        with self.store.lock:
            logger.info("Disengaging autopilot - switching to standby mode")
            self.store.set_mode(STANDBY, engaged=False)
            self.commands.set_mode(STANDBY)
            self.store.broadcast()

    # ------------------------------------------------------------------
    # Maneuvers
    # ------------------------------------------------------------------

    def tack(self, direction: str, device_id: str = DEFAULT_DEVICE):
        self.validate_device_id(device_id)
        self._check_maneuver("Tack", direction)
        logger.info(f"Executing tack to {direction}")
        self.commands.tack(direction)

    def gybe(self, direction: str, device_id: str = DEFAULT_DEVICE):
        self.validate_device_id(device_id)
        self._check_maneuver("Gybe", direction)
        logger.info(f"Executing gybe to {direction}")
        self.commands.gybe(direction)

    def _check_maneuver(self, name: str, direction: str):
        if self.config.tack_policy == TackPolicy.UNSUPPORTED:
            raise UnsupportedError(f"{name} not supported by Furuno NavPilot-711C")

        mode = self.store.mode
        if mode != WIND:
            logger.error(f"{name.lower()}() failed: Not in wind mode (current mode: {mode})")
            raise PreconditionFailedError(f"{name} command only available in wind mode")

        if direction not in DIRECTION_CODES:
            raise InvalidArgumentError(f"Invalid direction: {direction}")

    def dodge(self, value: float, device_id: str = DEFAULT_DEVICE):
        """Issue a temporary heading nudge. State is not changed."""
        self.validate_device_id(device_id)
        _check_angle("dodge", value)
        logger.info(f"Executing dodge maneuver: {_deg(value)}")
        self.commands.dodge(value)

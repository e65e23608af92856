"""
NavPilot-711C Simulator
=======================

Simulates a NavPilot-711C on the NMEA2000 bus of a LoopbackHost.

Listens for Furuno commands (PGN 130850) and steers a simple
first-order heading model toward the commanded target with a
rate-limited rudder. Each step emits:
    - 127250: Vessel Heading (degrees)
    - 127245: Rudder position (degrees)
    - 127237: Heading/Track Control limit and override flags
    - 129283: XTE (route mode only)

Useful for running the provider end to end without hardware.
"""

import math
import time
import threading
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..host import LoopbackHost
from ..n2k.commands import FURUNO_MODE_CODES
from ..n2k.pgn import PGN

logger = logging.getLogger(__name__)


# Code -> mode name; legacy "nav" shares code 3 with route
MODES_BY_CODE = {code: mode for mode, code in FURUNO_MODE_CODES.items() if mode != "nav"}


@dataclass
class NavPilotSimConfig:
    """Configuration for the NavPilot simulator."""
    update_rate_hz: float = 1.0          # PGN transmission rate
    source_address: int = 3              # NavPilot source address on the bus

    # Vessel
    initial_heading_deg: float = 0.0
    speed_mps: float = 3.0
    turn_rate_per_rudder: float = 0.5    # deg/s of heading per deg of rudder
    heading_noise_std: float = 0.2       # degrees

    # Steering
    kp: float = 1.2                      # rudder deg per deg of heading error
    max_rudder_deg: float = 30.0
    max_rudder_rate: float = 5.0         # deg/s

    # Environment
    true_wind_direction_deg: float = 0.0
    route_bearing_deg: float = 90.0

    # Alarm thresholds
    off_heading_limit_deg: float = 30.0
    off_track_limit_m: float = 100.0

    dodge_duration_s: float = 20.0
    seed: Optional[int] = None

    @property
    def update_interval(self) -> float:
        """Time between updates in seconds."""
        return 1.0 / self.update_rate_hz


def wrap180(angle: float) -> float:
    """Normalize an angle to [-180, 180)."""
    return (angle + 180.0) % 360.0 - 180.0


class NavPilotSimulator:
    """
    Simulated NavPilot attached to a LoopbackHost bus.

    Commands are received synchronously from host.send_n2k(); PGN
    output is emitted on step() or from the background thread.
    """

    def __init__(self, host: LoopbackHost, config: Optional[NavPilotSimConfig] = None):
        self.config = config or NavPilotSimConfig()
        self.host = host
        self.running = False

        self._rng = np.random.default_rng(self.config.seed)
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

        # Device state
        self.mode = "standby"
        self.target_heading_deg = self.config.initial_heading_deg
        self.target_wind_angle_deg = 45.0
        self.heading_deg = self.config.initial_heading_deg
        self.rudder_deg = 0.0
        self.xte_m = 0.0
        self.override = False
        self._dodge_offset_deg = 0.0
        self._dodge_remaining_s = 0.0

        # Statistics
        self.commands_received = 0
        self.frames_sent = 0

    # ------------------------------------------------------------------
    # Bus
    # ------------------------------------------------------------------

    def attach(self):
        """Start receiving outbound commands from the host bus."""
        self.host.attach_bus_device(self.handle_command)

    def detach(self):
        self.host.detach_bus_device(self.handle_command)

    def handle_command(self, message: dict):
        """Apply a Furuno command; other PGNs are ignored."""
        if message.get("pgn") != PGN.FURUNO_COMMAND:
            return
        fields = message.get("fields", {})
        command = fields.get("Command")

        with self._lock:
            self.commands_received += 1
            if command == "SetMode":
                self.mode = MODES_BY_CODE.get(fields.get("Mode", 0), "standby")
                if self.mode == "auto":
                    # Engaging holds the current heading until told otherwise
                    self.target_heading_deg = self.heading_deg
                logger.info(f"NavPilot sim mode: {self.mode}")
            elif command == "SetHeading":
                self.target_heading_deg = fields["Heading"] % 360.0
            elif command == "SetWindAngle":
                self.target_wind_angle_deg = wrap180(fields["Angle"])
            elif command in ("Tack", "Gybe"):
                if self.mode == "wind":
                    self.target_wind_angle_deg = -self.target_wind_angle_deg
            elif command == "Dodge":
                self._dodge_offset_deg = fields["Adjustment"]
                self._dodge_remaining_s = self.config.dodge_duration_s
            else:
                logger.warning(f"NavPilot sim: unknown command {command}")

    def set_override(self, active: bool):
        """Simulate a helmsman overriding the autopilot."""
        with self._lock:
            self.override = active

    # ------------------------------------------------------------------
    # Dynamics
    # ------------------------------------------------------------------

    def desired_heading(self) -> Optional[float]:
        """Heading the autopilot is steering to, or None in standby."""
        if self.mode == "auto":
            return (self.target_heading_deg + self._dodge_offset_deg) % 360.0
        elif self.mode == "wind":
            # Wind angle is measured from the bow, +ve starboard
            return (self.config.true_wind_direction_deg - self.target_wind_angle_deg) % 360.0
        elif self.mode in ("route", "fishingPattern"):
            return self.config.route_bearing_deg
        return None

    def step(self, dt: float):
        """Advance the model by dt seconds and emit PGNs."""
        cfg = self.config
        with self._lock:
            desired = self.desired_heading()
            if desired is None or self.override:
                rudder_cmd = 0.0
                error = 0.0
            else:
                error = wrap180(desired - self.heading_deg)
                rudder_cmd = float(np.clip(cfg.kp * error, -cfg.max_rudder_deg, cfg.max_rudder_deg))

            max_delta = cfg.max_rudder_rate * dt
            self.rudder_deg += float(np.clip(rudder_cmd - self.rudder_deg, -max_delta, max_delta))

            self.heading_deg += cfg.turn_rate_per_rudder * self.rudder_deg * dt
            self.heading_deg += float(self._rng.normal(0.0, cfg.heading_noise_std))
            self.heading_deg %= 360.0

            if self._dodge_remaining_s > 0:
                self._dodge_remaining_s -= dt
                if self._dodge_remaining_s <= 0:
                    self._dodge_offset_deg = 0.0

            if self.mode == "route":
                off_track = math.radians(self.heading_deg - cfg.route_bearing_deg)
                self.xte_m += cfg.speed_mps * math.sin(off_track) * dt

            frames = self._frames(error)

        for frame in frames:
            self.host.inject_n2k(frame)
            self.frames_sent += 1

    def _frames(self, error: float) -> list:
        cfg = self.config

        def flag(condition: bool) -> str:
            return "Yes" if condition else "No"

        engaged = self.mode != "standby"
        frames = [
            self._frame(PGN.VESSEL_HEADING, {"Heading": self.heading_deg, "Reference": "Magnetic"}),
            self._frame(PGN.RUDDER, {"Instance": 0, "Position": self.rudder_deg}),
            self._frame(PGN.HEADING_TRACK_CONTROL, {
                "rudderLimitExceeded": flag(engaged and abs(self.rudder_deg) >= cfg.max_rudder_deg),
                "offHeadingLimitExceeded": flag(engaged and abs(error) > cfg.off_heading_limit_deg),
                "offTrackLimitExceeded": flag(self.mode == "route" and abs(self.xte_m) > cfg.off_track_limit_m),
                "override": flag(self.override),
                "commandedRudderAngle": math.radians(self.rudder_deg),
            }),
        ]
        if self.mode == "route":
            frames.append(self._frame(PGN.XTE, {"XTE": self.xte_m}))
        return frames

    def _frame(self, pgn: PGN, fields: dict) -> dict:
        return {"pgn": int(pgn), "src": self.config.source_address, "dst": 255, "fields": fields}

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------

    def start(self):
        """Attach to the bus and emit PGNs at update_rate_hz."""
        self.attach()
        self.running = True
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        logger.info(f"NavPilot simulator started at {self.config.update_rate_hz}Hz")

    def stop(self):
        self.running = False
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None
        self.detach()
        logger.info("NavPilot simulator stopped")

    def _run(self):
        interval = self.config.update_interval
        while self.running:
            start = time.time()
            self.step(interval)
            elapsed = time.time() - start
            time.sleep(max(0.0, interval - elapsed))


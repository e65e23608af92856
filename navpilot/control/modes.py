"""
Autopilot Modes
===============

Operating states, mode vocabularies and device policies.

Two NavPilot firmware vocabularies are in the field:
    navpilot  standby, auto, wind, route, fishingPattern
    legacy    standby, auto, nav

The vocabulary, which inbound traffic counts as proof of life, and
whether tack/gybe are mode-gated are all chosen at configuration time.
"""

from enum import Enum
from typing import Dict, Tuple


STANDBY = "standby"
AUTO = "auto"
WIND = "wind"
ROUTE = "route"
NAV = "nav"
FISHING_PATTERN = "fishingPattern"

MODE_SETS: Dict[str, Tuple[str, ...]] = {
    "navpilot": (STANDBY, AUTO, WIND, ROUTE, FISHING_PATTERN),
    "legacy": (STANDBY, AUTO, NAV),
}

DEFAULT_MODE_SET = "navpilot"

# Modes in which a waypoint can be advanced
ROUTE_MODES = frozenset({ROUTE, NAV})


class OperatingState(str, Enum):
    """Whether the device accepts commands."""
    ENABLED = "enabled"
    DISABLED = "disabled"


class DetectionPolicy(str, Enum):
    """Which classified observations count as proof of life."""
    ANY = "any"              # heading, rudder or XTE
    HEADING = "heading"      # heading only


class TackPolicy(str, Enum):
    """How tack/gybe requests are handled."""
    MODE_GATED = "mode_gated"    # only in wind mode
    UNSUPPORTED = "unsupported"  # always refused


def mode_set(name: str) -> Tuple[str, ...]:
    """Look up a mode vocabulary by name."""
    try:
        return MODE_SETS[name]
    except KeyError:
        raise ValueError(f"Unknown mode set: {name}. Valid: {', '.join(MODE_SETS)}")

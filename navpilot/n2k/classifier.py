"""
Inbound Message Classifier
==========================

Turns decoded NMEA2000 messages into autopilot observation events.

Recognised PGNs:
    127250 / 127258  Heading       -> HeadingObserved (deg -> rad)
    127245           Rudder        -> RudderObserved  (deg -> rad)
    129283           XTE           -> XTEObserved     (metres, unchanged)
    127237           Heading/Track Control feedback -> AlarmsObserved

Anything else classifies to None.
"""

import math
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from .pgn import PGN, MessageLike, as_message

logger = logging.getLogger(__name__)


HEADING_PGNS = frozenset({PGN.VESSEL_HEADING, PGN.HEADING})

AUTOPILOT_PGNS = frozenset({
    PGN.VESSEL_HEADING,
    PGN.HEADING,
    PGN.RUDDER,
    PGN.XTE,
})


@dataclass(frozen=True)
class Alarm:
    """An active autopilot alarm as published to consumers."""
    state: str                     # "alarm" or "warn"
    message: str
    method: Tuple[str, ...] = ("visual",)

    def to_dict(self) -> dict:
        return {"state": self.state, "message": self.message, "method": list(self.method)}


@dataclass(frozen=True)
class HeadingObserved:
    heading: float                 # radians


@dataclass(frozen=True)
class RudderObserved:
    rudder_angle: float            # radians, +ve starboard


@dataclass(frozen=True)
class XTEObserved:
    xte: float                     # metres


@dataclass(frozen=True)
class AlarmsObserved:
    alarms: Tuple[Alarm, ...] = ()
    commanded_rudder_angle: Optional[float] = None


ObservationEvent = Union[HeadingObserved, RudderObserved, XTEObserved]
SemanticEvent = Union[HeadingObserved, RudderObserved, XTEObserved, AlarmsObserved]


# (field names accepted, alarm record) for PGN 127237 limit flags
_HTC_FLAGS = (
    (("rudderLimitExceeded", "Rudder Limit Exceeded"),
     Alarm("alarm", "Rudder limit exceeded", ("visual", "sound"))),
    (("offHeadingLimitExceeded", "Off-Heading Limit Exceeded"),
     Alarm("alarm", "Off heading limit exceeded", ("visual", "sound"))),
    (("offTrackLimitExceeded", "Off-Track Limit Exceeded"),
     Alarm("alarm", "Off track limit exceeded", ("visual", "sound"))),
    (("override", "Override"),
     Alarm("warn", "Autopilot override active", ("visual",))),
)


def deg_to_rad(value: float) -> float:
    return value * math.pi / 180.0


def is_autopilot_pgn(pgn: int) -> bool:
    """Check whether a PGN carries autopilot-relevant data."""
    return pgn in AUTOPILOT_PGNS


def _field(fields: Dict[str, Any], *names: str) -> Any:
    """Return the first field present under any of the given names."""
    for name in names:
        value = fields.get(name)
        if value is not None:
            return value
    return None


def _is_set(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "yes"
    return value is True


def _alarms_from(fields: Dict[str, Any]) -> AlarmsObserved:
    alarms = []
    for names, alarm in _HTC_FLAGS:
        if _is_set(_field(fields, *names)):
            alarms.append(alarm)
            logger.debug(f"{alarm.state.upper()}: {alarm.message}")

    commanded = _field(fields, "commandedRudderAngle", "Commanded Rudder Angle")
    if isinstance(commanded, bool) or not isinstance(commanded, (int, float)):
        commanded = None
    else:
        logger.debug(f"Autopilot commanding rudder: {math.degrees(commanded):.1f}°")

    return AlarmsObserved(alarms=tuple(alarms), commanded_rudder_angle=commanded)


def classify(message: MessageLike) -> Optional[SemanticEvent]:
    """
    Classify a decoded bus message.

    Args:
        message: N2KMessage or canboat-style dict

    Returns:
        Semantic event, or None if the message is not autopilot-relevant
        or lacks the expected field
    """
    msg = as_message(message)
    pgn = msg.pgn
    fields = msg.fields

    if pgn in HEADING_PGNS:
        heading_deg = _field(fields, "Heading", "heading")
        if heading_deg is None:
            return None
        logger.debug(f"Received heading from N2K PGN {pgn}: {heading_deg:.1f}°")
        return HeadingObserved(heading=deg_to_rad(heading_deg))

    elif pgn == PGN.RUDDER:
        rudder_deg = _field(fields, "Position", "position")
        if rudder_deg is None:
            return None
        logger.debug(f"Received rudder angle from N2K PGN {pgn}: {rudder_deg:.1f}°")
        return RudderObserved(rudder_angle=deg_to_rad(rudder_deg))

    elif pgn == PGN.XTE:
        xte = _field(fields, "XTE", "xte")
        if xte is None:
            return None
        logger.debug(f"Received XTE from N2K PGN {pgn}: {xte:.2f} m")
        return XTEObserved(xte=xte)

    elif pgn == PGN.HEADING_TRACK_CONTROL:
        return _alarms_from(fields)

    return None

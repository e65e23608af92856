"""
NMEA2000 Message Model
======================

PGN numbers used by the NavPilot-711C and the decoded message form
exchanged with the bus collaborator.

Frames arrive already decoded (canboat-style ``{"pgn", "src", "dst",
"fields"}`` dicts); this module only names them.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional, Union


BROADCAST_ADDRESS = 255


class PGN(IntEnum):
    """NMEA2000 Parameter Group Numbers relevant to the autopilot."""
    # Heading & steering
    HEADING_TRACK_CONTROL = 127237
    RUDDER = 127245
    VESSEL_HEADING = 127250
    RATE_OF_TURN = 127251
    HEADING = 127258

    # Navigation data (received)
    POSITION_RAPID = 129025
    COG_SOG = 129026
    GNSS_POSITION = 129029
    XTE = 129283
    NAVIGATION_INFO = 129284
    ROUTE_INFO = 129285

    # Autopilot commands (proprietary Furuno)
    FURUNO_COMMAND = 130850


@dataclass(frozen=True)
class N2KMessage:
    """A decoded NMEA2000 message: PGN tag plus field map."""
    pgn: int
    fields: Dict[str, Any] = field(default_factory=dict)
    dst: int = BROADCAST_ADDRESS
    src: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to the dict form handed to the bus send channel."""
        msg = {"pgn": int(self.pgn), "dst": self.dst, "fields": dict(self.fields)}
        if self.src is not None:
            msg["src"] = self.src
        return msg

    @classmethod
    def from_dict(cls, raw: dict) -> "N2KMessage":
        """Build from a decoded bus dict. Missing fields become empty."""
        return cls(
            pgn=int(raw["pgn"]),
            fields=dict(raw.get("fields") or {}),
            dst=raw.get("dst", BROADCAST_ADDRESS),
            src=raw.get("src"),
        )


MessageLike = Union[N2KMessage, dict]


def as_message(message: MessageLike) -> N2KMessage:
    """Accept either a message object or its dict form."""
    if isinstance(message, N2KMessage):
        return message
    return N2KMessage.from_dict(message)

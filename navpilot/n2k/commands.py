"""
Furuno Command Encoder
======================

Builds proprietary Furuno command messages (PGN 130850) and hands them
to the bus send channel.

All commands are broadcast (dst 255). Angles are accepted in radians
and sent in degrees. There is no acknowledgement from the NavPilot, so
delivery is best-effort: a failed or unattached channel is logged and
reported through the return value, never raised.

Command fields:
    SetMode       Mode=<code>        (see FURUNO_MODE_CODES)
    SetHeading    Heading=<deg>
    SetWindAngle  Angle=<deg>
    Tack / Gybe   Direction=0 (port) | 1 (starboard)
    Dodge         Adjustment=<deg>
"""

import math
import logging
from typing import Callable, Optional

from .pgn import PGN, N2KMessage, BROADCAST_ADDRESS

logger = logging.getLogger(__name__)


FURUNO_MODE_CODES = {
    "standby": 0,
    "auto": 1,
    "wind": 2,
    "route": 3,
    "fishingPattern": 4,
    # Legacy vocabulary: NAV maps onto route steering
    "nav": 3,
}

DIRECTION_CODES = {
    "port": 0,
    "starboard": 1,
}


def rad_to_deg(value: float) -> float:
    return value * 180.0 / math.pi


def _command(command: str, **fields) -> N2KMessage:
    payload = {"Command": command}
    payload.update(fields)
    return N2KMessage(pgn=PGN.FURUNO_COMMAND, fields=payload, dst=BROADCAST_ADDRESS)


def encode_set_mode(mode: str) -> N2KMessage:
    """Encode a mode change. Unknown modes encode as standby (0)."""
    return _command("SetMode", Mode=FURUNO_MODE_CODES.get(mode, 0))


def encode_set_heading(heading: float) -> N2KMessage:
    return _command("SetHeading", Heading=rad_to_deg(heading))


def encode_set_wind_angle(angle: float) -> N2KMessage:
    return _command("SetWindAngle", Angle=rad_to_deg(angle))


def encode_tack(direction: str) -> N2KMessage:
    return _command("Tack", Direction=DIRECTION_CODES.get(direction, 1))


def encode_gybe(direction: str) -> N2KMessage:
    return _command("Gybe", Direction=DIRECTION_CODES.get(direction, 1))


def encode_dodge(adjustment: float) -> N2KMessage:
    return _command("Dodge", Adjustment=rad_to_deg(adjustment))


class N2KCommands:
    """
    Sends Furuno commands through an injected send channel.
    
    The channel is any callable taking the message dict. It is attached
    once the host bus is ready and may be absent before that; commands
    issued while detached are dropped.
    """
    
    def __init__(self, send: Optional[Callable[[dict], None]] = None):
        self._send = send
        
        # Statistics
        self._sent = 0
        self._failed = 0
        self._dropped = 0
        
    def attach(self, send: Callable[[dict], None]):
        """Attach the bus send channel."""
        self._send = send
        logger.debug("N2K command interface initialized")
        
    def detach(self):
        """Detach the send channel. Later commands are dropped."""
        self._send = None
        
    @property
    def attached(self) -> bool:
        return self._send is not None
        
    def send(self, message: N2KMessage) -> bool:
        """Hand a message to the bus. Returns False if it was not sent."""
        if self._send is None:
            self._dropped += 1
            logger.debug(f"N2K callback not initialized, dropping {message.fields.get('Command')}")
            return False
            
        try:
            self._send(message.to_dict())
        except Exception as e:
            self._failed += 1
            logger.error(f"Failed to send N2K message: {e}")
            return False
            
        self._sent += 1
        logger.debug(f"N2K message sent: PGN {int(message.pgn)} {message.fields}")
        return True
        
    def set_mode(self, mode: str) -> bool:
        message = encode_set_mode(mode)
        logger.debug(f"Sending mode command: {mode} (value: {message.fields['Mode']})")
        return self.send(message)
        
    def set_heading(self, heading: float) -> bool:
        logger.debug(f"Sending heading command: {rad_to_deg(heading):.1f}° ({heading} rad)")
        return self.send(encode_set_heading(heading))
        
    def set_wind_angle(self, angle: float) -> bool:
        logger.debug(f"Sending wind angle command: {rad_to_deg(angle):.1f}° ({angle} rad)")
        return self.send(encode_set_wind_angle(angle))
        
    def tack(self, direction: str) -> bool:
        logger.debug(f"Sending tack command: {direction}")
        return self.send(encode_tack(direction))
        
    def gybe(self, direction: str) -> bool:
        logger.debug(f"Sending gybe command: {direction}")
        return self.send(encode_gybe(direction))
        
    def dodge(self, adjustment: float) -> bool:
        logger.debug(f"Sending dodge command: {rad_to_deg(adjustment):.1f}°")
        return self.send(encode_dodge(adjustment))
        
    @property
    def stats(self) -> dict:
        """Get statistics about outbound commands."""
        return {
            "sent": self._sent,
            "failed": self._failed,
            "dropped": self._dropped,
            "attached": self.attached,
        }

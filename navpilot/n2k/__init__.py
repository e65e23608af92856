"""NMEA2000 message encoding and classification."""

from .pgn import (
    PGN,
    N2KMessage,
    BROADCAST_ADDRESS,
)

from .commands import (
    N2KCommands,
    FURUNO_MODE_CODES,
)

from .classifier import (
    classify,
    is_autopilot_pgn,
    Alarm,
    AlarmsObserved,
    HeadingObserved,
    RudderObserved,
    XTEObserved,
)

from .datapath import PathSubscriptions

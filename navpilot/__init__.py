"""
Furuno NavPilot-711C autopilot provider.

Translates a vendor-neutral autopilot API into NMEA2000 commands and
tracks device state and presence from inbound bus traffic.
"""

__version__ = "1.0.0"

from .exceptions import (
    AutopilotError,
    UnknownDeviceError,
    InvalidArgumentError,
    PreconditionFailedError,
    UnsupportedError,
)
from .plugin import NavPilotPlugin, PluginConfig

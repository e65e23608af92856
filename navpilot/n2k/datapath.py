"""
Data-Path Subscriptions
=======================

Subscribes to data-model paths published by the host (heading, rudder
angle, cross-track error) as an alternative observation source to raw
PGNs. Values on these paths are already SI (radians, metres).

Logging is throttled per data type; every value is still delivered.
"""

import math
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .classifier import HeadingObserved, RudderObserved, XTEObserved, ObservationEvent

logger = logging.getLogger(__name__)


HEADING_PATHS = ("navigation.headingMagnetic", "navigation.headingTrue")
RUDDER_PATH = "steering.rudderAngle"
XTE_PATH = "navigation.courseGreatCircle.crossTrackError"


@dataclass
class LogThresholds:
    """Minimum change before a new value is logged."""
    heading_rad: float = 0.174     # ~10°
    rudder_rad: float = 0.087      # ~5°
    xte_m: float = 10.0


@dataclass
class _Subscription:
    path: str
    unsubscribe: Callable[[], None]


class PathSubscriptions:
    """
    Routes data-path values into observation events.

    Args:
        subscribe: host function ``subscribe(path, callback) -> unsubscribe``
        on_event: receives HeadingObserved / RudderObserved / XTEObserved
    """

    _BUILDERS: Dict[str, Callable[[float], ObservationEvent]] = {
        "heading": lambda v: HeadingObserved(heading=v),
        "rudderAngle": lambda v: RudderObserved(rudder_angle=v),
        "xte": lambda v: XTEObserved(xte=v),
    }

    def __init__(self,
                 subscribe: Callable[[str, Callable], Callable[[], None]],
                 on_event: Callable[[ObservationEvent], None],
                 thresholds: Optional[LogThresholds] = None):
        self._subscribe = subscribe
        self._on_event = on_event
        self.thresholds = thresholds or LogThresholds()
        self._subscriptions: List[_Subscription] = []
        self._last_logged: Dict[str, Optional[float]] = {
            "heading": None, "rudderAngle": None, "xte": None
        }

    def subscribe(self):
        """Subscribe to all autopilot-relevant paths."""
        logger.debug("Subscribing to data paths...")
        for path in HEADING_PATHS:
            self._subscribe_path(path, "heading")
        self._subscribe_path(RUDDER_PATH, "rudderAngle")
        self._subscribe_path(XTE_PATH, "xte")

    def _subscribe_path(self, path: str, data_type: str):
        try:
            unsubscribe = self._subscribe(path, lambda raw: self._on_value(data_type, raw))
        except Exception as e:
            logger.debug(f"Could not subscribe to {path}: {e}")
            return

        self._subscriptions.append(_Subscription(path, unsubscribe))
        logger.debug(f"Subscribed to: {path}")

    def _on_value(self, data_type: str, raw):
        # Values may arrive wrapped as {"value": x}
        value = raw
        if isinstance(raw, dict) and "value" in raw:
            value = raw["value"]
        if value is None:
            return

        self._log_throttled(data_type, value)
        self._on_event(self._BUILDERS[data_type](value))

    def _log_throttled(self, data_type: str, value: float):
        last = self._last_logged[data_type]
        if data_type == "heading":
            if last is None or abs(value - last) > self.thresholds.heading_rad:
                logger.debug(f"Heading updated: {math.degrees(value):.1f}°")
                self._last_logged[data_type] = value
        elif data_type == "rudderAngle":
            if last is None or abs(value - last) > self.thresholds.rudder_rad:
                logger.debug(f"Rudder angle: {math.degrees(value):.1f}°")
                self._last_logged[data_type] = value
        elif data_type == "xte":
            if last is None or abs(value - last) > self.thresholds.xte_m:
                logger.debug(f"Cross track error: {value:.1f}m")
                self._last_logged[data_type] = value

    def unsubscribe(self):
        """Release every subscription handle."""
        for sub in self._subscriptions:
            try:
                sub.unsubscribe()
                logger.debug(f"Unsubscribed from: {sub.path}")
            except Exception as e:
                logger.debug(f"Error unsubscribing from {sub.path}: {e}")
        self._subscriptions = []

    @property
    def paths(self) -> List[str]:
        """Currently subscribed paths."""
        return [sub.path for sub in self._subscriptions]

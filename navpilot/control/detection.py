"""
Detection / Liveness Tracker
============================

Infers NavPilot presence purely from inbound traffic timing. The
NavPilot has no acknowledgement protocol, so the only evidence it is
alive is that its PGNs keep arriving.

States:
    NEVER_SEEN -> DETECTED   first qualifying observation
    DETECTED   -> LOST       no qualifying observation within the
                             liveness window (checked periodically)
    LOST       -> DETECTED   next qualifying observation

A one-shot grace timer armed at start reports a warning if nothing has
been seen by the time it fires. Detection only ever changes the status
text; it never raises and never touches autopilot state.
"""

import time
import threading
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..n2k.classifier import HeadingObserved, RudderObserved, XTEObserved
from .modes import DetectionPolicy

logger = logging.getLogger(__name__)


class DetectionStatus(Enum):
    NEVER_SEEN = "never_seen"
    DETECTED = "detected"
    LOST = "lost"


@dataclass
class DetectionConfig:
    """Configuration for the detection tracker."""
    grace_period_s: float = 10.0       # Warn if nothing seen by then
    check_interval_s: float = 60.0     # Liveness polling interval
    liveness_window_s: float = 30.0    # Max silence while detected
    policy: DetectionPolicy = DetectionPolicy.ANY


class DetectionTracker:
    """
    Tracks detection status from classified observations.

    Args:
        device_id: Shown in status text
        set_status: Operator-visible status sink
        config: Timer settings and qualifying policy
        lock: Lock shared with the state store
        clock: Monotonic time source (seconds)
    """

    def __init__(self, device_id: str,
                 set_status: Optional[Callable[[str], None]] = None,
                 config: Optional[DetectionConfig] = None,
                 lock: Optional[threading.RLock] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.device_id = device_id
        self.config = config or DetectionConfig()
        self._set_status = set_status
        self._lock = lock or threading.RLock()
        self._clock = clock

        self._status = DetectionStatus.NEVER_SEEN
        self._last_message_time: Optional[float] = None

        self._grace_timer: Optional[threading.Timer] = None
        self._check_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Arm the grace timer and start the periodic liveness check."""
        self._stop_event.clear()

        self._grace_timer = threading.Timer(self.config.grace_period_s, self.grace_period_expired)
        self._grace_timer.daemon = True
        self._grace_timer.start()

        self._check_thread = threading.Thread(target=self._check_loop, daemon=True)
        self._check_thread.start()
        logger.debug(
            f"Detection started: grace={self.config.grace_period_s}s, "
            f"window={self.config.liveness_window_s}s, policy={self.config.policy.value}"
        )

    def stop(self):
        """Cancel both timers."""
        self._cancel_grace_timer()
        self._stop_event.set()
        if self._check_thread:
            self._check_thread.join(timeout=1.0)
            self._check_thread = None

    def _cancel_grace_timer(self):
        if self._grace_timer:
            self._grace_timer.cancel()
            self._grace_timer = None

    def _check_loop(self):
        while not self._stop_event.wait(self.config.check_interval_s):
            self.check_liveness()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def qualifies(self, event) -> bool:
        """Check whether an event counts as proof of life under the policy."""
        if self.config.policy == DetectionPolicy.HEADING:
            return isinstance(event, HeadingObserved)
        return isinstance(event, (HeadingObserved, RudderObserved, XTEObserved))

    def observe(self, event) -> bool:
        """
        Record a classified event.

        Returns:
            True if the event qualified
        """
        if not self.qualifies(event):
            return False

        with self._lock:
            self._last_message_time = self._clock()
            if self._status != DetectionStatus.DETECTED:
                previous = self._status
                self._status = DetectionStatus.DETECTED
                self._cancel_grace_timer()
                if previous == DetectionStatus.LOST:
                    logger.info("NavPilot-711C traffic resumed")
                else:
                    logger.info("NavPilot-711C detected on NMEA2000 network!")
                self._emit(f"Connected - NavPilot-711C detected (Device ID: {self.device_id})")
        return True

    def grace_period_expired(self):
        """Grace timer callback: warn if nothing has been seen yet."""
        with self._lock:
            self._grace_timer = None
            if self._status != DetectionStatus.NEVER_SEEN:
                return
            logger.warning(
                f"NavPilot-711C not detected after {self.config.grace_period_s:g} seconds. "
                "Commands will be sent, but no feedback will be received"
            )
            self._emit("Warning - NavPilot-711C not detected on NMEA2000 network")

    def check_liveness(self) -> DetectionStatus:
        """Compare time since the last qualifying event against the window."""
        with self._lock:
            if self._status == DetectionStatus.DETECTED and self._last_message_time is not None:
                silence = self._clock() - self._last_message_time
                if silence > self.config.liveness_window_s:
                    self._status = DetectionStatus.LOST
                    logger.warning(
                        f"No messages from NavPilot-711C for {self.config.liveness_window_s:g} seconds"
                    )
                    self._emit("Warning - No data from NavPilot-711C (check NMEA2000 connection)")
            return self._status

    def _emit(self, text: str):
        if self._set_status is None:
            return
        try:
            self._set_status(text)
        except Exception as e:
            logger.warning(f"Status update failed: {e}")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def status(self) -> DetectionStatus:
        return self._status

    @property
    def detected(self) -> bool:
        return self._status == DetectionStatus.DETECTED

    @property
    def last_message_time(self) -> Optional[float]:
        return self._last_message_time

    @property
    def grace_timer_pending(self) -> bool:
        return self._grace_timer is not None

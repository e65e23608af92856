"""
NavPilot-711C Plugin
====================

Hosts the autopilot provider inside a marine data server: parses the
settings, wires the state store, command sender, detection tracker and
provider together, and connects them to the host bus.

Observation sources:
    n2k    decoded PGNs from the bus (default)
    paths  heading/rudder/XTE data paths published by the host
    both   both of the above

Heading/Track Control alarms always come from the bus.
"""

import threading
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .control.detection import DetectionTracker, DetectionConfig
from .control.modes import (
    DetectionPolicy, TackPolicy, MODE_SETS, DEFAULT_MODE_SET, mode_set
)
from .control.provider import AutopilotProvider, ProviderConfig
from .control.state_store import StateStore
from .host import PluginHost
from .n2k.classifier import classify, AlarmsObserved
from .n2k.commands import N2KCommands
from .n2k.datapath import PathSubscriptions

logger = logging.getLogger(__name__)


PLUGIN_ID = "signalk-autopilot-furuno"
PLUGIN_NAME = "Furuno NavPilot-711C Autopilot Provider"
PLUGIN_DESCRIPTION = "Signal K Autopilot Provider for Furuno NavPilot-711C via NMEA2000"

HULL_TYPES = (
    "sail",
    "sailSlowTurn",
    "sailCatamaran",
    "power",
    "powerSlowTurn",
    "powerFastTurn",
)

OBSERVATION_SOURCES = ("n2k", "paths", "both")

SETTINGS_SCHEMA = {
    "type": "object",
    "required": ["deviceId"],
    "properties": {
        "deviceId": {
            "type": "string",
            "title": "Autopilot Device ID",
            "description": "Unique identifier for this autopilot",
            "default": "711c",
        },
        "hullType": {
            "type": "string",
            "title": "Hull Type",
            "description": "Type of vessel hull for autopilot tuning",
            "enum": list(HULL_TYPES),
            "default": "power",
        },
        "detectionTimeout": {
            "type": "number",
            "title": "Detection Timeout (s)",
            "description": "Warn if no autopilot data is seen within this time",
            "default": 10,
        },
        "modeSet": {
            "type": "string",
            "title": "Mode Vocabulary",
            "description": "navpilot: standby/auto/wind/route/fishingPattern, legacy: standby/auto/nav",
            "enum": list(MODE_SETS),
            "default": DEFAULT_MODE_SET,
        },
        "detectionPolicy": {
            "type": "string",
            "title": "Detection Policy",
            "description": "Traffic counted as proof of life: any autopilot PGN or heading only",
            "enum": [p.value for p in DetectionPolicy],
            "default": DetectionPolicy.ANY.value,
        },
        "tackGybe": {
            "type": "string",
            "title": "Tack/Gybe Support",
            "description": "mode_gated: allowed in wind mode, unsupported: always refused",
            "enum": [p.value for p in TackPolicy],
            "default": TackPolicy.MODE_GATED.value,
        },
        "observationSource": {
            "type": "string",
            "title": "Observation Source",
            "enum": list(OBSERVATION_SOURCES),
            "default": "n2k",
        },
    },
}


@dataclass
class PluginConfig:
    """Plugin settings."""
    device_id: str = "711c"
    hull_type: str = "power"
    detection_timeout_s: float = 10.0
    mode_set: str = DEFAULT_MODE_SET
    detection_policy: DetectionPolicy = DetectionPolicy.ANY
    tack_policy: TackPolicy = TackPolicy.MODE_GATED
    observation_source: str = "n2k"

    # Liveness polling (not exposed in the settings schema)
    check_interval_s: float = 60.0
    liveness_window_s: float = 30.0

    @classmethod
    def from_settings(cls, settings: Optional[dict]) -> "PluginConfig":
        """
        Parse host settings (camelCase keys as in SETTINGS_SCHEMA).

        Raises:
            ValueError: if a setting has an unknown value
        """
        settings = settings or {}
        config = cls(
            device_id=settings.get("deviceId") or "711c",
            hull_type=settings.get("hullType", "power"),
            detection_timeout_s=float(settings.get("detectionTimeout", 10)),
            mode_set=settings.get("modeSet", DEFAULT_MODE_SET),
            detection_policy=DetectionPolicy(settings.get("detectionPolicy", DetectionPolicy.ANY.value)),
            tack_policy=TackPolicy(settings.get("tackGybe", TackPolicy.MODE_GATED.value)),
            observation_source=settings.get("observationSource", "n2k"),
        )
        if config.hull_type not in HULL_TYPES:
            raise ValueError(f"Unknown hull type: {config.hull_type}")
        if config.observation_source not in OBSERVATION_SOURCES:
            raise ValueError(f"Unknown observation source: {config.observation_source}")
        mode_set(config.mode_set)
        return config

    @property
    def modes(self) -> Tuple[str, ...]:
        return mode_set(self.mode_set)

    def provider_config(self) -> ProviderConfig:
        return ProviderConfig(
            device_id=self.device_id,
            modes=self.modes,
            tack_policy=self.tack_policy,
        )

    def detection_config(self) -> DetectionConfig:
        return DetectionConfig(
            grace_period_s=self.detection_timeout_s,
            check_interval_s=self.check_interval_s,
            liveness_window_s=self.liveness_window_s,
            policy=self.detection_policy,
        )


class NavPilotPlugin:
    """
    Plugin lifecycle for one NavPilot-711C.

    All components are created in start() and released in stop(); the
    plugin holds no state across restarts.
    """

    id = PLUGIN_ID
    name = PLUGIN_NAME
    description = PLUGIN_DESCRIPTION
    schema = SETTINGS_SCHEMA

    def __init__(self, host: PluginHost):
        self.host = host
        self.config: Optional[PluginConfig] = None

        # Components (created in start())
        self.store: Optional[StateStore] = None
        self.commands: Optional[N2KCommands] = None
        self.detection: Optional[DetectionTracker] = None
        self.provider: Optional[AutopilotProvider] = None
        self._paths: Optional[PathSubscriptions] = None
        self._listening = False
        self._running = False

    def start(self, settings: Optional[dict] = None, config: Optional[PluginConfig] = None):
        """
        Start the provider.

        Raises:
            Any registration or configuration failure, after reporting it
            through set_plugin_error()
        """
        if self._running or self._listening:
            logger.info("Plugin already running - restarting")
            self.stop()

        try:
            self.config = config or PluginConfig.from_settings(settings)
            device_id = self.config.device_id
            logger.info(f"Starting Furuno NavPilot-711C plugin with device ID: {device_id}")

            lock = threading.RLock()
            self.store = StateStore(device_id, publish=self.host.autopilot_update, lock=lock)
            self.commands = N2KCommands()
            self.detection = DetectionTracker(
                device_id,
                set_status=self.host.set_plugin_status,
                config=self.config.detection_config(),
                lock=lock,
            )
            self.provider = AutopilotProvider(self.store, self.commands, self.config.provider_config())

            self.host.register_autopilot_provider(self.provider, [device_id])
            logger.debug(f"Registered Furuno NavPilot-711C autopilot provider: {device_id}")

            if self.config.observation_source in ("n2k", "both"):
                self.host.add_n2k_listener(self.handle_n2k)
            else:
                # Alarms are only available as PGNs
                self.host.add_n2k_listener(self.handle_alarms_only)
            self._listening = True
            logger.debug("Subscribed to N2K messages")

            if self.config.observation_source in ("paths", "both"):
                self._paths = PathSubscriptions(self.host.subscribe_path, self.handle_event)
                self._paths.subscribe()

            self.commands.attach(self.host.send_n2k)

            self.store.broadcast()
            self.detection.start()
            self._running = True

            self.host.set_plugin_status(
                f"Started - Waiting for NavPilot-711C... (Device ID: {device_id})"
            )
        except Exception as e:
            error_msg = f"Failed to start: {e}"
            logger.error(error_msg)
            self.host.set_plugin_error(error_msg)
            raise

    def stop(self):
        """Stop the provider and release timers and subscriptions."""
        logger.info("Stopping Furuno NavPilot-711C plugin")
        try:
            if self.detection:
                self.detection.stop()
            if self._listening:
                self.host.remove_n2k_listener(self.handle_n2k)
                self.host.remove_n2k_listener(self.handle_alarms_only)
                self._listening = False
                logger.debug("Unsubscribed from N2K messages")
            if self._paths:
                self._paths.unsubscribe()
                self._paths = None
            if self.commands:
                self.commands.detach()
            self._running = False
            self.host.set_plugin_status("Stopped")
        except Exception as e:
            error_msg = f"Error stopping: {e}"
            logger.error(error_msg)
            self.host.set_plugin_error(error_msg)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def _classify(self, message: dict):
        if not message or "pgn" not in message:
            return None
        try:
            return classify(message)
        except (TypeError, ValueError) as e:
            logger.warning(f"Malformed N2K message for PGN {message.get('pgn')}: {e}")
            return None

    def handle_n2k(self, message: dict):
        """Bus listener: classify and apply a decoded message."""
        event = self._classify(message)
        if event is not None:
            self.handle_event(event)

    def handle_alarms_only(self, message: dict):
        """Bus listener used when observations come from data paths."""
        event = self._classify(message)
        if isinstance(event, AlarmsObserved):
            self.handle_event(event)

    def handle_event(self, event):
        """Feed a classified event to detection and the state store."""
        with self.store.lock:
            self.detection.observe(event)
            self.store.apply(event)

    @property
    def running(self) -> bool:
        return self._running

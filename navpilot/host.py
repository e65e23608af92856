"""
Plugin Host
===========

Contract between the provider plugin and the server hosting it, plus an
in-memory host used by the simulator, the CLI and tests.

The host owns the NMEA2000 bus (frames are decoded before they reach
the plugin), the data-path layer and the device-state publication.
"""

import threading
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

N2KListener = Callable[[dict], None]
PathCallback = Callable[[Any], None]


class PluginHost(ABC):
    """Services a hosting server offers to the autopilot plugin."""

    @abstractmethod
    def register_autopilot_provider(self, provider, device_ids: List[str]):
        """Register a provider for the given device identifiers."""

    @abstractmethod
    def add_n2k_listener(self, callback: N2KListener):
        """Receive every decoded inbound bus message."""

    @abstractmethod
    def remove_n2k_listener(self, callback: N2KListener):
        """Stop receiving bus messages."""

    @abstractmethod
    def send_n2k(self, message: dict):
        """Send a message on the bus. Fire-and-forget."""

    @abstractmethod
    def subscribe_path(self, path: str, callback: PathCallback) -> Callable[[], None]:
        """Subscribe to a data path. Returns an unsubscribe function."""

    @abstractmethod
    def autopilot_update(self, device_id: str, snapshot: dict):
        """Publish the current autopilot state."""

    @abstractmethod
    def set_plugin_status(self, text: str):
        """Operator-visible status text."""

    @abstractmethod
    def set_plugin_error(self, text: str):
        """Operator-visible error text."""


class LoopbackHost(PluginHost):
    """
    In-memory host.

    Outbound bus messages are recorded and forwarded to any registered
    bus devices (e.g. the NavPilot simulator). Inbound messages are
    injected with inject_n2k() and delivered to plugin listeners.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._n2k_listeners: List[N2KListener] = []
        self._bus_devices: List[N2KListener] = []
        self._path_callbacks: Dict[str, List[PathCallback]] = {}

        self.providers: List[Tuple[Any, List[str]]] = []
        self.sent: List[dict] = []
        self.updates: List[Tuple[str, dict]] = []
        self.status: Optional[str] = None
        self.error: Optional[str] = None
        self.status_history: List[str] = []

    # Plugin-facing

    def register_autopilot_provider(self, provider, device_ids: List[str]):
        self.providers.append((provider, list(device_ids)))
        logger.info(f"Registered autopilot provider for {device_ids}")

    def add_n2k_listener(self, callback: N2KListener):
        with self._lock:
            self._n2k_listeners.append(callback)

    def remove_n2k_listener(self, callback: N2KListener):
        with self._lock:
            if callback in self._n2k_listeners:
                self._n2k_listeners.remove(callback)

    def send_n2k(self, message: dict):
        with self._lock:
            self.sent.append(message)
            devices = list(self._bus_devices)
        for device in devices:
            device(message)

    def subscribe_path(self, path: str, callback: PathCallback) -> Callable[[], None]:
        with self._lock:
            self._path_callbacks.setdefault(path, []).append(callback)

        def unsubscribe():
            with self._lock:
                callbacks = self._path_callbacks.get(path, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def autopilot_update(self, device_id: str, snapshot: dict):
        self.updates.append((device_id, snapshot))

    def set_plugin_status(self, text: str):
        self.status = text
        self.status_history.append(text)
        logger.info(f"Status: {text}")

    def set_plugin_error(self, text: str):
        self.error = text
        logger.error(f"Error: {text}")

    # Bus-facing

    def attach_bus_device(self, callback: N2KListener):
        """Attach a device that receives every outbound message."""
        with self._lock:
            self._bus_devices.append(callback)

    def detach_bus_device(self, callback: N2KListener):
        with self._lock:
            if callback in self._bus_devices:
                self._bus_devices.remove(callback)

    def inject_n2k(self, message: dict):
        """Deliver an inbound bus message to plugin listeners."""
        with self._lock:
            listeners = list(self._n2k_listeners)
        for listener in listeners:
            listener(message)

    def publish_path(self, path: str, value: Any):
        """Deliver a data-path value to its subscribers."""
        with self._lock:
            callbacks = list(self._path_callbacks.get(path, []))
        for callback in callbacks:
            callback(value)

    @property
    def n2k_listener_count(self) -> int:
        return len(self._n2k_listeners)

    @property
    def last_update(self) -> Optional[dict]:
        """Most recent published snapshot."""
        return self.updates[-1][1] if self.updates else None

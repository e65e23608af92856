"""
Autopilot Control Modules
=========================

This package contains the state-synchronization core of the provider.

Components:
    - StateStore: Authoritative autopilot state and broadcasts
    - DetectionTracker: Presence/liveness from inbound traffic timing
    - AutopilotProvider: Request/response facade
"""

from .modes import (
    OperatingState,
    DetectionPolicy,
    TackPolicy,
    MODE_SETS,
)

from .state_store import (
    StateStore,
    AutopilotState,
)

from .detection import (
    DetectionTracker,
    DetectionConfig,
    DetectionStatus,
)

from .provider import (
    AutopilotProvider,
    ProviderConfig,
    DEFAULT_DEVICE,
)

__all__ = [
    'OperatingState',
    'DetectionPolicy',
    'TackPolicy',
    'MODE_SETS',
    'StateStore',
    'AutopilotState',
    'DetectionTracker',
    'DetectionConfig',
    'DetectionStatus',
    'AutopilotProvider',
    'ProviderConfig',
    'DEFAULT_DEVICE',
]

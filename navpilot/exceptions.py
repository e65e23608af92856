"""Exception hierarchy for the NavPilot autopilot provider."""


class AutopilotError(Exception):
    """Base exception for all provider errors."""


class UnknownDeviceError(AutopilotError):
    """Request addressed to a device this provider does not own."""

    def __init__(self, device_id: str):
        self.device_id = device_id
        super().__init__(f"Unknown autopilot device: {device_id}")


class InvalidArgumentError(AutopilotError):
    """Bad enum value for state, mode or direction.

    Raised before any state mutation takes place.
    """


class PreconditionFailedError(AutopilotError):
    """Mode-gated action invoked in the wrong mode."""


class UnsupportedError(AutopilotError):
    """Action not implemented by this device class."""

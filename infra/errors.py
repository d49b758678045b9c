"""Custom exceptions for the fluency coach."""


class FluencyError(Exception):
    """Base class for fluency coach errors."""


class DeviceAcquisitionError(FluencyError):
    """Raised when the microphone is missing, denied or already in use."""


class InvalidSequenceError(FluencyError):
    """Raised in strict mode when segments are added before a session starts."""


class ReportDeliveryError(FluencyError):
    """Raised by report sinks when a finished session cannot be handed off."""

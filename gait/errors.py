"""
Error types for the GaitIQ pipeline.

Sensor sources and the signal conditioner raise these; the session
controller catches them and exposes them through its ``error`` getter
instead of letting them cross into the host application.
"""


class GaitError(Exception):
    """Base class for all gait pipeline errors."""

    kind = "GaitError"

    def describe(self) -> str:
        """Human readable ``"<Kind>: <message>"`` string for the error getter."""
        message = str(self) or self.__class__.__doc__.strip().splitlines()[0]
        return f"{self.kind}: {message}"


class SensorUnavailableError(GaitError):
    """No compatible motion sensor is available."""

    kind = "SensorUnavailable"


class PermissionDeniedError(GaitError):
    """Access to motion data was refused."""

    kind = "PermissionDenied"


class TransientSensorError(GaitError):
    """The sensor reported a runtime fault after it was started."""

    kind = "TransientSensorError"


class InvalidSampleError(GaitError, ValueError):
    """Sample has a missing, non-numeric or non-finite component."""

    kind = "InvalidSample"

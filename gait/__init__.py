"""
GaitIQ Gait Pipeline

This package turns a stream of accelerometer samples into live gait metrics:
- SignalConditioner: low-pass filter + magnitude
- RollingWindow: recent magnitudes for peak detection
- StepDetector: three-point peak detection with threshold and interval gate
- IntervalTracker: bounded history of inter-step intervals
- compute_gait_metrics: cadence (steps/min) and symmetry index (0-100)
- GaitSession: start/stop/reset lifecycle and metrics callback
- Sensor sources: driver-polled accelerometer, pushed motion events, simulator

Usage:
    from gait import GaitSession, GaitConfig, select_source

    source = select_source(driver=imu, sample_rate=60)
    session = GaitSession(source, GaitConfig(), on_metrics_updated=print)

    if await session.request_access():
        session.start()
    # readings now flow from the source into the session
    print(session.cadence, session.symmetry)
    session.stop()
"""

from .conditioner import SignalConditioner, low_pass, magnitude
from .config import GaitConfig
from .detector import StepDetector, StepEvent
from .errors import (
    GaitError,
    InvalidSampleError,
    PermissionDeniedError,
    SensorUnavailableError,
    TransientSensorError,
)
from .intervals import IntervalTracker
from .metrics import (
    GaitMetrics,
    coefficient_of_variation,
    compute_gait_metrics,
    distance_from_steps,
    estimate_step_length,
    instantaneous_cadence,
    is_in_motion,
    symmetry_index,
    walking_speed,
)
from .session import GaitSession, SessionState
from .sources import (
    DriverAccelerometerSource,
    MotionEventSource,
    SensorSource,
    SimulatedAccelerometer,
    select_source,
)
from .window import RollingWindow

__all__ = [
    # Conditioning
    'SignalConditioner',
    'low_pass',
    'magnitude',

    # Pipeline
    'RollingWindow',
    'StepDetector',
    'StepEvent',
    'IntervalTracker',

    # Metrics
    'GaitMetrics',
    'compute_gait_metrics',
    'coefficient_of_variation',
    'symmetry_index',
    'instantaneous_cadence',
    'estimate_step_length',
    'distance_from_steps',
    'walking_speed',
    'is_in_motion',

    # Session
    'GaitSession',
    'SessionState',
    'GaitConfig',

    # Sources
    'SensorSource',
    'DriverAccelerometerSource',
    'MotionEventSource',
    'SimulatedAccelerometer',
    'select_source',

    # Errors
    'GaitError',
    'SensorUnavailableError',
    'PermissionDeniedError',
    'TransientSensorError',
    'InvalidSampleError',
]

__version__ = '1.0.0'

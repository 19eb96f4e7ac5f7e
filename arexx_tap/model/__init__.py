from .sensor import SensorConfig, SensorRegistry
from .reading import Reading
from .calibration import DEFAULT_TEMPERATURE_SCALE, calibrate

__all__ = ["SensorConfig",
           "SensorRegistry",
           "Reading",
           "DEFAULT_TEMPERATURE_SCALE",
           "calibrate"]

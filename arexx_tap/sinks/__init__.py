from .data_file import DataFileSink
from .influxdb import InfluxDbSink
from .mqtt import MqttSink
from .registry import build_sink, build_sinks

__all__ = ["DataFileSink",
           "InfluxDbSink",
           "MqttSink",
           "build_sink",
           "build_sinks"]

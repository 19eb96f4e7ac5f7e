from .dispatcher import SinkDispatcher
from .worker import SinkStats, SinkWorker

__all__ = ["SinkDispatcher", "SinkStats", "SinkWorker"]

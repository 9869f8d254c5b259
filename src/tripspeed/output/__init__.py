from .alerts import SpeedAlertConfig, SpeedAlertEngine, SpeedAlertEvent
from .notifier import CollectingNotifier, LogNotifier, Notifier, create_notifier
from .sinks import CsvSink, JsonlSink, SampleSinks
from .trip_store import InMemoryTripStore, TripStore

__all__ = [
    "CollectingNotifier",
    "CsvSink",
    "InMemoryTripStore",
    "JsonlSink",
    "LogNotifier",
    "Notifier",
    "SampleSinks",
    "SpeedAlertConfig",
    "SpeedAlertEngine",
    "SpeedAlertEvent",
    "TripStore",
    "create_notifier",
]

"""Reporting module - progress events and sinks."""

from .progress import (
    Checkpoint,
    ConsoleProgress,
    GatePaused,
    Notice,
    ProgressEvent,
    ProgressSink,
    RecordingProgress,
    ScenarioEvent,
    StepEvent,
)

__all__ = [
    "Checkpoint",
    "ConsoleProgress",
    "GatePaused",
    "Notice",
    "ProgressEvent",
    "ProgressSink",
    "RecordingProgress",
    "ScenarioEvent",
    "StepEvent",
]

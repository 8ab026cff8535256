"""Feature sources for the listening pipeline."""

from frogchorus.sources.synthetic import (
    QuietFrameSource,
    RoomSimulator,
    ScriptedFrameSource,
    SimulatedRoomSource,
)
from frogchorus.sources.microphone import MicrophoneFeatureSource

__all__ = [
    "QuietFrameSource",
    "RoomSimulator",
    "ScriptedFrameSource",
    "SimulatedRoomSource",
    "MicrophoneFeatureSource",
]
